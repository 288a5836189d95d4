"""Built-in VMRS system rules used for matching and dictionary seeding."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True, slots=True)
class TaxonomyRule:
    system_code: str
    title: str
    keywords: tuple[str, ...]
    base_confidence: float


DEFAULT_SAFETY_SYSTEM = "OTHER"

SYSTEM_SAFETY_MAP: Mapping[str, str] = MappingProxyType(
    {
        "001": "HVAC",
        "002": "OTHER",
        "003": "OTHER",
        "011": "OTHER",
        "012": "OTHER",
        "013": "BRAKES",
        "014": "OTHER",
        "015": "STEERING",
        "016": "SUSPENSION",
        "017": "TIRES_WHEELS",
        "018": "TIRES_WHEELS",
        "031": "ELECTRICAL",
        "032": "ELECTRICAL",
        "034": "ELECTRICAL",
        "041": "OTHER",
        "042": "OTHER",
        "043": "OTHER",
        "044": "OTHER",
        "045": "OTHER",
        "048": "OTHER",
    }
)

# Terms that recur across many systems and carry little signal on their own.
AMBIGUOUS_TERMS: frozenset[str] = frozenset(
    {"valve", "seal", "gasket", "filter", "pump", "sensor", "switch", "hose", "line", "cable"}
)

STARTER_SYSTEM_RULES: tuple[TaxonomyRule, ...] = (
    TaxonomyRule(
        "001",
        "HVAC",
        ("hvac", "a/c", "ac", "air conditioning", "heater core", "blower motor", "vent", "compressor hvac",
         "evaporator", "condenser", "defroster", "climate"),
        0.85,
    ),
    TaxonomyRule(
        "002",
        "Cab/Body Sheet Metal",
        ("body panel", "sheet metal", "windshield frame", "cowl", "mirror bracket", "hood latch",
         "compartment door skin"),
        0.80,
    ),
    TaxonomyRule(
        "003",
        "Instruments/Gauges",
        ("gauge", "speedometer", "tach", "instrument cluster", "warning lamp", "indicator", "sensor gauge"),
        0.80,
    ),
    TaxonomyRule(
        "011",
        "Front Axle (Non-Driven)",
        ("front axle beam", "spindle", "knuckle", "front axle non-driven"),
        0.75,
    ),
    TaxonomyRule(
        "012",
        "Rear Axle (Non-Driven)",
        ("tag axle", "pusher axle", "rear non-driven axle", "dead axle"),
        0.75,
    ),
    TaxonomyRule(
        "013",
        "Brakes",
        ("brake", "brakes", "slack adjuster", "brake chamber", "s-cam", "caliper", "rotor", "drum", "shoe",
         "lining", "abs modulator", "abs sensor", "gladhand service", "air brake", "service brake",
         "spring brake"),
        0.90,
    ),
    TaxonomyRule(
        "014",
        "Frame",
        ("frame rail", "crossmember", "outrigger", "body mount", "subframe", "crack repair frame"),
        0.80,
    ),
    TaxonomyRule(
        "015",
        "Steering",
        ("steering", "tie rod", "drag link", "pitman arm", "idler arm", "steering gear", "steering box",
         "king pin", "power steering pump", "column", "steer axle alignment"),
        0.90,
    ),
    TaxonomyRule(
        "016",
        "Suspension",
        ("air spring", "air bag", "shock", "suspension", "u-bolt", "torque rod", "radius rod", "tracking bar",
         "height control valve", "leveling valve", "bushing", "spring hanger"),
        0.85,
    ),
    TaxonomyRule(
        "017",
        "Tires",
        ("tire", "tyre", "tread", "sidewall", "dual", "valve stem", "tire inflation", "ctis", "atis",
         "flat repair"),
        0.90,
    ),
    TaxonomyRule(
        "018",
        "Wheels/Rims/Hubs/Bearings",
        ("wheel", "rim", "hub", "bearing", "seal", "lug nut", "stud", "wheel end", "brake hub"),
        0.85,
    ),
    TaxonomyRule(
        "031",
        "Charging System",
        ("alternator", "voltage regulator", "charge", "charging", "battery isolator"),
        0.85,
    ),
    TaxonomyRule(
        "032",
        "Cranking System",
        ("starter", "cranking", "starter solenoid", "ignition start", "no crank"),
        0.85,
    ),
    TaxonomyRule(
        "034",
        "Lighting System",
        ("headlamp", "taillight", "marker light", "turn signal", "strobe", "clearance light", "lamp", "bulb",
         "lighting harness", "fog light"),
        0.85,
    ),
    TaxonomyRule(
        "041",
        "Air Intake",
        ("air filter", "intake", "charge air", "cac", "intercooler", "boost leak", "intake manifold"),
        0.80,
    ),
    TaxonomyRule(
        "042",
        "Cooling System",
        ("radiator", "water pump", "thermostat", "coolant hose", "surge tank", "fan clutch", "coolant"),
        0.85,
    ),
    TaxonomyRule(
        "043",
        "Exhaust System",
        ("exhaust", "muffler", "pipe", "aftertreatment", "dpf", "scr", "doc", "exhaust brake"),
        0.85,
    ),
    TaxonomyRule(
        "044",
        "Fuel System",
        ("fuel filter", "injector", "fuel pump", "lift pump", "rail", "diesel", "fuel line"),
        0.85,
    ),
    TaxonomyRule(
        "045",
        "Power Plant",
        ("engine", "long block", "short block", "cylinder head", "oil pan", "valvetrain"),
        0.80,
    ),
    TaxonomyRule(
        "048",
        "Powertrain Electric/Hybrid",
        ("inverter", "dc-dc", "battery pack", "traction motor", "hybrid", "regen", "hv cable", "bms", "e-axle"),
        0.80,
    ),
)

_RULES_BY_CODE: Mapping[str, TaxonomyRule] = MappingProxyType({rule.system_code: rule for rule in STARTER_SYSTEM_RULES})


def get_safety_system(system_code: str) -> str:
    return SYSTEM_SAFETY_MAP.get(system_code, DEFAULT_SAFETY_SYSTEM)


def get_rule(system_code: str) -> TaxonomyRule | None:
    return _RULES_BY_CODE.get(system_code)


def known_system_codes() -> frozenset[str]:
    return frozenset(_RULES_BY_CODE)
