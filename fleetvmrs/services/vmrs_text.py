"""Text normalization shared by the VMRS matcher and the AI prompt."""

from __future__ import annotations

import re


SPACE_RE = re.compile(r"\s+", re.ASCII)
PUNCT_RE = re.compile(r"[^\w\s/-]", re.ASCII)

ABBREVIATION_EXPANSIONS: dict[str, str] = {
    "brk": "brake",
    "chmbr": "chamber",
    "adj": "adjuster",
    "svc": "service",
    "rr": "rear",
    "fr": "front",
    "lh": "left",
    "rh": "right",
    "assy": "assembly",
    "sys": "system",
    "mtr": "motor",
    "pmp": "pump",
    "vlv": "valve",
    "hd": "head",
    "cyl": "cylinder",
    "eng": "engine",
    "trans": "transmission",
    "elec": "electrical",
    "hyd": "hydraulic",
    "pneu": "pneumatic",
    "a/c": "air conditioning",
    "ac": "air conditioning",
    "ps": "power steering",
    "abs": "abs",
    "dpf": "diesel particulate filter",
    "scr": "selective catalytic reduction",
    "doc": "diesel oxidation catalyst",
    "cac": "charge air cooler",
    "ctis": "central tire inflation system",
}

STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "for", "to", "of", "in", "on", "at", "with", "by", "is", "are",
        "as", "be", "it", "this", "that", "from", "has", "have", "had", "was", "were", "will",
    }
)

_ABBREVIATION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{re.escape(abbr)}\b", re.ASCII), full) for abbr, full in ABBREVIATION_EXPANSIONS.items()
)


def expand_abbreviations(text: str) -> str:
    for pattern, full in _ABBREVIATION_PATTERNS:
        text = pattern.sub(full, text)
    return text


def normalize_text(text: str) -> list[str]:
    """Lowercase, strip punctuation, expand abbreviations and tokenize.

    Token order is preserved and duplicates are kept so multi-word keywords
    can still be found in the joined sequence.
    """
    if not text:
        return []
    normalized = PUNCT_RE.sub(" ", text.lower())
    normalized = expand_abbreviations(normalized)
    return [token for token in SPACE_RE.split(normalized) if len(token) > 1 and token not in STOP_WORDS]


def join_tokens(tokens: list[str]) -> str:
    return " ".join(tokens)
