from fleetvmrs.db.models.part import Part
from fleetvmrs.db.models.vmrs import VmrsDictionaryEntry, VmrsMappingFeedback, VmrsTextFeedback
from fleetvmrs.db.base import Base

__all__ = [
    "Base",
    "Part",
    "VmrsDictionaryEntry",
    "VmrsMappingFeedback",
    "VmrsTextFeedback",
]
