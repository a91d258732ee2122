"""
Models package exports for domain types and LLM/request schemas.
"""

from mediguide.models.domain import (
    ChatMessage,
    ChatSession,
    Condition,
    Coordinates,
    Disposition,
    DispositionKind,
    Facility,
    FacilityType,
    MedicineState,
    MedicineType,
    NearbySearch,
    RankedFacility,
)
from mediguide.models.schemas import (
    MedicineDetails,
    OTCAdvice,
    PrescriptionAnalysis,
    ScanAnalysis,
)

__all__ = [
    "ChatMessage",
    "ChatSession",
    "Condition",
    "Coordinates",
    "Disposition",
    "DispositionKind",
    "Facility",
    "FacilityType",
    "MedicineState",
    "MedicineType",
    "NearbySearch",
    "RankedFacility",
    "MedicineDetails",
    "OTCAdvice",
    "PrescriptionAnalysis",
    "ScanAnalysis",
]
