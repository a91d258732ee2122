"""
Request bodies and LLM structured output schemas.

Request fields the API treats as required are declared optional here so the
service layer can reject them with an explanatory 400 instead of a generic
validation error. LLM output schemas only require the fields the client
cannot render without.
"""

from typing import Any, Optional

from pydantic import ConfigDict, Field

from mediguide.models.domain import CamelModel


# --- LLM structured output ---


class LLMOutput(CamelModel):
    """Lenient base: unexpected keys returned by the model are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Medication(LLMOutput):
    name: str
    purpose: str = ""
    dosage: str = ""
    frequency: str = ""
    side_effects: list[str] = Field(default_factory=list, alias="sideEffects")
    warnings: list[str] = Field(default_factory=list)


class PrescriptionAnalysis(LLMOutput):
    medications: list[Medication]
    summary: str
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    disclaimer: str = ""


class ScanAnalysis(LLMOutput):
    name: str
    manufacturer: Optional[str] = None
    expiry_date: Optional[str] = Field(default=None, alias="expiryDate")
    batch_number: Optional[str] = Field(default=None, alias="batchNumber")
    strength: Optional[str] = None
    is_expired: bool = Field(default=False, alias="isExpired")
    recommendation: Optional[str] = None
    reasoning: Optional[str] = None


class OTCSuggestion(LLMOutput):
    medicine: str
    type: str = ""
    dosage: str = ""
    duration: str = ""
    side_effects: list[str] = Field(default_factory=list, alias="sideEffects")
    warnings: list[str] = Field(default_factory=list)


class OTCAdvice(LLMOutput):
    recommendations: list[OTCSuggestion]
    general_advice: str = Field(default="", alias="generalAdvice")
    when_to_see_doctor: str = Field(default="", alias="whenToSeeDoctor")
    safety_notes: str = Field(default="", alias="safetyNotes")
    disclaimer: str = ""


class MedicineDetails(LLMOutput):
    name: str
    category: str = "Unknown"
    description: str
    dosage: str = ""
    warnings: list[str] = Field(default_factory=list)
    side_effects: list[str] = Field(default_factory=list, alias="sideEffects")
    uses: list[str] = Field(default_factory=list)


# --- HTTP request bodies ---


class RecommendationRequest(CamelModel):
    medicine_info: Optional[dict[str, Any]] = None
    location: Optional[str] = None


class ChatMessageRequest(CamelModel):
    session_id: Optional[str] = None
    message: Optional[str] = None


class ChatEndRequest(CamelModel):
    session_id: Optional[str] = None


class OTCRecommendationRequest(CamelModel):
    symptoms: Any = None
    age: Optional[Any] = None
    weight: Optional[Any] = None
    allergies: list[str] = Field(default_factory=list)
    current_medications: list[str] = Field(default_factory=list)


class PrescriptionRequest(CamelModel):
    text: Optional[str] = None


class ScanRequest(CamelModel):
    ocr_text: Optional[str] = None


class DonationReportRequest(CamelModel):
    donation_info: Optional[dict[str, Any]] = None
