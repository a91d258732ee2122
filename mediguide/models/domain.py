"""
Domain models for medicine disposition, facilities and chat sessions.
All models serialize with camelCase keys to match the browser client.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TRUTHY = {"true", "1", "yes", "y", "on"}


class CamelModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class MedicineType(str, Enum):
    OTC = "otc"
    PRESCRIPTION = "prescription"
    CONTROLLED = "controlled"
    UNKNOWN = "unknown"


class Condition(str, Enum):
    UNOPENED = "unopened"
    OPENED = "opened"
    PARTIAL = "partial"


class DispositionKind(str, Enum):
    KEEP = "keep"
    DONATE = "donate"
    DISPOSE = "dispose"
    CONSULT = "consult"


class FacilityType(str, Enum):
    HOSPITAL = "hospital"
    PHARMACY = "pharmacy"
    CLINIC = "clinic"


def _pick(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return bool(value)


def parse_expiry_date(value: Any) -> date | None:
    """
    Parses an expiry value into a calendar date.

    Datetimes are truncated to their date; ISO strings may carry a time part.
    Anything unparseable yields None instead of an error.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower().replace("-", "_")
        for member in enum_cls:
            if member.value == normalized:
                return member
    return default


class MedicineState(CamelModel):
    """
    Attributes of a medicine the user wants to get rid of.

    Unknown or malformed input never raises: unrecognised medicine types
    become UNKNOWN, unparseable dates become None, and an unrecognised
    condition becomes None (treated as not unopened). When expiry_known is
    false the expiry date is ignored by every rule.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    expiry_date: date | None = None
    expiry_known: bool = False
    condition: Condition | None = None
    medicine_type: MedicineType = MedicineType.UNKNOWN

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        expiry_date = parse_expiry_date(_pick(data, "expiryDate", "expiry_date"))

        explicit_known = _pick(data, "expiryKnown", "expiry_known")
        not_available = _pick(data, "expiryNotAvailable", "expiry_not_available")
        # expiryNotAvailable wins over a conflicting expiryKnown
        if not_available is not None and _as_flag(not_available):
            expiry_known = False
        elif explicit_known is not None:
            expiry_known = _as_flag(explicit_known)
        else:
            expiry_known = expiry_date is not None

        # "not-sure" is what the client sends for an unidentified medicine
        medicine_type = _coerce_enum(
            MedicineType,
            _pick(data, "medicineType", "medicine_type"),
            MedicineType.UNKNOWN,
        )

        return {
            "expiry_date": expiry_date,
            "expiry_known": expiry_known,
            "condition": _coerce_enum(
                Condition, _pick(data, "condition"), None
            ),
            "medicine_type": medicine_type,
        }


class Disposition(CamelModel):
    """Verdict of the eligibility classifier. Built fresh for every call."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    kind: DispositionKind
    rule: str
    reasoning: str
    instructions: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class Coordinates(CamelModel):
    lat: float
    lon: float


class Facility(CamelModel):
    """A hospital, pharmacy or clinic able to accept or dispose of medicines."""

    name: str
    address: str
    phone: str | None = None
    coordinates: Coordinates
    facility_type: FacilityType
    source_verified: bool = False
    hours: str | None = None
    accepts: list[str] = Field(
        default_factory=lambda: ["Unopened", "Sealed", "Unexpired"]
    )


class RankedFacility(CamelModel):
    facility: Facility
    distance_km: float

    def as_center(self) -> dict[str, Any]:
        """Flattens the facility and its distance into one API payload."""
        payload = self.facility.to_payload()
        payload["distanceKm"] = round(self.distance_km, 2)
        return payload


class NearbySearch(CamelModel):
    centers: list[RankedFacility] = Field(default_factory=list)
    geocoded_center: Coordinates | None = None
    source: str = "OpenStreetMap"


class ChatMessage(CamelModel):
    id: str
    message: str
    sender: Literal["user", "bot"]
    timestamp: datetime
    type: Literal["text", "quick_reply", "suggestion"] = "text"


class ChatSession(CamelModel):
    """
    In-memory conversation with the assistant.

    Attributes:
        id: Session identifier handed to the client
        messages: Ordered transcript, greeting first
        context: Accumulated "User: ... / Bot: ..." text fed back to the LLM
        created_at: Creation time (UTC)
        last_activity: Time of the last exchanged message (UTC)
    """

    id: str
    messages: list[ChatMessage] = Field(default_factory=list)
    context: str = ""
    created_at: datetime
    last_activity: datetime
