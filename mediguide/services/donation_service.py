"""
Donation and disposal flow: classifies a medicine and, when it can be
donated, attaches the nearest donation centers.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any

from mediguide.errors import InvalidInputError
from mediguide.models.domain import (
    Coordinates,
    DispositionKind,
    Facility,
    MedicineState,
    RankedFacility,
)
from mediguide.services.eligibility_service import DISPOSAL_GUIDELINES, classify
from mediguide.services.places_service import PlacesService
from mediguide.utils.prompts import load_catalog, load_prompts
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)
PROMPTS = load_prompts()

SOURCE_SAMPLE = "Sample data"


def sample_centers() -> list[Facility]:
    """Static example centers shown when no live result is available."""
    return [
        Facility(**center, source_verified=False)
        for center in load_catalog()["sample_centers"]
    ]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DonationService:
    """
    Service combining the eligibility classifier with the places lookup.
    """

    def __init__(self, places_service: PlacesService):
        self.places_service = places_service

    async def recommend(
        self,
        medicine_info: dict[str, Any] | None,
        location: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Builds the keep/donate/dispose/consult recommendation for a medicine.

        Args:
            medicine_info: Raw medicine attributes from the client
            location: Optional free-text location used for donation centers
            today: Evaluation date, defaults to the local calendar date

        Returns:
            Recommendation payload; donate outcomes include nearbyCenters

        Raises:
            InvalidInputError: If medicine_info is missing
        """
        if not medicine_info:
            raise InvalidInputError(
                "Please provide medicine information for recommendation",
                error="Missing medicine information",
            )

        state = MedicineState.model_validate(medicine_info)
        disposition = classify(state, today=today)

        result: dict[str, Any] = {
            "recommendation": disposition.kind.value,
            "rule": disposition.rule,
            "reasoning": disposition.reasoning,
            "instructions": list(disposition.instructions),
            "resources": list(disposition.resources),
            "warnings": list(disposition.warnings),
        }

        if disposition.kind == DispositionKind.DISPOSE:
            result["guidelines"] = DISPOSAL_GUIDELINES
        elif disposition.kind == DispositionKind.DONATE:
            result.update(await self._donation_centers(location))

        result["medicineInfo"] = medicine_info
        result["timestamp"] = _utc_now()
        return result

    async def _donation_centers(self, location: str | None) -> dict[str, Any]:
        search = await self.places_service.find_nearby(location=location)
        texts = PROMPTS["donation"]

        if search.centers:
            return {
                "nearbyCenters": _centers(search.centers),
                "geocodedCenter": _point(search.geocoded_center),
                "source": search.source,
                "message": texts["found_centers_template"].format(
                    location=location or "you"
                ),
            }

        logger.warning("donation_centers_fallback", location=location)
        return {
            "nearbyCenters": [c.to_payload() for c in sample_centers()],
            "geocodedCenter": _point(search.geocoded_center),
            "source": SOURCE_SAMPLE,
            "message": texts["sample_centers_message"],
        }

    async def find_centers(
        self,
        location: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
    ) -> dict[str, Any]:
        """
        Lists donation centers around coordinates or a location text.

        Coordinates win over text. Without any search input the sample
        centers are returned; a search that finds nothing returns no centers.
        """
        if lat is not None and lng is not None:
            search = await self.places_service.find_nearby(
                coords=Coordinates(lat=lat, lon=lng)
            )
            search_location = f"{lat}, {lng}"
        elif location and location.strip():
            search = await self.places_service.find_nearby(location=location)
            search_location = location
        else:
            samples = sample_centers()
            return {
                "centers": [c.to_payload() for c in samples],
                "geocodedCenter": None,
                "total": len(samples),
                "searchLocation": "Default",
                "source": SOURCE_SAMPLE,
            }

        return {
            "centers": _centers(search.centers),
            "geocodedCenter": _point(search.geocoded_center),
            "total": len(search.centers),
            "searchLocation": search_location,
            "source": search.source,
        }

    @staticmethod
    def disposal_guidelines() -> dict[str, Any]:
        return {"guidelines": DISPOSAL_GUIDELINES, "lastUpdated": _utc_now()}

    @staticmethod
    def report_donation(donation_info: dict[str, Any] | None) -> dict[str, Any]:
        """
        Acknowledges a donation. Reports are not stored anywhere.

        Raises:
            InvalidInputError: If donation_info is missing
        """
        if not donation_info:
            raise InvalidInputError(
                "Please provide donation details", error="Missing donation information"
            )

        report_id = f"DON-{uuid.uuid4().hex[:12].upper()}"
        logger.info("donation_reported", report_id=report_id)
        return {
            "reportId": report_id,
            "status": "recorded",
            "message": PROMPTS["donation"]["report_thanks"],
            "donationInfo": donation_info,
            "submittedAt": _utc_now(),
        }


def _centers(centers: list[RankedFacility]) -> list[dict[str, Any]]:
    return [c.as_center() for c in centers]


def _point(point: Coordinates | None) -> dict[str, float] | None:
    return point.to_payload() if point is not None else None

