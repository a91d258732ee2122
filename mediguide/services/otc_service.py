"""
Over-the-counter medicine lookups: AI recommendations, search, categories
and autocomplete suggestions.
"""

from datetime import datetime, timezone
from typing import Any

from mediguide.errors import InvalidInputError
from mediguide.services.assistant_service import AssistantService
from mediguide.utils.prompts import load_catalog
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)

MIN_SYMPTOMS_LENGTH = 2
MAX_SUGGESTIONS = 10


class OTCService:
    """
    Service for OTC features, delegating AI work to AssistantService.
    """

    def __init__(self, assistant: AssistantService):
        self.assistant = assistant

    async def recommend(
        self,
        symptoms: Any,
        age: Any = None,
        weight: Any = None,
        allergies: list[str] | None = None,
        current_medications: list[str] | None = None,
    ) -> dict[str, Any]:
        """
        Returns OTC recommendations for the described symptoms.

        Raises:
            InvalidInputError: If symptoms is not a string of at least 2 characters
        """
        if not isinstance(symptoms, str) or len(symptoms.strip()) < MIN_SYMPTOMS_LENGTH:
            raise InvalidInputError(
                "Please provide symptoms description (minimum 2 characters)",
                error="Invalid symptoms",
            )

        user_info = {
            "age": age,
            "weight": weight,
            "allergies": allergies or [],
            "currentMedications": current_medications or [],
        }
        recommendations = await self.assistant.get_otc_recommendations(symptoms, user_info)
        return {
            **recommendations,
            "query": {"symptoms": symptoms, "userInfo": user_info},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def search(self, query: str | None) -> dict[str, Any]:
        """
        Searches a medicine: the AI lookup comes first, followed by catalog
        entries matching by name or category that the AI result does not
        already cover.

        Raises:
            InvalidInputError: If the query is empty
        """
        if not query or not query.strip():
            raise InvalidInputError("Please provide a search term", error="Invalid search query")

        results: list[dict[str, Any]] = []
        ai_result = await self.assistant.get_medicine_details(query)
        if ai_result:
            results.append({**ai_result, "isAIResult": True})

        needle = query.strip().lower()
        ai_name = (ai_result or {}).get("name", "").lower()
        for sample in load_catalog()["otc_samples"]:
            matches = needle in sample["name"].lower() or needle in sample["category"].lower()
            if matches and sample["name"].lower() != ai_name:
                results.append(dict(sample))

        logger.info("otc_search_completed", query=query, results=len(results))
        return {"results": results, "query": query, "total": len(results)}

    @staticmethod
    def categories() -> dict[str, Any]:
        categories = list(load_catalog()["otc_categories"])
        return {"categories": categories, "total": len(categories)}

    @staticmethod
    def suggestions(query: str | None) -> dict[str, Any]:
        """Autocompletes common medicine names (case-insensitive substring)."""
        if not query:
            return {"suggestions": [], "total": 0}

        needle = query.lower()
        matches = [
            name for name in load_catalog()["common_medicines"] if needle in name.lower()
        ][:MAX_SUGGESTIONS]
        return {"suggestions": matches, "total": len(matches)}
