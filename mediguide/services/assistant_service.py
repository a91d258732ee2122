"""
Assistant features backed by the LLM: document explanation, medicine strip
reading, OTC advice, chat replies and medicine lookups.

Every public method returns a usable payload. Remote failures and
unparseable answers are logged and replaced with the static fallbacks from
prompts.yaml, so no raw provider error reaches the user.
"""

import copy
from datetime import date, timedelta
from typing import Any

from mediguide.errors import ParseError, RemoteUnavailableError
from mediguide.models.schemas import (
    MedicineDetails,
    OTCAdvice,
    PrescriptionAnalysis,
    ScanAnalysis,
)
from mediguide.models.domain import parse_expiry_date
from mediguide.services.cache import TTLCache
from mediguide.services.eligibility_service import is_expired
from mediguide.services.llm_service import LLMService, message_text
from mediguide.utils.prompts import load_prompts
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)
PROMPTS = load_prompts()

CHAT_CONTEXT_LIMIT = 2000
FALLBACK_EXPIRY_DAYS = 365


def _fallback(section: str) -> dict[str, Any]:
    return copy.deepcopy(PROMPTS[section]["fallback"])


class AssistantService:
    """
    Service for LLM-backed features with deterministic fallbacks.
    """

    def __init__(self, llm_service: LLMService | None, details_cache: TTLCache):
        """
        Initialize assistant service.

        Args:
            llm_service: LLM gateway, or None when no API key is configured
            details_cache: Cache for medicine detail lookups
        """
        self.llm_service = llm_service
        self.details_cache = details_cache

    @property
    def configured(self) -> bool:
        return self.llm_service is not None

    async def analyze_prescription(self, text: str) -> dict[str, Any]:
        """
        Explains a prescription or medical report in plain language.

        Args:
            text: Text extracted from the document

        Returns:
            medications, summary, keyPoints and disclaimer
        """
        if not self.configured:
            return _fallback("prescription")

        prompt = PROMPTS["prescription"]["prompt_template"].format(text=text)
        try:
            analysis = await self.llm_service.generate_json(prompt, PrescriptionAnalysis)
        except (RemoteUnavailableError, ParseError) as e:
            logger.error("prescription_analysis_failed", error=str(e), fallback=True)
            return _fallback("prescription")

        if analysis is None:
            return _fallback("prescription")
        return analysis.to_payload()

    async def analyze_scanned_text(
        self, ocr_text: str, today: date | None = None
    ) -> dict[str, Any]:
        """
        Reads the text of a medicine strip and recommends keep/donate/dispose.

        The model's expiry verdict is not trusted: the extracted date is
        re-checked with the same boundary the eligibility classifier uses.

        Args:
            ocr_text: Text recognised on the package
            today: Evaluation date, defaults to the local calendar date

        Returns:
            name, manufacturer, expiryDate, batchNumber, strength,
            isExpired, recommendation and reasoning
        """
        today = today or date.today()
        if not self.configured:
            return self._scan_fallback(today)

        prompt = PROMPTS["scan"]["prompt_template"].format(ocr_text=ocr_text)
        try:
            analysis = await self.llm_service.generate_json(prompt, ScanAnalysis)
        except (RemoteUnavailableError, ParseError) as e:
            logger.error("scan_analysis_failed", error=str(e), fallback=True)
            return self._scan_fallback(today)

        if analysis is None:
            return self._scan_fallback(today)

        result = analysis.to_payload()
        expiry = parse_expiry_date(analysis.expiry_date)
        if expiry is not None:
            result["isExpired"] = is_expired(expiry, today)
            if result["isExpired"]:
                result["recommendation"] = "dispose"
                result["reasoning"] = PROMPTS["scan"]["expired_reasoning"]
            elif result.get("recommendation") in (None, "", "keep"):
                result["recommendation"] = "donate"
                result["reasoning"] = PROMPTS["scan"]["donate_reasoning"]
        return result

    def _scan_fallback(self, today: date) -> dict[str, Any]:
        fallback = _fallback("scan")
        fallback["expiryDate"] = (today + timedelta(days=FALLBACK_EXPIRY_DAYS)).isoformat()
        return fallback

    async def get_otc_recommendations(
        self, symptoms: str, user_info: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Suggests over-the-counter medicines for the described symptoms.

        Args:
            symptoms: Free-text description
            user_info: Optional age, weight, allergies and currentMedications

        Returns:
            recommendations, generalAdvice, whenToSeeDoctor, safetyNotes, disclaimer
        """
        if not self.configured:
            return _fallback("otc")

        user_info = user_info or {}
        texts = PROMPTS["otc"]
        allergies = user_info.get("allergies") or []
        medications = user_info.get("currentMedications") or []

        prompt = texts["prompt_template"].format(
            symptoms=symptoms,
            age=user_info.get("age") or texts["not_specified"],
            weight=user_info.get("weight") or texts["not_specified"],
            allergies=", ".join(allergies) if allergies else texts["no_allergies"],
            current_medications=(
                ", ".join(medications) if medications else texts["no_medications"]
            ),
        )
        try:
            advice = await self.llm_service.generate_json(prompt, OTCAdvice)
        except (RemoteUnavailableError, ParseError) as e:
            logger.error("otc_recommendations_failed", error=str(e), fallback=True)
            return _fallback("otc")

        if advice is None:
            return _fallback("otc")
        return advice.to_payload()

    async def chat_reply(self, message: str, context: str = "") -> str:
        """
        Answers one chat message given the accumulated conversation.

        Args:
            message: Latest user message
            context: Accumulated transcript (only the tail is sent)

        Returns:
            Reply text, or a canned message when the LLM is unavailable
        """
        texts = PROMPTS["chat"]
        if not self.configured:
            logger.error("chat_llm_not_configured")
            return texts["not_configured"]

        prompt = texts["system_prompt"]
        if context:
            prompt += f"\n\n{texts['history_header']}\n{context[-CHAT_CONTEXT_LIMIT:]}"
        prompt += "\n\n" + texts["question_template"].format(message=message)

        try:
            response = await self.llm_service.invoke_with_retry(prompt)
        except RemoteUnavailableError as e:
            logger.error("chat_reply_failed", error=str(e), fallback=True)
            return texts["fallback_reply"]

        reply = message_text(response).strip()
        if not reply:
            logger.warning("chat_reply_empty", fallback=True)
            return texts["fallback_reply"]
        return reply

    async def get_medicine_details(self, medicine_name: str) -> dict[str, Any] | None:
        """
        Looks up a medicine, caching answers per normalized name.

        Fallback payloads are returned but never cached, so a later call
        retries the lookup.

        Args:
            medicine_name: Name typed by the user

        Returns:
            Details payload, or None when the model does not recognise the name
        """
        if not self.configured:
            return self._details_fallback(medicine_name)

        async def produce() -> dict[str, Any] | None:
            prompt = PROMPTS["medicine_details"]["prompt_template"].format(
                medicine_name=medicine_name
            )
            details = await self.llm_service.generate_json(prompt, MedicineDetails)
            return details.to_payload() if details is not None else None

        try:
            return await self.details_cache.get_cached(medicine_name, produce)
        except (RemoteUnavailableError, ParseError) as e:
            logger.error(
                "medicine_details_failed",
                medicine=medicine_name,
                error=str(e),
                fallback=True,
            )
            return self._details_fallback(medicine_name)

    @staticmethod
    def _details_fallback(medicine_name: str) -> dict[str, Any]:
        fallback = _fallback("medicine_details")
        fallback["name"] = medicine_name
        return fallback
