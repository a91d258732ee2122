"""
Services package exports for business logic layer.
"""

from mediguide.services.llm_service import LLMService, create_llm, LLMError, LLMTimeoutError
from mediguide.services.eligibility_service import classify, is_expired, ELIGIBILITY_RULES
from mediguide.services.resilience import call_with_retry, is_rate_limited
from mediguide.services.cache import TTLCache
from mediguide.services.ranking import haversine_km, rank_by_distance
from mediguide.services.places_service import PlacesService
from mediguide.services.assistant_service import AssistantService
from mediguide.services.donation_service import DonationService
from mediguide.services.chat_service import ChatService
from mediguide.services.otc_service import OTCService

__all__ = [
    "LLMService",
    "create_llm",
    "LLMError",
    "LLMTimeoutError",
    "classify",
    "is_expired",
    "ELIGIBILITY_RULES",
    "call_with_retry",
    "is_rate_limited",
    "TTLCache",
    "haversine_km",
    "rank_by_distance",
    "PlacesService",
    "AssistantService",
    "DonationService",
    "ChatService",
    "OTCService",
]
