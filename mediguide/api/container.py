"""
Wiring of the service graph. Built once per app and stored on app.state.
"""

from dataclasses import dataclass, field

import httpx

from mediguide.config import Settings
from mediguide.services.assistant_service import AssistantService
from mediguide.services.cache import TTLCache
from mediguide.services.chat_service import ChatService
from mediguide.services.donation_service import DonationService
from mediguide.services.llm_service import LLMService, create_llm
from mediguide.services.otc_service import OTCService
from mediguide.services.places_service import PlacesService
from mediguide.storage.memory_store import InMemoryStore
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    assistant: AssistantService
    chat: ChatService
    donation: DonationService
    otc: OTCService
    caches: list[TTLCache] = field(default_factory=list)
    http_client: httpx.AsyncClient | None = None

    def sweep(self) -> int:
        """Drops idle chat sessions and expired cache entries."""
        removed = self.chat.sweep_idle_sessions()
        for cache in self.caches:
            removed += cache.sweep()
        return removed

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def build_llm_service(settings: Settings) -> LLMService | None:
    """Returns the LLM gateway, or None when the provider key is missing."""
    api_key = settings.api_key_for(settings.assistant_model)
    if not api_key:
        logger.warning("llm_not_configured", model=settings.assistant_model)
        return None

    model = create_llm(settings.assistant_model, api_key, temperature=0.3)
    return LLMService(
        model,
        max_attempts=settings.llm_max_attempts,
        initial_delay=settings.llm_initial_delay,
        timeout=settings.llm_timeout,
        rate_limit=settings.llm_rate_limit,
    )


def build_services(settings: Settings) -> ServiceContainer:
    """
    Creates every service with its caches and the shared HTTP client.

    Args:
        settings: Application settings

    Returns:
        Fully wired ServiceContainer
    """
    client = httpx.AsyncClient(
        headers={"User-Agent": settings.http_user_agent},
        timeout=settings.http_timeout,
    )
    geocode_cache = TTLCache(ttl=settings.cache_ttl_seconds, name="geocode")
    details_cache = TTLCache(ttl=settings.cache_ttl_seconds, name="medicine_details")

    places = PlacesService(
        client,
        geocode_cache,
        nominatim_url=settings.nominatim_url,
        overpass_endpoints=settings.overpass_endpoints,
        search_radius_km=settings.search_radius_km,
        overpass_radius_m=settings.overpass_radius_m,
        country_hint=settings.geocode_country_hint,
        max_attempts=settings.remote_max_attempts,
        initial_delay=settings.remote_initial_delay,
    )
    assistant = AssistantService(build_llm_service(settings), details_cache)

    logger.info(
        "services_built",
        model=settings.assistant_model,
        llm_configured=assistant.configured,
    )
    return ServiceContainer(
        assistant=assistant,
        chat=ChatService(
            assistant, InMemoryStore(), idle_timeout=settings.session_idle_seconds
        ),
        donation=DonationService(places),
        otc=OTCService(assistant),
        caches=[geocode_cache, details_cache],
        http_client=client,
    )
