"""
Shared test fixtures and configuration.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, Mock
from langchain_core.messages import AIMessage

from mediguide.models.domain import Coordinates, Facility, FacilityType
from mediguide.services.cache import TTLCache
from mediguide.services.llm_service import LLMService
from mediguide.storage.memory_store import InMemoryStore


class FakeClock:
    """Manually advanced clock for TTL and idle-time tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(fake_clock) -> InMemoryStore:
    """In-memory store driven by the fake clock."""
    return InMemoryStore(clock=fake_clock)


@pytest.fixture
def details_cache(store) -> TTLCache:
    return TTLCache(store=store, ttl=3600, name="test")


@pytest.fixture
def mock_async_llm():
    """Mock chat model for testing without API calls."""
    llm = AsyncMock()
    response = AIMessage(content="Mocked async response")
    response.usage_metadata = {
        "input_tokens": 100,
        "output_tokens": 50,
        "total_tokens": 150,
    }
    llm.ainvoke = AsyncMock(return_value=response)
    return llm


@pytest.fixture
def llm_service():
    """Mock LLM service for testing."""
    service = Mock(spec=LLMService)
    service.generate_json = AsyncMock()
    service.invoke_with_retry = AsyncMock(return_value=AIMessage(content="Mocked reply"))
    return service


@pytest.fixture
def today() -> date:
    return date(2025, 6, 15)


@pytest.fixture
def utc_start() -> datetime:
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def donatable_medicine() -> dict:
    """Client payload for an unopened OTC medicine expiring a year from now."""
    return {
        "name": "Paracetamol 500mg",
        "expiryDate": (date.today() + timedelta(days=365)).isoformat(),
        "condition": "unopened",
        "medicineType": "otc",
    }


@pytest.fixture
def origin() -> Coordinates:
    return Coordinates(lat=12.9716, lon=77.5946)


@pytest.fixture
def make_facility():
    """Factory for verified pharmacies at a given position."""

    def build(name: str, lat: float, lon: float) -> Facility:
        return Facility(
            name=name,
            address="Address on map",
            coordinates=Coordinates(lat=lat, lon=lon),
            facility_type=FacilityType.PHARMACY,
            source_verified=True,
        )

    return build


@pytest.fixture
def overpass_payload() -> dict:
    """Overpass answer with a node, a way (center only) and an unusable element."""
    return {
        "elements": [
            {
                "type": "node",
                "id": 1,
                "lat": 12.9720,
                "lon": 77.5950,
                "tags": {
                    "amenity": "pharmacy",
                    "name": "Apollo Pharmacy",
                    "addr:housenumber": "12",
                    "addr:street": "MG Road",
                    "addr:city": "Bengaluru",
                    "phone": "+91 80 1234 5678",
                },
            },
            {
                "type": "way",
                "id": 2,
                "center": {"lat": 12.9800, "lon": 77.6000},
                "tags": {"amenity": "hospital", "name": "St. Martha's Hospital"},
            },
            {"type": "relation", "id": 3, "tags": {"amenity": "clinic"}},
        ]
    }
