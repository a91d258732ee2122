"""
Integration tests for the HTTP API.
Runs real services behind FastAPI; only the map lookups are mocked.
"""

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient

from mediguide.api import ServiceContainer, create_app
from mediguide.api.container import build_services
from mediguide.config import Settings
from mediguide.models.domain import NearbySearch
from mediguide.services.assistant_service import AssistantService
from mediguide.services.chat_service import ChatService
from mediguide.services.donation_service import DonationService
from mediguide.services.otc_service import OTCService
from mediguide.services.places_service import PlacesService
from mediguide.storage.memory_store import InMemoryStore


@pytest.fixture
def places_service():
    """Mock places service finding nothing by default."""
    service = Mock(spec=PlacesService)
    service.find_nearby = AsyncMock(return_value=NearbySearch())
    return service


@pytest.fixture
def services(places_service, details_cache) -> ServiceContainer:
    """Service graph with no LLM configured, so every AI feature uses fallbacks."""
    assistant = AssistantService(None, details_cache)
    return ServiceContainer(
        assistant=assistant,
        chat=ChatService(assistant, InMemoryStore()),
        donation=DonationService(places_service),
        otc=OTCService(assistant),
        caches=[details_cache],
    )


@pytest.fixture
def client(services):
    settings = Settings(log_structured=False, sweep_interval_seconds=3600)
    app = create_app(services=services, settings=settings)
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.integration
class TestHealth:
    """Tests for the health check and request ids."""

    def test_health(self, client):
        """Should report ok and whether an LLM is configured."""
        # Act
        response = client.get("/health")

        # Assert
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["llmConfigured"] is False

    def test_request_id_is_echoed(self, client):
        """Should echo a client-supplied request id."""
        # Act
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        # Assert
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        """Should generate a request id when none is sent."""
        # Act
        response = client.get("/health")

        # Assert
        assert response.headers["X-Request-ID"]

    def test_lifespan_starts_and_stops(self, services):
        """Should run the app lifespan with the sweep task cleanly."""
        # Arrange
        app = create_app(services=services, settings=Settings(log_structured=False))

        # Act / Assert
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200


@pytest.mark.integration
class TestServiceWiring:
    """Tests for building the service graph from settings."""

    @pytest.mark.asyncio
    async def test_map_lookups_use_remote_retry_settings(self):
        """Should configure map retries from remote_* and not from llm_* settings."""
        # Arrange
        settings = Settings(
            log_structured=False,
            remote_max_attempts=2,
            remote_initial_delay=0.5,
            llm_max_attempts=5,
            llm_initial_delay=9.0,
        )

        # Act
        container = build_services(settings)

        # Assert
        places = container.donation.places_service
        assert places.max_attempts == 2
        assert places.initial_delay == 0.5
        await container.aclose()


@pytest.mark.integration
class TestRecommendationEndpoint:
    """Tests for POST /recommendation."""

    def test_donate_flow_with_sample_centers(self, client, donatable_medicine):
        """Should recommend donating with sample centers when none are found."""
        # Act
        response = client.post(
            "/recommendation", json={"medicineInfo": donatable_medicine}
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["recommendation"] == "donate"
        assert data["source"] == "Sample data"
        assert len(data["nearbyCenters"]) == 2

    def test_expired_medicine_is_disposed(self, client, donatable_medicine):
        """Should recommend disposal with guidelines for an expired medicine."""
        # Arrange
        medicine = {**donatable_medicine, "expiryDate": "2001-01-01"}

        # Act
        response = client.post("/recommendation", json={"medicineInfo": medicine})

        # Assert
        assert response.json()["recommendation"] == "dispose"
        assert "guidelines" in response.json()

    def test_missing_medicine_info_is_400(self, client):
        """Should answer 400 with the error envelope when medicineInfo is missing."""
        # Act
        response = client.post("/recommendation", json={})

        # Assert
        assert response.status_code == 400
        assert response.json() == {
            "error": "Missing medicine information",
            "message": "Please provide medicine information for recommendation",
        }

    def test_malformed_body_is_400(self, client):
        """Should map a malformed body to 400."""
        # Act
        response = client.post("/recommendation", json={"medicineInfo": "not an object"})

        # Assert
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_unexpected_error_is_500(self, client, places_service, donatable_medicine):
        """Should answer 500 without leaking the error text."""
        # Arrange
        places_service.find_nearby.side_effect = RuntimeError("boom")

        # Act
        response = client.post(
            "/recommendation",
            json={"medicineInfo": donatable_medicine, "location": "Pune"},
        )

        # Assert
        assert response.status_code == 500
        assert "boom" not in response.text


@pytest.mark.integration
class TestDonationEndpoints:
    """Tests for donation centers, guidelines and reports."""

    def test_centers_by_coordinates(self, client, places_service):
        """Should search around the given coordinates."""
        # Act
        response = client.get("/donation-centers", params={"lat": 12.97, "lng": 77.59})

        # Assert
        assert response.status_code == 200
        assert response.json()["searchLocation"] == "12.97, 77.59"
        places_service.find_nearby.assert_awaited_once()

    def test_centers_default(self, client):
        """Should list the sample centers without a location."""
        # Act
        response = client.get("/donation-centers")

        # Assert
        assert response.json()["searchLocation"] == "Default"
        assert response.json()["total"] == 2

    def test_disposal_guidelines(self, client):
        """Should return the disposal guidelines."""
        # Act
        response = client.get("/disposal-guidelines")

        # Assert
        assert response.status_code == 200
        assert response.json()["guidelines"]["safeDisposal"]

    def test_report_donation(self, client):
        """Should record a reported donation."""
        # Act
        response = client.post(
            "/donations/report", json={"donationInfo": {"medicine": "Cetirizine"}}
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["status"] == "recorded"

    def test_report_without_info_is_400(self, client):
        """Should reject a report without donation details."""
        # Act
        response = client.post("/donations/report", json={})

        # Assert
        assert response.status_code == 400


@pytest.mark.integration
class TestChatEndpoints:
    """Tests for the chat session flow."""

    def test_full_session(self, client):
        """Should start, exchange, read and end a session."""
        # Arrange
        session_id = client.post("/chat/start").json()["sessionId"]

        # Act
        reply = client.post(
            "/chat/message", json={"sessionId": session_id, "message": "hello"}
        )
        history = client.get(f"/chat/history/{session_id}")
        ended = client.post("/chat/end", json={"sessionId": session_id})

        # Assert
        assert reply.status_code == 200
        assert "not configured" in reply.json()["botMessage"]["message"]
        assert history.json()["messageCount"] == 3
        assert ended.json()["messageCount"] == 3
        assert client.get(f"/chat/history/{session_id}").status_code == 404

    def test_message_without_fields_is_400(self, client):
        """Should reject a message without a session id."""
        # Act
        response = client.post("/chat/message", json={"message": "hello"})

        # Assert
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_message_to_unknown_session_is_404(self, client):
        """Should answer 404 for an unknown session."""
        # Act
        response = client.post(
            "/chat/message", json={"sessionId": "chat_missing", "message": "hello"}
        )

        # Assert
        assert response.status_code == 404
        assert response.json()["error"] == "Session not found"

    def test_quick_replies(self, client):
        """Should list the six quick replies."""
        # Act
        response = client.get("/chat/quick-replies")

        # Assert
        assert response.json()["total"] == 6


@pytest.mark.integration
class TestOTCEndpoints:
    """Tests for the OTC endpoints."""

    def test_recommendations_fallback(self, client):
        """Should return fallback advice echoing the user info."""
        # Act
        response = client.post(
            "/otc/recommendations", json={"symptoms": "headache", "age": 30}
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["query"]["userInfo"]["age"] == 30

    def test_recommendations_require_symptoms(self, client):
        """Should reject symptoms shorter than two characters."""
        # Act
        response = client.post("/otc/recommendations", json={"symptoms": "a"})

        # Assert
        assert response.status_code == 400

    def test_search(self, client):
        """Should put the fallback AI result first."""
        # Act
        response = client.get("/otc/search", params={"query": "paracetamol"})

        # Assert
        results = response.json()["results"]
        assert results[0]["isAIResult"] is True
        assert results[0]["name"] == "paracetamol"

    def test_search_without_query_is_400(self, client):
        """Should reject a search without a query."""
        assert client.get("/otc/search").status_code == 400

    def test_categories_and_suggestions(self, client):
        """Should serve categories and name suggestions."""
        # Act
        categories = client.get("/otc/categories").json()
        suggestions = client.get("/otc/suggestions", params={"query": "tyl"}).json()

        # Assert
        assert categories["total"] == 6
        assert suggestions["suggestions"] == ["Tylenol"]


@pytest.mark.integration
class TestDocumentEndpoints:
    """Tests for prescription and scan analysis."""

    def test_prescription_fallback(self, client):
        """Should return the fallback analysis without an LLM."""
        # Act
        response = client.post("/prescriptions/analyze", json={"text": "Rx: Metformin"})

        # Assert
        assert response.status_code == 200
        assert response.json()["analysis"]["summary"]

    def test_prescription_requires_text(self, client):
        """Should reject a request without prescription text."""
        assert client.post("/prescriptions/analyze", json={}).status_code == 400

    def test_scan_fallback(self, client):
        """Should return the fallback scan analysis without an LLM."""
        # Act
        response = client.post("/scans/analyze", json={"ocrText": "EXP 12/2026"})

        # Assert
        assert response.status_code == 200
        assert response.json()["analysis"]["expiryDate"]

    def test_scan_requires_text(self, client):
        """Should reject blank scanned text."""
        assert client.post("/scans/analyze", json={"ocrText": " "}).status_code == 400
