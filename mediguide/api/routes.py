"""
HTTP routes. Handlers validate the body shape and delegate to the services
on app.state; service errors are mapped to status codes in app.py.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from mediguide.api.container import ServiceContainer
from mediguide.errors import InvalidInputError
from mediguide.models.schemas import (
    ChatEndRequest,
    ChatMessageRequest,
    DonationReportRequest,
    OTCRecommendationRequest,
    PrescriptionRequest,
    RecommendationRequest,
    ScanRequest,
)

router = APIRouter()


def _services(request: Request) -> ServiceContainer:
    return request.app.state.services


def _require_text(value: str | None, message: str, error: str) -> str:
    if not value or not value.strip():
        raise InvalidInputError(message, error=error)
    return value


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    services = _services(request)
    return {
        "status": "ok",
        "llmConfigured": services.assistant.configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# --- Donation and disposal ---


@router.post("/recommendation")
async def recommendation(body: RecommendationRequest, request: Request) -> dict[str, Any]:
    return await _services(request).donation.recommend(body.medicine_info, body.location)


@router.get("/donation-centers")
async def donation_centers(
    request: Request,
    location: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
) -> dict[str, Any]:
    return await _services(request).donation.find_centers(location, lat=lat, lng=lng)


@router.get("/disposal-guidelines")
async def disposal_guidelines(request: Request) -> dict[str, Any]:
    return _services(request).donation.disposal_guidelines()


@router.post("/donations/report")
async def report_donation(body: DonationReportRequest, request: Request) -> dict[str, Any]:
    return _services(request).donation.report_donation(body.donation_info)


# --- Chat ---


@router.post("/chat/start")
async def chat_start(request: Request) -> dict[str, Any]:
    return _services(request).chat.start_session()


@router.post("/chat/message")
async def chat_message(body: ChatMessageRequest, request: Request) -> dict[str, Any]:
    return await _services(request).chat.send_message(body.session_id, body.message)


@router.get("/chat/history/{session_id}")
async def chat_history(session_id: str, request: Request) -> dict[str, Any]:
    return _services(request).chat.get_history(session_id)


@router.post("/chat/end")
async def chat_end(body: ChatEndRequest, request: Request) -> dict[str, Any]:
    return _services(request).chat.end_session(body.session_id)


@router.get("/chat/quick-replies")
async def chat_quick_replies(request: Request) -> dict[str, Any]:
    return _services(request).chat.quick_replies()


# --- OTC ---


@router.post("/otc/recommendations")
async def otc_recommendations(
    body: OTCRecommendationRequest, request: Request
) -> dict[str, Any]:
    return await _services(request).otc.recommend(
        body.symptoms,
        age=body.age,
        weight=body.weight,
        allergies=body.allergies,
        current_medications=body.current_medications,
    )


@router.get("/otc/search")
async def otc_search(request: Request, query: str | None = None) -> dict[str, Any]:
    return await _services(request).otc.search(query)


@router.get("/otc/categories")
async def otc_categories(request: Request) -> dict[str, Any]:
    return _services(request).otc.categories()


@router.get("/otc/suggestions")
async def otc_suggestions(request: Request, query: str | None = None) -> dict[str, Any]:
    return _services(request).otc.suggestions(query)


# --- Documents ---


@router.post("/prescriptions/analyze")
async def analyze_prescription(body: PrescriptionRequest, request: Request) -> dict[str, Any]:
    text = _require_text(
        body.text, "Please provide the prescription text", error="Missing prescription text"
    )
    analysis = await _services(request).assistant.analyze_prescription(text)
    return {"analysis": analysis, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/scans/analyze")
async def analyze_scan(body: ScanRequest, request: Request) -> dict[str, Any]:
    text = _require_text(
        body.ocr_text, "Please provide the text read from the package", error="Missing scan text"
    )
    analysis = await _services(request).assistant.analyze_scanned_text(text)
    return {"analysis": analysis, "timestamp": datetime.now(timezone.utc).isoformat()}
