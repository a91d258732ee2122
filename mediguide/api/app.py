"""
FastAPI application factory.
"""

import asyncio
import contextlib
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mediguide.api.container import ServiceContainer, build_services
from mediguide.api.routes import router
from mediguide.config import Settings, get_settings
from mediguide.errors import InvalidInputError, NotFoundError
from mediguide.utils.logger import configure_logging, get_logger, set_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def sweep_periodically(services: ServiceContainer, interval: float) -> None:
    """Background loop removing idle sessions and expired cache entries."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = services.sweep()
        except Exception as e:
            logger.error("sweep_failed", exc_info=True, error=str(e))
            continue
        logger.debug("sweep_completed", removed=removed)


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def create_app(
    services: ServiceContainer | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Builds the API application.

    Args:
        services: Pre-built services (tests inject mocks here)
        settings: Settings, defaults to get_settings()

    Returns:
        Configured FastAPI instance
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, use_structured=settings.log_structured)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(
            sweep_periodically(services, settings.sweep_interval_seconds)
        )
        logger.info("app_started", sweep_interval=settings.sweep_interval_seconds)
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            await services.aclose()
            logger.info("app_stopped")

    app = FastAPI(
        title="MediGuide API",
        description="Medicine donation, disposal and assistant services",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            set_request_id(None)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.warning("invalid_request", path=request.url.path, error=exc.error)
        return _error(400, exc.error, exc.message)

    @app.exception_handler(RequestValidationError)
    async def body_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("invalid_request_body", path=request.url.path)
        return _error(400, "Invalid request", "Request body or parameters are malformed")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, exc.error, exc.message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("request_failed", exc_info=True, path=request.url.path, error=str(exc))
        return _error(500, "Internal server error", "Something went wrong. Please try again.")

    app.include_router(router)
    return app
