# app/transport/http_app.py
"""
HTTP application for pet status changes and third-party reports.

Routes are thin: parse payload -> call StatusTransitionHandler -> map
LostFoundError -> return JSON.  Notification delivery happens in detached
tasks and never changes the response.

Endpoints:
- PATCH /animals/{animal_id}/status        owner marks lost / found
- POST  /animals/{animal_id}/report-found  someone found the pet
- POST  /animals/{animal_id}/report-lost   someone reports the pet missing
- GET   /health
- GET   /metrics                          counters and send-time histograms
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import Settings, settings
from app.core.lost_found import (
    AuthorizationResolver,
    CallerCredentials,
    EventKind,
    LostFoundError,
    NotificationDispatcher,
    StatusTransitionHandler,
    ThirdPartyContact,
    TransitionContext,
)
from app.infra.background_tasks import drain
from app.infra.db_async import close_pool, init_pool
from app.infra.http_client import close_all_sessions
from app.infra.identity_service import HttpIdentityService
from app.infra.logging_config import setup_logging, get_logger
from app.infra.metrics import get_metrics_collector
from app.infra.memory_store import InMemoryAnimalRepository, InMemoryContactPreferencesStore
from app.infra.notification_channels import build_channels
from app.infra.pg_animal_repo_async import (
    AsyncPostgresAnimalRepository,
    AsyncPostgresContactPreferencesStore,
)
from app.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)
from app.transport.schemas import (
    ReportFoundIn,
    ReportLostIn,
    ReportOut,
    StatusUpdateIn,
    StatusUpdateOut,
)
from app.transport.security import (
    get_caller_credentials,
    require_metrics_auth,
    SecurityHeaders,
    sanitize_error_message,
)

# Initialize logging first
setup_logging(
    level=settings.log_level,
    use_json=settings.is_production
)

logger = get_logger(__name__)

REPORT_THANKS = "Thank you for reporting! The owner has been notified."


# ============================================================================
# SERVICE WIRING
# ============================================================================

@dataclass
class LostFoundServices:
    handler: StatusTransitionHandler
    dispatcher: NotificationDispatcher


def build_services(cfg: Settings = settings) -> LostFoundServices:
    """Wire repositories, identity service and channels from settings."""
    if cfg.storage_backend == "postgres":
        animals = AsyncPostgresAnimalRepository()
        preferences = AsyncPostgresContactPreferencesStore()
    else:
        animals = InMemoryAnimalRepository()
        preferences = InMemoryContactPreferencesStore()

    identity = HttpIdentityService(
        cfg.identity_base_url,
        cfg.identity_service_key,
        timeout_seconds=cfg.identity_timeout_seconds,
    )
    email_channel, sms_channel = build_channels(cfg)

    dispatcher = NotificationDispatcher(
        animals=animals,
        preferences=preferences,
        identity=identity,
        email_channel=email_channel,
        sms_channel=sms_channel,
        app_name=cfg.app_name,
        timeout_seconds=cfg.channel_timeout_seconds,
        max_text_length=cfg.max_free_text_length,
    )
    handler = StatusTransitionHandler(
        animals=animals,
        resolver=AuthorizationResolver(identity),
        dispatcher=dispatcher,
        max_text_length=cfg.max_free_text_length,
    )
    return LostFoundServices(handler=handler, dispatcher=dispatcher)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_handler(request: Request) -> StatusTransitionHandler:
    """Get transition handler from app state"""
    return request.app.state.services.handler


def _to_http(exc: LostFoundError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


def _parse(model, payload: dict):
    try:
        return model(**payload)
    except PydanticValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc))


def _validation_detail(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid payload: " + "; ".join(parts)


# ============================================================================
# MIDDLEWARE FOR SECURITY HEADERS
# ============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        return SecurityHeaders.add_security_headers(response)


# ============================================================================
# CREATE APP
# ============================================================================

def create_app(services: LostFoundServices | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    When ``services`` is given (tests), it is used as-is and the lifespan
    does not touch the database or build channels.
    """

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        # STARTUP
        logger.info(
            f"Starting application: env={settings.app_env}, storage={settings.storage_backend}"
        )

        owns_pool = False
        if getattr(fastapi_app.state, "services", None) is None:
            if settings.storage_backend == "postgres":
                await init_pool()
                owns_pool = True
            fastapi_app.state.services = build_services(settings)

        logger.info("Application startup complete")

        yield

        # SHUTDOWN
        logger.info("Shutting down application")

        # Let in-flight notifications finish before closing their sessions
        await drain()
        await close_all_sessions()

        if owns_pool:
            await close_pool()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Pawtrail",
        description="Lost/found status changes and owner notifications",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )
    app.state.services = services

    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[],
            allow_credentials=False,
            allow_methods=["GET", "POST", "PATCH"],
            allow_headers=["Content-Type", "Authorization"],
        )
    else:
        # More permissive in dev
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware, enabled=settings.enable_request_logging)
    app.add_middleware(RequestIDMiddleware)

    _register_exception_handlers(app)
    _register_routes(app)
    return app


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with appropriate logging"""
        if exc.status_code >= 500:
            logger.error(f"Server error: {exc.detail}", extra={"status_code": exc.status_code})

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Bad bodies and non-UUID path ids are client errors (400, not 422)"""
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unhandled exception: {exc.__class__.__name__}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={"error": sanitize_error_message(exc, settings.is_production)},
        )


# ============================================================================
# ROUTES
# ============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    def health():
        """Basic health check - PUBLIC endpoint."""
        return {"status": "healthy"}

    @app.get("/metrics", dependencies=[Depends(require_metrics_auth)])
    def metrics():
        """Transition and delivery counters (JSON)."""
        return get_metrics_collector().get_metrics()

    @app.patch("/animals/{animal_id}/status")
    async def update_status(
        animal_id: UUID,
        payload: dict,
        handler: StatusTransitionHandler = Depends(get_handler),
        caller: CallerCredentials = Depends(get_caller_credentials),
    ):
        """Owner marks the animal lost (anyone with the link) or found (owner only)."""
        req = _parse(StatusUpdateIn, payload)
        try:
            result = await handler.apply_transition(
                str(animal_id),
                req.status,
                TransitionContext(
                    caller=caller,
                    last_seen_location=req.last_seen_location,
                    lost_message=req.lost_message,
                ),
            )
        except LostFoundError as exc:
            raise _to_http(exc)

        return StatusUpdateOut(
            animal=result.animal.to_dict(),
            prev_lost=result.previous_lost,
            new_lost=result.new_lost,
            status_changed=result.changed,
            notification_scheduled=result.notification_scheduled,
        ).model_dump()

    @app.post("/animals/{animal_id}/report-found")
    async def report_found(
        animal_id: UUID,
        payload: dict,
        handler: StatusTransitionHandler = Depends(get_handler),
    ):
        """Someone other than the owner found the animal."""
        req = _parse(ReportFoundIn, payload)
        try:
            scheduled = await handler.submit_report(
                str(animal_id),
                EventKind.THIRD_PARTY_REPORTED_FOUND,
                ThirdPartyContact(name=req.finder_name, email=req.finder_email),
                req.found_location,
            )
        except LostFoundError as exc:
            raise _to_http(exc)
        return ReportOut(notification_scheduled=scheduled, message=REPORT_THANKS).model_dump()

    @app.post("/animals/{animal_id}/report-lost")
    async def report_lost(
        animal_id: UUID,
        payload: dict,
        handler: StatusTransitionHandler = Depends(get_handler),
    ):
        """Someone other than the owner reports the animal missing."""
        req = _parse(ReportLostIn, payload)
        try:
            scheduled = await handler.submit_report(
                str(animal_id),
                EventKind.THIRD_PARTY_REPORTED_LOST,
                ThirdPartyContact(name=req.reporter_name, email=req.reporter_email),
                req.last_seen_location,
            )
        except LostFoundError as exc:
            raise _to_http(exc)
        return ReportOut(notification_scheduled=scheduled, message=REPORT_THANKS).model_dump()


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.transport.http_app:app",
        host="0.0.0.0",
        port=8099,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
        access_log=False,  # RequestLoggingMiddleware covers this
        server_header=False,
        date_header=False,
    )
