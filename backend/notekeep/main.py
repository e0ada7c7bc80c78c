"""
Notekeep Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes service wiring, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app(settings) returns a configured FastAPI
       instance whose services live on `app.state`.
Who:   Called by uvicorn (uvicorn notekeep.main:app) and by the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌────────────┐ ┌─────────┐ ┌──────┐   │
    │  │  Req ID  │→│ Access Log │→│  Audit  │→│ CORS │   │
    │  └──────────┘ └────────────┘ └─────────┘ └──────┘   │
    │                                                     │
    │  Routes:                                            │
    │  /register /login /me  /notes…  /logs…  /health     │
    │                                                     │
    │  Exception Handlers:                                │
    │  NotekeepError → status by ErrorKind                │
    │  RequestValidationError → 400 │ Exception → 500     │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Warn about insecure configuration
    3. Create storage directory
    4. Start the request log sink worker

    Shutdown:
    1. Drain and stop the request log sink
    2. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notekeep import __version__
from notekeep.config import Settings, get_settings
from notekeep.database import build_engine, build_session_factory, dispose_engine
from notekeep.exceptions import ErrorKind, NotekeepError
from notekeep.middleware.audit import RequestAuditMiddleware
from notekeep.middleware.logging import RequestLoggingMiddleware
from notekeep.middleware.request_id import RequestIDMiddleware, request_id_var
from notekeep.routes import auth, health, logs, notes
from notekeep.services.auth_service import AuthService
from notekeep.services.file_service import FileService
from notekeep.services.note_service import NoteService
from notekeep.services.request_log_service import RequestLogService
from notekeep.services.request_log_sink import RequestLogSink
from notekeep.services.token_service import TokenService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Notekeep Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: development setups run on the default secret
        logger.warning("Configuration warning: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    app.state.request_log_sink.start()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Notekeep Backend shutting down...")
    await app.state.request_log_sink.stop()
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(code: str, message: str, rid: str, details: Optional[dict] = None) -> dict:
    body = {"error": code, "message": message, "request_id": rid}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        NotekeepError           → status from its ErrorKind
        RequestValidationError  → 400 Bad Request
        Exception (fallback)    → 500 Internal Server Error

    Security: handlers NEVER expose internal details (stack traces, SQL,
    library errors) in the API response. Details are logged server-side.
    """

    @app.exception_handler(NotekeepError)
    async def handle_notekeep_error(request: Request, exc: NotekeepError):
        rid = request_id_var.get("")
        headers = {}
        details = None

        # Internal messages are fixed generic strings; context stays in the log
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.code, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, exc.code, exc.message)
            if exc.kind is ErrorKind.VALIDATION:
                details = exc.context

        if exc.kind is ErrorKind.AUTHENTICATION:
            headers["WWW-Authenticate"] = "Bearer"

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, rid, details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, form or parameters: reported like any other validation error."""
        rid = request_id_var.get("")
        # Raw input is left out so rejected passwords never reach logs or clients
        errors = jsonable_encoder(
            [{k: e.get(k) for k in ("loc", "msg", "type")} for e in exc.errors()]
        )
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content=error_body(
                ErrorKind.VALIDATION.value,
                "Invalid request",
                rid,
                {"errors": errors},
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: stack trace is logged server-side ONLY."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                ErrorKind.INTERNAL.value,
                "An unexpected error occurred. Please try again or contact support.",
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every process-wide object (engine, session factory, signing secret,
    storage root, services, request log sink) is built here from `settings`
    and stored on `app.state`. Nothing else reads configuration.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Notekeep API",
        description=(
            "Notes backend: token authentication, per-user notes with image "
            "attachments, and an audit log of HTTP requests."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Wire Services ─────────────────────────────────────────────────────
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    token_service = TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.token_ttl_hours),
    )
    file_service = FileService(settings.storage_root, settings.max_file_size)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.token_service = token_service
    app.state.auth_service = AuthService(token_service, settings.bcrypt_rounds)
    app.state.file_service = file_service
    app.state.note_service = NoteService(file_service)
    app.state.request_log_service = RequestLogService()
    app.state.request_log_sink = RequestLogSink(session_factory, settings.audit_queue_size)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(RequestAuditMiddleware, body_limit=settings.audit_body_limit)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(logs.router)
    app.include_router(health.router)

    return app


# uvicorn expects `notekeep.main:app` to be importable
app = create_app()
