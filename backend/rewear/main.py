"""
ReWear Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn rewear.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  /api/auth  /api/user  /api/items  /api/swaps       │
    │  /api/admin  /api/files  /health                    │
    │                                                     │
    │  Exception Handlers:                                │
    │  ReWearError subclasses → tagged JSON error body    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration
    3. Create storage directory
    4. Create tables (DB_AUTO_CREATE only; Alembic otherwise)
    5. Ensure the bootstrap admin account exists

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from rewear import __version__
from rewear.config import settings
from rewear.database import async_session_factory, dispose_engine, init_models
from rewear.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    RateLimitExceededError,
    ReWearError,
    UnavailableError,
    ValidationError,
)
from rewear.middleware.logging import RequestLoggingMiddleware
from rewear.middleware.rate_limit import RateLimitMiddleware
from rewear.middleware.request_id import RequestIDMiddleware, request_id_var
from rewear.routes import admin, auth, health, items, swaps, users
from rewear.services.auth_service import auth_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("ReWear Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so health checks can report the problem
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    try:
        if settings.db_auto_create:
            await init_models()
            logger.info("Database tables ensured")

        async with async_session_factory() as session:
            await auth_service.bootstrap_admin(session)
            await session.commit()
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database initialization failed: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("ReWear Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    exc: ReWearError,
    message: Optional[str] = None,
    include_details: bool = True,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "error": exc.error_code,
        "message": message or exc.message,
        "request_id": request_id_var.get(""),
    }
    if include_details and exc.context:
        content["details"] = exc.context
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the error envelope.

    Handler hierarchy:
        ValidationError, InsufficientBalanceError  → 400
        AuthenticationError                        → 401
        ForbiddenError (incl. self-swap)           → 403
        NotFoundError                              → 404
        UnavailableError, InvalidStateError,
        ConflictError                              → 409
        RateLimitExceededError                     → 429
        FileStorageError, DatabaseError            → 500
        ReWearError (base), Exception (fallback)   → 500

    Internal details (stack traces, SQL) are logged, never returned.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, query or path parameters use the same 400 envelope."""
        errors = [
            {"field": ".".join(str(part) for part in e["loc"]), "message": e["msg"]}
            for e in exc.errors()
        ]
        first = errors[0] if errors else {"field": "", "message": "Invalid request"}
        return JSONResponse(
            status_code=400,
            content={
                "error": ValidationError.error_code,
                "message": f"{first['field']}: {first['message']}" if first["field"] else first["message"],
                "details": {"errors": errors},
                "request_id": request_id_var.get(""),
            },
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc)

    @app.exception_handler(InsufficientBalanceError)
    async def handle_insufficient_balance(request: Request, exc: InsufficientBalanceError):
        return _error_response(400, exc)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, exc, include_details=False, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        logger.warning("[%s] Forbidden (%s): %s", request_id_var.get(""), exc.error_code, exc.message)
        return _error_response(403, exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(UnavailableError)
    async def handle_unavailable(request: Request, exc: UnavailableError):
        return _error_response(409, exc)

    @app.exception_handler(InvalidStateError)
    async def handle_invalid_state(request: Request, exc: InvalidStateError):
        return _error_response(409, exc)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, exc)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(429, exc, headers={"Retry-After": str(exc.retry_after)})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(
            500, exc,
            message="An internal error occurred. Please try again later.",
            include_details=False,
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, exc, include_details=False)

    @app.exception_handler(ReWearError)
    async def handle_rewear_error(request: Request, exc: ReWearError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, exc, include_details=False)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers into a new app."""
    app = FastAPI(
        title="ReWear API",
        description=(
            "Community clothing exchange: list garments, swap them item-for-item "
            "or pay with points earned from previous swaps."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(items.router)
    app.include_router(swaps.router)
    app.include_router(admin.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
