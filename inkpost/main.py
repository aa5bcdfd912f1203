"""
Inkpost Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn inkpost.main:app) and the test client.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────────────┐ ┌──────────┐ ┌─────────────────┐    │
    │  │ Login Throttle │→│ Req ID   │→│  Logging        │    │
    │  └────────────────┘ └──────────┘ └─────────────────┘    │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────────┐ ┌──────────────┐ ┌──────────────┐     │
    │  │ /users/...   │ │ /posts/...   │ │ GET /health  │     │
    │  └──────────────┘ └──────────────┘ └──────────────┘     │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌──────────────────────────────────────────────────┐   │
    │  │ InkpostError→own status │ Validation→422 │ *→500 │   │
    │  └──────────────────────────────────────────────────┘   │
    └──────────────────────────────────────────────────────────┘

Error body (every non-2xx the app produces itself):
    {"error": "...", "statusCode": 409, "messages": ["..."], "request_id": "..."}
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from inkpost import __version__
from inkpost.config import DEFAULT_JWT_SECRET, settings
from inkpost.database import dispose_engine
from inkpost.exceptions import InkpostError
from inkpost.middleware.logging import RequestLoggingMiddleware
from inkpost.middleware.login_throttle import LoginThrottleMiddleware
from inkpost.middleware.request_id import RequestIDMiddleware, request_id_var
from inkpost.routes import health, posts, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2026-01-15T10:00:00 [INFO] inkpost.access: GET /posts 200 3.1ms ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # inkpost.access replaces uvicorn's access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Inkpost %s starting (environment=%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    if settings.jwt_secret_key == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET_KEY is the built-in default; set it outside local development")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Inkpost shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _validation_messages(exc: RequestValidationError) -> List[str]:
    """One readable line per failing field, e.g. "email: value is not a valid email address"."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        text = err.get("msg", "Invalid value")
        messages.append(f"{location}: {text}" if location else text)
    return messages or ["Invalid request"]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        InkpostError (and subclasses) → exc.status_code with exc.to_dict()
        RequestValidationError        → 422 with one message per field
        Exception (fallback)          → 500, generic message

    Security: context dicts and stack traces are logged, never returned.
    """

    @app.exception_handler(InkpostError)
    async def handle_inkpost_error(request: Request, exc: InkpostError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = {}
        retry_after = getattr(exc, "retry_after", None)
        if retry_after:
            headers["Retry-After"] = str(retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content={**exc.to_dict(), "request_id": rid},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        messages = _validation_messages(exc)
        logger.info("[%s] Request validation failed: %s", rid, "; ".join(messages))
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "statusCode": 422,
                "messages": messages,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: the stack trace goes to the log, the client gets a request id."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal",
                "statusCode": 500,
                "messages": ["An unexpected error occurred"],
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Inkpost API",
        description=(
            "Blog backend: user accounts with token authentication, "
            "admin-managed posts with unique slugs, and shared tags."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition: the throttle added
    # last runs first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # auth cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(LoginThrottleMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(health.router)

    return app


# uvicorn imports `inkpost.main:app`
app = create_app()
