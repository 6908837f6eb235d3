"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database engine).
Middleware, CORS, exception handlers and routers all registered here.

Error responses are uniform: {"detail": "..."}. Application errors
(notekeeper.errors) carry their own status code and a client-safe
message; request-body validation failures become a single field-level
400; anything unexpected is logged with its traceback and returned as a
bare 500.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notekeeper import __version__
from notekeeper.api import api_router
from notekeeper.config import settings
from notekeeper.errors import NotekeeperError, Unauthenticated

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "notekeeper.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        identity_provider=settings.identity_provider,
        email_backend=settings.email_backend,
    )

    yield

    logger.info("notekeeper.shutdown")

    from notekeeper.db.engine import engine
    await engine.dispose()


# ─── Exception handlers ─────────────────────────────────


async def handle_app_error(request: Request, exc: NotekeeperError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report the first invalid field, e.g. "password: String should have at least 6 characters"."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("notekeeper.unhandled_error", error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Notekeeper",
        description="Note-taking API with email-verified accounts and JWT sessions",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from notekeeper.middleware.request_id import RequestIdMiddleware
    from notekeeper.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(NotekeeperError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: notekeeper.main:app)
app = create_app()
