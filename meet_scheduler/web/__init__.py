"""
Web API for the meeting scheduler.

Provides:
- Google sign-in and signed session cookies
- Instant and scheduled Google Meet creation
- Health check
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from meet_scheduler.config import ServerConfig

logger = logging.getLogger(__name__)


def get_server_config(request: Request) -> ServerConfig:
    return request.app.state.config


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail}, status_code=exc.status_code, headers=exc.headers
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return "; ".join(messages) or "Invalid request"


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": _describe_validation_error(exc)}, status_code=422)


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Build the FastAPI application for the given configuration."""
    from meet_scheduler.web.auth import CSRFMiddleware, init_auth, router as auth_router
    from meet_scheduler.web.routes import health, meetings

    config = config or ServerConfig()

    app = FastAPI(
        title="Meet Scheduler",
        description="Create instant and scheduled Google Meet links",
        docs_url="/api/docs",
        redoc_url=None,
    )
    app.state.config = config

    init_auth(config.web)

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_middleware(CSRFMiddleware)

    app.include_router(auth_router)
    app.include_router(meetings.router)
    app.include_router(health.router)

    logger.info(f"Web app initialized (default timezone {config.timezone})")
    return app
