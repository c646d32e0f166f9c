from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.database import register_database
from .game.errors import FlickPickError
from .routers import challenge, health


logger = logging.getLogger(__name__)


async def _handle_game_error(request: Request, exc: FlickPickError) -> JSONResponse:
    return JSONResponse({"detail": exc.detail, "code": exc.code}, status_code=exc.status_code)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse({"detail": "Malformed request", "code": "invalid_request"}, status_code=400)


def create_app() -> FastAPI:
    app = FastAPI(title="FlickPick API", version="0.1.0")

    origins = list(settings.cors_origins or ["*"])
    if settings.frontend_base_url:
        frontend_origin = str(settings.frontend_base_url).rstrip("/")
        if frontend_origin not in origins:
            origins.append(frontend_origin)
    allow_origins = ["*"] if "*" in origins else origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FlickPickError, _handle_game_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(challenge.router, prefix="/challenge", tags=["challenge"])

    register_database(app)

    return app


app = create_app()
