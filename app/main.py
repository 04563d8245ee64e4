"""
FastAPI application entrypoint for the calendar relay.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.errors import RelayError
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.error("Unhandled relay error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"ok": False, "needsAuth": False, "error": str(exc)},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Google Calendar Relay",
        version="0.1.0",
        description="Creates Google Calendar events for automation clients.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application on the configured port."""
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.listen_port, log_config=None)


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()


__all__ = ["app", "create_app", "run"]
