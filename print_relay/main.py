"""
FastAPI application entrypoint for the Canva → Pressero relay.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from print_relay.api.routes import router as api_router
from print_relay.core.config import AppSettings, get_settings
from print_relay.core.logging import configure_logging
from print_relay.dependencies import RelayServices, build_services

logger = logging.getLogger(__name__)


def _sweep(services: RelayServices) -> None:
    services.artifact_store.prune_expired()
    services.state_store.prune_expired()
    services.handoff.prune_ledger()


async def _sweeper(services: RelayServices, interval_seconds: int) -> None:
    """Periodically drop expired artifacts and abandoned authorization flows."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            _sweep(services)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Relay sweep failed")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    settings: AppSettings | None = None,
    services: RelayServices | None = None,
) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(
            _sweeper(services, settings.relay.sweep_interval_seconds)
        )
        try:
            yield
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="Canva → Pressero relay",
        version="0.1.0",
        description="Hands Canva PDF exports to a polling print storefront.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=settings.relay.session_addressing == "cookie",
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.middleware("http")
    async def _limit_body_size(request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > settings.max_body_bytes:
            return JSONResponse(
                status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
                content={"ok": False, "message": "Request body too large"},
            )
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"ok": False, "message": _validation_message(exc)},
        )

    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]


if __name__ == "__main__":  # pragma: no cover - local entry point
    import os

    import uvicorn

    uvicorn.run(
        "print_relay.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "10000")),
        reload=False,
    )
