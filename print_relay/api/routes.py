"""
FastAPI routes for the Canva → Pressero relay.
"""

from __future__ import annotations

import html
import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from print_relay.api.sessions import SessionResolver
from print_relay.clients import ArtifactDownloadError, OAuthNotConfiguredError
from print_relay.core.config import AppSettings
from print_relay.dependencies import (
    get_app_settings,
    get_handoff_service,
    get_session_resolver,
    get_token_service,
)
from print_relay.schemas import (
    AuthorizationUrlResponse,
    ClearRequest,
    DepositResponse,
    DesignRequest,
    DesignResponse,
    ExportRequest,
    HandoffStatusResponse,
    OAuthCallbackPayload,
    OkResponse,
    ReadyResponse,
    UploadRequest,
)
from print_relay.services import AuthorizationError, CanvaTokenService, HandoffService

router = APIRouter()
logger = logging.getLogger(__name__)

DEFAULT_EXPORT_TITLE = "Canva → Pressero"
NO_STORE = {"Cache-Control": "no-store"}

Handoff = Annotated[HandoffService, Depends(get_handoff_service)]
Sessions = Annotated[SessionResolver, Depends(get_session_resolver)]
Tokens = Annotated[CanvaTokenService, Depends(get_token_service)]


def _error(status: HTTPStatus, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"ok": False, "message": message})


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "").lower()
    return "application/json" in accept and "text/html" not in accept


def _confirmation_page(title: str, message: str) -> str:
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title></head>"
        "<body style=\"font:14px system-ui;padding:24px\">"
        f"<h1>{html.escape(title)}</h1><p>{html.escape(message)}</p>"
        "<script>setTimeout(function () { window.close(); }, 1500);</script>"
        "</body></html>"
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"ok": True}


@router.post("/canva/export", response_model=DepositResponse)
async def deposit_export(
    payload: ExportRequest,
    request: Request,
    response: Response,
    handoff: Handoff,
    sessions: Sessions,
) -> Any:
    """Download the exported PDF from Canva and park it for the storefront."""
    if not payload.files:
        return _error(HTTPStatus.BAD_REQUEST, "No files")
    session_key = sessions.resolve(request, response, payload.session_id, mint=True)
    if not session_key:
        return _error(HTTPStatus.BAD_REQUEST, "Missing sessionId")

    logger.info("Export received for session %s", session_key)
    try:
        url = await handoff.deposit_from_urls(
            session_key,
            payload.files,
            title=payload.export_title or DEFAULT_EXPORT_TITLE,
        )
    except ArtifactDownloadError:
        logger.warning("Export download failed for session %s", session_key)
        return _error(HTTPStatus.BAD_GATEWAY, "Export failed")
    return DepositResponse(url=url)


@router.post("/pressero/upload", response_model=DepositResponse)
async def upload_artifact(
    payload: UploadRequest,
    request: Request,
    response: Response,
    handoff: Handoff,
    sessions: Sessions,
) -> Any:
    """Deposit a base64-encoded PDF directly."""
    session_key = sessions.resolve(request, response, payload.session_id, mint=True)
    if not session_key or not payload.file_base64:
        return _error(HTTPStatus.BAD_REQUEST, "Missing sessionId or fileBase64")
    try:
        data = payload.decode_file()
    except ValueError:
        return _error(HTTPStatus.BAD_REQUEST, "Invalid fileBase64")
    if not data:
        return _error(HTTPStatus.BAD_REQUEST, "Empty file")

    url = handoff.deposit_bytes(session_key, data, filename=payload.filename)
    return DepositResponse(url=url)


@router.get("/pressero/ready", response_model=ReadyResponse, response_model_exclude_none=True)
async def poll_ready(
    request: Request,
    response: Response,
    handoff: Handoff,
    sessions: Sessions,
    session_id: Optional[str] = Query(None, alias="sessionId"),
) -> ReadyResponse:
    """Storefront polling endpoint; always answers 200."""
    response.headers.update(NO_STORE)
    session_key = sessions.resolve(request, response, session_id, mint=True)
    url = handoff.poll(session_key)
    logger.debug("Ready poll for session %s -> %s", session_key, bool(url))
    return ReadyResponse(ready=bool(url), url=url)


@router.get("/files/{session_key:path}.pdf")
async def retrieve_artifact(session_key: str, handoff: Handoff) -> Response:
    """Serve the parked PDF to whoever holds the session key."""
    payload = handoff.retrieve(session_key)
    if payload is None:
        return _error(HTTPStatus.NOT_FOUND, "Not found")
    return Response(content=payload, media_type="application/pdf", headers=NO_STORE)


@router.post("/pressero/clear", response_model=OkResponse)
async def clear_artifact(
    request: Request,
    response: Response,
    handoff: Handoff,
    sessions: Sessions,
    payload: Optional[ClearRequest] = None,
) -> Any:
    """Acknowledge consumption; clearing an absent session is not an error."""
    session_key = sessions.resolve(
        request, response, payload.session_id if payload else None
    )
    if not session_key:
        return _error(HTTPStatus.BAD_REQUEST, "Missing sessionId")
    handoff.clear(session_key)
    return OkResponse()


@router.get("/auth/canva/authorize")
async def start_canva_authorization(
    request: Request,
    tokens: Tokens,
    user_key: Optional[str] = Query(None, alias="userKey"),
) -> Response:
    """Kick off the PKCE flow and send the browser to Canva."""
    if not user_key:
        return _error(HTTPStatus.BAD_REQUEST, "Missing userKey")
    try:
        authorization_url = tokens.begin_authorization(user_key)
    except OAuthNotConfiguredError:
        logger.error("Canva OAuth is not configured")
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "OAuth not configured")

    if _wants_json(request):
        body = AuthorizationUrlResponse(auth_url=authorization_url)
        return JSONResponse(content=body.model_dump(by_alias=True))
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@router.get("/auth/canva/callback")
async def handle_canva_callback(
    tokens: Tokens,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    params: Annotated[OAuthCallbackPayload, Depends()],
) -> Response:
    """Complete the code exchange and show a short-lived confirmation page."""
    outcome = await tokens.complete_authorization(params.code, params.state)
    if not outcome.ok:
        if outcome.error is AuthorizationError.EXCHANGE_FAILED:
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Token exchange failed")
        error = outcome.error.value if outcome.error else "invalid_request"
        return _error(HTTPStatus.BAD_REQUEST, error)

    if settings.frontend_base_url:
        return RedirectResponse(
            url=str(settings.frontend_base_url),
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )
    return HTMLResponse(
        _confirmation_page(
            "Canva connected",
            "Authorization complete. You can close this window and return to Canva.",
        )
    )


@router.post("/canva/designs", response_model=DesignResponse, response_model_exclude_none=True)
async def create_design(payload: DesignRequest, handoff: Handoff) -> Any:
    """Create a Canva design of the requested physical size."""
    try:
        outcome = await handoff.create_design(
            user_key=payload.user_key or "",
            width_mm=payload.width_mm,
            height_mm=payload.height_mm,
            title=payload.title,
        )
    except OAuthNotConfiguredError:
        logger.error("Canva OAuth is not configured")
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "OAuth not configured")

    if outcome.ok:
        return DesignResponse(ok=True, edit_url=outcome.edit_url)
    if outcome.need_auth:
        return DesignResponse(ok=False, need_auth=True, auth_url=outcome.auth_url)
    if outcome.code == "missing_user_key":
        return _error(HTTPStatus.BAD_REQUEST, "Missing userKey")

    body = DesignResponse(ok=False, message=outcome.message, code=outcome.code)
    return JSONResponse(
        status_code=HTTPStatus.BAD_GATEWAY,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/handoff/status", response_model=HandoffStatusResponse)
async def handoff_status(
    request: Request,
    response: Response,
    handoff: Handoff,
    sessions: Sessions,
    user_key: Optional[str] = Query(None, alias="userKey"),
    session_id: Optional[str] = Query(None, alias="sessionId"),
) -> HandoffStatusResponse:
    """Report where a (user, session) pair currently sits in the handoff."""
    session_key = sessions.resolve(request, response, session_id)
    state = handoff.status(user_key=user_key, session_key=session_key)
    return HandoffStatusResponse(state=state.value)


__all__ = ["router"]
