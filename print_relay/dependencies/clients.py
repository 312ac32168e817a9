"""
Construction of the relay's stores, clients and services, plus the FastAPI
dependencies that hand them to route handlers.

Everything is built once per application in :func:`build_services` and
attached to ``app.state``; handlers never reach for module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from print_relay.api.sessions import SessionResolver
from print_relay.clients import ArtifactDownloader, CanvaDesignClient, CanvaOAuthClient
from print_relay.core.config import AppSettings
from print_relay.services import (
    ArtifactRelayStore,
    AuthorizationStateStore,
    CanvaTokenService,
    HandoffService,
    TokenCipherService,
    TokenStore,
)


@dataclass
class RelayServices:
    """Explicitly constructed, process-lifetime collaborators."""

    artifact_store: ArtifactRelayStore
    state_store: AuthorizationStateStore
    token_store: TokenStore
    token_service: CanvaTokenService
    handoff: HandoffService
    sessions: SessionResolver


def build_services(
    settings: AppSettings,
    *,
    oauth_client: CanvaOAuthClient | None = None,
    design_client: CanvaDesignClient | None = None,
    downloader: ArtifactDownloader | None = None,
) -> RelayServices:
    """Wire the stores and services for one application instance."""
    artifact_store = ArtifactRelayStore(
        base_url=settings.base_public_url,
        retention_seconds=settings.relay.retention_seconds,
    )
    state_store = AuthorizationStateStore(ttl_seconds=settings.oauth.state_ttl_seconds)
    token_store = TokenStore()
    secret = settings.security.token_encryption_secret or settings.canva.client_secret
    token_service = CanvaTokenService(
        oauth_client=oauth_client or CanvaOAuthClient(settings.canva, settings.oauth),
        token_store=token_store,
        state_store=state_store,
        token_cipher=TokenCipherService(secret=secret),
        expiry_margin_seconds=settings.oauth.expiry_margin_seconds,
    )
    handoff = HandoffService(
        token_service=token_service,
        design_client=design_client
        or CanvaDesignClient(
            settings.canva, timeout_seconds=settings.oauth.request_timeout_seconds
        ),
        artifact_store=artifact_store,
        downloader=downloader
        or ArtifactDownloader(
            timeout_seconds=settings.relay.download_timeout_seconds,
            max_bytes=settings.max_body_bytes,
        ),
        dpi=settings.canva.design_dpi,
        single_read=settings.relay.single_read,
        ledger_ttl_seconds=max(settings.relay.retention_seconds, settings.relay.cookie_max_age),
    )
    return RelayServices(
        artifact_store=artifact_store,
        state_store=state_store,
        token_store=token_store,
        token_service=token_service,
        handoff=handoff,
        sessions=SessionResolver(settings.relay),
    )


def _services(request: Request) -> RelayServices:
    return request.app.state.services


def get_artifact_store(request: Request) -> ArtifactRelayStore:
    return _services(request).artifact_store


def get_token_service(request: Request) -> CanvaTokenService:
    return _services(request).token_service


def get_handoff_service(request: Request) -> HandoffService:
    return _services(request).handoff


def get_session_resolver(request: Request) -> SessionResolver:
    return _services(request).sessions


__all__ = [
    "RelayServices",
    "build_services",
    "get_artifact_store",
    "get_handoff_service",
    "get_session_resolver",
    "get_token_service",
]
