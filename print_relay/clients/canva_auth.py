"""
Canva OAuth utilities.

Builds PKCE authorization URLs and talks to the Canva token endpoint for the
authorization-code and refresh-token grants.
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from print_relay.core.config import CanvaSettings, OAuthSettings
from print_relay.models.oauth import TokenGrant

logger = logging.getLogger(__name__)


class OAuthNotConfiguredError(Exception):
    """Raised when Canva client credentials are not configured."""


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint fails, times out or returns junk."""


class CanvaOAuthClient:
    """Build Canva authorization URLs and exchange or refresh tokens."""

    def __init__(
        self,
        canva_settings: CanvaSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._canva = canva_settings
        self._oauth = oauth_settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._canva.is_configured

    def _require_configuration(self) -> None:
        if not self.is_configured:
            raise OAuthNotConfiguredError(
                "CANVA_CLIENT_ID, CANVA_CLIENT_SECRET and CANVA_REDIRECT_URI must be set."
            )

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Construct the Canva consent URL for a PKCE (S256) flow."""
        self._require_configuration()
        params = {
            "response_type": "code",
            "client_id": self._canva.client_id,
            "redirect_uri": str(self._canva.redirect_uri),
            "scope": " ".join(self._oauth.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._canva.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str, code_verifier: str) -> TokenGrant:
        """Exchange an authorization code plus its PKCE verifier for tokens."""
        self._require_configuration()
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": str(self._canva.redirect_uri),
        }
        grant = await self._post_token_request(payload, grant_type="authorization_code")
        if not grant.refresh_token:
            logger.info("Token endpoint issued no refresh token")
        return grant

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        self._require_configuration()
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return await self._post_token_request(payload, grant_type="refresh_token")

    async def _post_token_request(self, payload: Dict[str, Any], *, grant_type: str) -> TokenGrant:
        auth = httpx.BasicAuth(self._canva.client_id or "", self._canva.client_secret or "")
        try:
            async with httpx.AsyncClient(
                timeout=self._oauth.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self._canva.token_url, data=payload, auth=auth)
        except httpx.HTTPError as exc:
            logger.warning("Token request (%s) failed: %s", grant_type, type(exc).__name__)
            raise OAuthTokenExchangeError(f"Token request failed: {type(exc).__name__}") from exc

        if not response.is_success:
            logger.warning(
                "Token endpoint rejected %s grant with status %s",
                grant_type,
                response.status_code,
            )
            raise OAuthTokenExchangeError(
                f"Token endpoint returned status {response.status_code}."
            )

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Canva."
            ) from exc


__all__ = [
    "CanvaOAuthClient",
    "OAuthNotConfiguredError",
    "OAuthTokenExchangeError",
]
