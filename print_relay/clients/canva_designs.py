"""Client for the Canva design-creation endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from print_relay.core.config import CanvaSettings

logger = logging.getLogger(__name__)


class CanvaApiError(Exception):
    """Raised for Canva API failures that are not authorization problems."""

    def __init__(self, message: str, *, code: str = "api_error") -> None:
        super().__init__(message)
        self.code = code


class TokenRevokedError(Exception):
    """Raised when Canva rejects the access token (expired or revoked)."""


class CanvaDesignClient:
    """Create custom-size Canva designs on behalf of an authorized user."""

    def __init__(
        self,
        canva_settings: CanvaSettings,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._canva = canva_settings
        self._timeout = timeout_seconds
        self._transport = transport

    async def create_design(
        self,
        *,
        access_token: str,
        width_px: int,
        height_px: int,
        title: Optional[str] = None,
    ) -> str:
        """Create a design and return its edit URL."""
        body: dict = {
            "design_type": {"type": "custom", "width": width_px, "height": height_px},
        }
        if title:
            body["title"] = title

        url = f"{self._canva.api_base_url.rstrip('/')}/designs"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Design creation request failed: %s", type(exc).__name__)
            raise CanvaApiError("Design creation request failed.") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise TokenRevokedError("Canva rejected the access token.")
        if not response.is_success:
            logger.warning(
                "Design creation returned status %s: %s",
                response.status_code,
                response.text[:500],
            )
            raise CanvaApiError(
                f"Design creation failed with status {response.status_code}."
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise CanvaApiError("Design creation returned invalid JSON.") from exc

        edit_url = ((data.get("design") or {}).get("urls") or {}).get("edit_url")
        if not edit_url:
            raise CanvaApiError("Canva response did not include an edit URL.", code="no_edit_url")
        return edit_url


__all__ = ["CanvaApiError", "CanvaDesignClient", "TokenRevokedError"]
