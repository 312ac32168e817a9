"""
Session key resolution for the handoff endpoints.

A deployment uses exactly one addressing mode: caller-supplied ``sessionId``
values (``explicit``) or a relay-minted cookie (``cookie``). Inputs for the
other mode are ignored.
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Request, Response

from print_relay.core.config import RelaySettings


class SessionResolver:
    def __init__(self, relay_settings: RelaySettings) -> None:
        self._settings = relay_settings

    @property
    def uses_cookie(self) -> bool:
        return self._settings.session_addressing == "cookie"

    def resolve(
        self,
        request: Request,
        response: Response,
        explicit: Optional[str],
        *,
        mint: bool = False,
    ) -> Optional[str]:
        """Return the session key for this request, minting a cookie if asked."""
        if not self.uses_cookie:
            return explicit.strip() if explicit and explicit.strip() else None

        session_key = request.cookies.get(self._settings.cookie_name)
        if session_key or not mint:
            return session_key or None
        session_key = secrets.token_urlsafe(24)
        response.set_cookie(
            key=self._settings.cookie_name,
            value=session_key,
            max_age=self._settings.cookie_max_age,
            secure=True,
            httponly=True,
            samesite="none",
        )
        return session_key


__all__ = ["SessionResolver"]
