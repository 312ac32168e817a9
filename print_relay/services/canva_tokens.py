"""
Helpers for obtaining, caching and refreshing Canva OAuth tokens.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from print_relay.clients.canva_auth import (
    CanvaOAuthClient,
    OAuthNotConfiguredError,
    OAuthTokenExchangeError,
)
from print_relay.models.oauth import StoredOAuthToken, TokenGrant
from print_relay.services.oauth_stores import AuthorizationStateStore, TokenStore
from print_relay.services.pkce import (
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from print_relay.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class TokenFailureReason(str, Enum):
    MISSING_USER_KEY = "missing_user_key"
    NO_TOKEN = "no_token"
    NO_REFRESH_TOKEN = "no_refresh_token"
    REFRESH_FAILED = "refresh_failed"


class AuthorizationError(str, Enum):
    MISSING_PARAMS = "missing_params"
    INVALID_OR_EXPIRED_STATE = "invalid_or_expired_state"
    INVALID_STATE_PAYLOAD = "invalid_state_payload"
    EXCHANGE_FAILED = "exchange_failed"


@dataclass(frozen=True)
class TokenLookup:
    """Either a usable access token or the reason there is none."""

    ok: bool
    token: Optional[str] = None
    reason: Optional[TokenFailureReason] = None

    @classmethod
    def success(cls, token: str) -> "TokenLookup":
        return cls(ok=True, token=token)

    @classmethod
    def failure(cls, reason: TokenFailureReason) -> "TokenLookup":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class AuthorizationOutcome:
    ok: bool
    user_key: Optional[str] = None
    error: Optional[AuthorizationError] = None


class CanvaTokenService:
    """
    Owns the per-user token lifecycle.

    A cached token is handed out only while it is outside the expiry margin;
    otherwise it is refreshed once. Any refresh problem drops the record so
    callers go back through :meth:`begin_authorization` instead of retrying.
    """

    def __init__(
        self,
        *,
        oauth_client: CanvaOAuthClient,
        token_store: TokenStore,
        state_store: AuthorizationStateStore,
        token_cipher: TokenCipherService,
        expiry_margin_seconds: int = 60,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._oauth = oauth_client
        self._tokens = token_store
        self._states = state_store
        self._cipher = token_cipher
        self._margin = timedelta(seconds=expiry_margin_seconds)
        self._clock = clock
        self._inflight: Dict[str, asyncio.Future] = {}

    async def get_valid_access_token(self, user_key: Optional[str]) -> TokenLookup:
        """Return a token that is good for at least the expiry margin."""
        if not user_key:
            return TokenLookup.failure(TokenFailureReason.MISSING_USER_KEY)

        record = self._tokens.get(user_key)
        if record is None:
            return TokenLookup.failure(TokenFailureReason.NO_TOKEN)

        try:
            if record.expires_at - self._margin > self._clock():
                return TokenLookup.success(self._cipher.decrypt(record.access_token_encrypted))
            refresh_token = self._cipher.decrypt_optional(record.refresh_token_encrypted)
        except ValueError:
            logger.warning("Cached token for user %s is unreadable; dropping it", user_key)
            self._tokens.delete(user_key)
            return TokenLookup.failure(TokenFailureReason.NO_TOKEN)

        if not refresh_token:
            logger.info("Token for user %s expired and cannot be refreshed", user_key)
            self._tokens.delete(user_key)
            return TokenLookup.failure(TokenFailureReason.NO_REFRESH_TOKEN)

        # Concurrent callers share one refresh; refresh tokens may be single-use.
        pending = self._inflight.get(user_key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(record, refresh_token))
            self._inflight[user_key] = pending
            pending.add_done_callback(lambda done: self._forget_refresh(user_key, done))
        return await asyncio.shield(pending)

    def _forget_refresh(self, user_key: str, done: asyncio.Future) -> None:
        if self._inflight.get(user_key) is done:
            del self._inflight[user_key]

    async def _refresh(self, record: StoredOAuthToken, refresh_token: str) -> TokenLookup:
        user_key = record.user_key
        try:
            grant = await self._oauth.refresh_token(refresh_token)
        except (OAuthTokenExchangeError, OAuthNotConfiguredError):
            logger.warning("Token refresh failed for user %s; dropping cached token", user_key)
            # A fresh authorization may have landed while the refresh was awaited.
            if self._tokens.get(user_key) is record:
                self._tokens.delete(user_key)
            return TokenLookup.failure(TokenFailureReason.REFRESH_FAILED)

        refreshed_at = self._clock()
        record.access_token_encrypted = self._cipher.encrypt(grant.access_token)
        if grant.refresh_token:
            record.refresh_token_encrypted = self._cipher.encrypt(grant.refresh_token)
        record.expires_at = refreshed_at + timedelta(seconds=grant.expires_in)
        record.updated_at = refreshed_at
        logger.info("Refreshed token for user %s", user_key)
        return TokenLookup.success(grant.access_token)

    def begin_authorization(self, user_key: str) -> str:
        """Start a PKCE flow for ``user_key`` and return the consent URL."""
        if not user_key:
            raise ValueError("A user key is required to start authorization.")
        code_verifier = generate_code_verifier()
        state = generate_state()
        url = self._oauth.build_authorization_url(
            state=state, code_challenge=generate_code_challenge(code_verifier)
        )
        self._states.save(state, self._states.new_state(user_key, code_verifier))
        logger.info("Issued authorization redirect for user %s", user_key)
        return url

    async def complete_authorization(
        self, code: Optional[str], state: Optional[str]
    ) -> AuthorizationOutcome:
        """Consume the pending flow for ``state`` and cache the issued tokens."""
        if not code or not state:
            return AuthorizationOutcome(ok=False, error=AuthorizationError.MISSING_PARAMS)

        pending = self._states.consume(state)
        if pending is None:
            return AuthorizationOutcome(
                ok=False, error=AuthorizationError.INVALID_OR_EXPIRED_STATE
            )
        if not pending.user_key or not pending.code_verifier:
            return AuthorizationOutcome(
                ok=False, error=AuthorizationError.INVALID_STATE_PAYLOAD
            )

        try:
            grant = await self._oauth.exchange_authorization_code(code, pending.code_verifier)
        except (OAuthTokenExchangeError, OAuthNotConfiguredError):
            logger.warning("Authorization code exchange failed for user %s", pending.user_key)
            return AuthorizationOutcome(
                ok=False,
                user_key=pending.user_key,
                error=AuthorizationError.EXCHANGE_FAILED,
            )

        self.store_grant(pending.user_key, grant)
        logger.info("Authorization completed for user %s", pending.user_key)
        return AuthorizationOutcome(ok=True, user_key=pending.user_key)

    def store_grant(self, user_key: str, grant: TokenGrant) -> StoredOAuthToken:
        now = self._clock()
        record = StoredOAuthToken(
            user_key=user_key,
            access_token_encrypted=self._cipher.encrypt(grant.access_token),
            refresh_token_encrypted=self._cipher.encrypt_optional(grant.refresh_token),
            expires_at=now + timedelta(seconds=grant.expires_in),
            created_at=now,
            updated_at=now,
        )
        self._tokens.put(record)
        return record

    def invalidate(self, user_key: str) -> None:
        """Forget the cached token, e.g. after the API reported it revoked."""
        if self._tokens.delete(user_key):
            logger.info("Invalidated cached token for user %s", user_key)

    def has_token(self, user_key: str) -> bool:
        return self._tokens.get(user_key) is not None

    def is_authorization_pending(self, user_key: str) -> bool:
        return self._states.has_pending_for(user_key)


__all__ = [
    "AuthorizationError",
    "AuthorizationOutcome",
    "CanvaTokenService",
    "TokenFailureReason",
    "TokenLookup",
]
