"""Process-local stores backing the OAuth handshake and the token cache."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from print_relay.models.oauth import AuthorizationState, StoredOAuthToken

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorizationStateStore:
    """Pending PKCE flows keyed by state token; each entry is consumed once."""

    def __init__(
        self,
        *,
        ttl_seconds: int = 900,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._pending: Dict[str, AuthorizationState] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def new_state(self, user_key: str, code_verifier: str) -> AuthorizationState:
        return AuthorizationState(
            user_key=user_key, code_verifier=code_verifier, created_at=self._clock()
        )

    def save(self, state: str, record: AuthorizationState) -> None:
        with self._lock:
            self._pending[state] = record

    def consume(self, state: str) -> Optional[AuthorizationState]:
        """Pop the flow for ``state``; stale flows are discarded and reported absent."""
        with self._lock:
            record = self._pending.pop(state, None)
        if record is None:
            return None
        if self._clock() - record.created_at > self._ttl:
            logger.info("Discarded expired authorization state for user %s", record.user_key)
            return None
        return record

    def has_pending_for(self, user_key: str) -> bool:
        now = self._clock()
        with self._lock:
            return any(
                record.user_key == user_key and now - record.created_at <= self._ttl
                for record in self._pending.values()
            )

    def prune_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [
                state
                for state, record in self._pending.items()
                if now - record.created_at > self._ttl
            ]
            for state in stale:
                del self._pending[state]
        if stale:
            logger.info("Pruned %d stale authorization flow(s)", len(stale))
        return len(stale)


class TokenStore:
    """One cached token record per user key."""

    def __init__(self) -> None:
        self._records: Dict[str, StoredOAuthToken] = {}
        self._lock = threading.Lock()

    def get(self, user_key: str) -> Optional[StoredOAuthToken]:
        with self._lock:
            return self._records.get(user_key)

    def put(self, record: StoredOAuthToken) -> None:
        with self._lock:
            self._records[record.user_key] = record

    def delete(self, user_key: str) -> bool:
        with self._lock:
            return self._records.pop(user_key, None) is not None


__all__ = ["AuthorizationStateStore", "TokenStore"]
