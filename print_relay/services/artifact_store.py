"""In-memory artifact relay store with a fixed retention window."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from urllib.parse import quote

from print_relay.models.artifact import DEFAULT_FILENAME, ArtifactRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_public_url(base_url: str, session_key: str) -> str:
    """Return the stable download address for a session's artifact."""
    return f"{base_url.rstrip('/')}/files/{quote(session_key, safe='')}.pdf"


class ArtifactRelayStore:
    """
    Holds at most one pending artifact per session key.

    The session key is the only capability: any caller holding it may read or
    clear the record. Expired records are treated as absent and dropped on
    access; ``prune_expired`` sweeps the rest.
    """

    def __init__(
        self,
        *,
        base_url: str,
        retention_seconds: int = 900,
        clock: Clock = _utcnow,
    ) -> None:
        self._base_url = base_url
        self._retention = timedelta(seconds=retention_seconds)
        self._clock = clock
        self._records: Dict[str, ArtifactRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _is_expired(self, record: ArtifactRecord, now: datetime) -> bool:
        return now - record.created_at > self._retention

    def put(
        self,
        session_key: str,
        payload: bytes,
        *,
        title: str | None = None,
        filename: str = DEFAULT_FILENAME,
    ) -> str:
        """Store (or replace) the artifact for ``session_key`` and return its URL."""
        public_url = build_public_url(self._base_url, session_key)
        record = ArtifactRecord(
            session_key=session_key,
            payload=bytes(payload),
            public_url=public_url,
            title=title,
            filename=filename or DEFAULT_FILENAME,
            created_at=self._clock(),
        )
        with self._lock:
            replaced = self._records.get(session_key) is not None
            self._records[session_key] = record
        if replaced:
            logger.info("Replaced pending artifact for session %s", session_key)
        logger.info("Stored artifact for session %s (%d bytes)", session_key, record.size)
        return public_url

    def peek(self, session_key: str) -> Optional[ArtifactRecord]:
        """Non-destructive read; expired records are removed and reported absent."""
        now = self._clock()
        with self._lock:
            record = self._records.get(session_key)
            if record is None:
                return None
            if self._is_expired(record, now):
                del self._records[session_key]
                expired = True
            else:
                expired = False
        if expired:
            logger.info("Artifact for session %s expired", session_key)
            return None
        return record

    def take(self, session_key: str) -> Optional[bytes]:
        """Destructive read returning the payload once."""
        now = self._clock()
        with self._lock:
            record = self._records.pop(session_key, None)
        if record is None or self._is_expired(record, now):
            return None
        logger.info("Artifact for session %s taken", session_key)
        return record.payload

    def clear(self, session_key: str) -> None:
        with self._lock:
            removed = self._records.pop(session_key, None)
        if removed is not None:
            logger.info("Cleared artifact for session %s", session_key)

    def prune_expired(self) -> int:
        """Drop every record past the retention window; returns how many went."""
        now = self._clock()
        with self._lock:
            stale = [
                key
                for key, record in self._records.items()
                if self._is_expired(record, now)
            ]
            for key in stale:
                del self._records[key]
        if stale:
            logger.info("Pruned %d expired artifact(s)", len(stale))
        return len(stale)


__all__ = ["ArtifactRelayStore", "build_public_url"]
