"""
Producer/consumer handoff between the design tool and the print storefront.

The producer asks for a design (which may bounce through Canva consent),
exports it, and the relay downloads the PDF into the artifact store where the
storefront polls for it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from print_relay.clients.artifact_source import ArtifactDownloader
from print_relay.clients.canva_designs import CanvaApiError, CanvaDesignClient, TokenRevokedError
from print_relay.models.artifact import DEFAULT_FILENAME
from print_relay.services.artifact_store import ArtifactRelayStore
from print_relay.services.canva_tokens import CanvaTokenService, TokenFailureReason

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4


def mm_to_pixels(mm: float, dpi: int = 96) -> int:
    """Convert millimetres to device pixels, rounding halves up."""
    return int(math.floor(mm / MM_PER_INCH * dpi + 0.5))


class HandoffState(str, Enum):
    NO_TOKEN = "NO_TOKEN"
    AUTH_PENDING = "AUTH_PENDING"
    AUTHORIZED = "AUTHORIZED"
    DESIGN_REQUESTED = "DESIGN_REQUESTED"
    EXPORT_PENDING = "EXPORT_PENDING"
    ARTIFACT_READY = "ARTIFACT_READY"
    CONSUMED = "CONSUMED"


@dataclass(frozen=True)
class DesignOutcome:
    ok: bool
    edit_url: Optional[str] = None
    need_auth: bool = False
    auth_url: Optional[str] = None
    message: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def needs_authorization(cls, auth_url: str) -> "DesignOutcome":
        return cls(ok=False, need_auth=True, auth_url=auth_url)

    @classmethod
    def failed(cls, message: str, code: str) -> "DesignOutcome":
        return cls(ok=False, message=message, code=code)


class HandoffService:
    """Sequences design creation, artifact deposit, polling and consumption."""

    def __init__(
        self,
        *,
        token_service: CanvaTokenService,
        design_client: CanvaDesignClient,
        artifact_store: ArtifactRelayStore,
        downloader: ArtifactDownloader,
        dpi: int = 96,
        single_read: bool = False,
        ledger_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._tokens = token_service
        self._designs = design_client
        self._store = artifact_store
        self._downloader = downloader
        self._dpi = dpi
        self._single_read = single_read
        self._ledger_ttl = timedelta(seconds=ledger_ttl_seconds)
        self._clock = clock
        # Milestones used only to report handoff state; keyed by plain strings.
        self._design_requested: Dict[str, datetime] = {}
        self._deposited: Dict[str, datetime] = {}
        self._downloading: Dict[str, datetime] = {}

    @property
    def single_read(self) -> bool:
        return self._single_read

    async def create_design(
        self,
        *,
        user_key: str,
        width_mm: float,
        height_mm: float,
        title: Optional[str] = None,
    ) -> DesignOutcome:
        """Create a Canva design sized in millimetres, or ask for authorization."""
        lookup = await self._tokens.get_valid_access_token(user_key)
        if not lookup.ok:
            if lookup.reason is TokenFailureReason.MISSING_USER_KEY:
                return DesignOutcome.failed("Missing userKey", code=lookup.reason.value)
            logger.info(
                "User %s needs authorization (%s)",
                user_key,
                lookup.reason.value if lookup.reason else "unknown",
            )
            return DesignOutcome.needs_authorization(self._tokens.begin_authorization(user_key))

        width_px = mm_to_pixels(width_mm, self._dpi)
        height_px = mm_to_pixels(height_mm, self._dpi)
        try:
            edit_url = await self._designs.create_design(
                access_token=lookup.token or "",
                width_px=width_px,
                height_px=height_px,
                title=title,
            )
        except TokenRevokedError:
            logger.info("Canva reported a revoked token for user %s", user_key)
            self._tokens.invalidate(user_key)
            return DesignOutcome.needs_authorization(self._tokens.begin_authorization(user_key))
        except CanvaApiError as exc:
            return DesignOutcome.failed("Design creation failed", code=exc.code)

        self._design_requested[user_key] = self._clock()
        logger.info("Created %dx%d px design for user %s", width_px, height_px, user_key)
        return DesignOutcome(ok=True, edit_url=edit_url)

    async def deposit_from_urls(
        self,
        session_key: str,
        urls: Sequence[str],
        *,
        title: Optional[str] = None,
    ) -> str:
        """Download the first exported file and park it under ``session_key``."""
        if not urls:
            raise ValueError("At least one file URL is required.")
        self._downloading[session_key] = self._clock()
        try:
            payload = await self._downloader.fetch(urls[0])
        finally:
            self._downloading.pop(session_key, None)
        return self.deposit_bytes(session_key, payload, title=title)

    def deposit_bytes(
        self,
        session_key: str,
        payload: bytes,
        *,
        title: Optional[str] = None,
        filename: str = DEFAULT_FILENAME,
    ) -> str:
        public_url = self._store.put(session_key, payload, title=title, filename=filename)
        self._deposited[session_key] = self._clock()
        return public_url

    def poll(self, session_key: Optional[str]) -> Optional[str]:
        """Return the artifact URL when ready, otherwise ``None``."""
        if not session_key:
            return None
        record = self._store.peek(session_key)
        return record.public_url if record else None

    def retrieve(self, session_key: str) -> Optional[bytes]:
        """Fetch the artifact bytes; in single-read mode the record is purged."""
        if self._single_read:
            return self._store.take(session_key)
        record = self._store.peek(session_key)
        return record.payload if record else None

    def clear(self, session_key: str) -> None:
        self._store.clear(session_key)

    def status(
        self, *, user_key: Optional[str] = None, session_key: Optional[str] = None
    ) -> HandoffState:
        """Best-known position of a (user, session) pair in the handoff."""
        if session_key:
            if self._store.peek(session_key) is not None:
                return HandoffState.ARTIFACT_READY
            if session_key in self._downloading:
                return HandoffState.EXPORT_PENDING
            if session_key in self._deposited:
                return HandoffState.CONSUMED
        if user_key:
            if self._tokens.has_token(user_key):
                if user_key in self._design_requested:
                    return HandoffState.DESIGN_REQUESTED
                return HandoffState.AUTHORIZED
            if self._tokens.is_authorization_pending(user_key):
                return HandoffState.AUTH_PENDING
        return HandoffState.NO_TOKEN

    def prune_ledger(self) -> None:
        cutoff = self._clock() - self._ledger_ttl
        for ledger in (self._design_requested, self._deposited):
            for key in [k for k, at in ledger.items() if at < cutoff]:
                del ledger[key]


__all__ = [
    "DesignOutcome",
    "HandoffService",
    "HandoffState",
    "MM_PER_INCH",
    "mm_to_pixels",
]
