"""In-memory representation of a PDF waiting to be picked up."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

DEFAULT_FILENAME = "design.pdf"


@dataclass(slots=True, frozen=True)
class ArtifactRecord:
    """One deposited artifact; replaced wholesale on every deposit."""

    session_key: str
    payload: bytes = field(repr=False)
    public_url: str
    title: Optional[str] = None
    filename: str = DEFAULT_FILENAME
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.payload)


__all__ = ["ArtifactRecord", "DEFAULT_FILENAME"]
