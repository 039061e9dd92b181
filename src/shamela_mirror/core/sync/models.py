"""
Data models for the sync engine.

Defines Pydantic models for version cursors, remote patch payloads, and
sync results, plus the sync key helpers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

MASTER_KEY = "master"
BOOK_KEY_PREFIX = "book_"


def book_key(book_id: int) -> str:
    """Sync key of one book's dataset."""
    return f"{BOOK_KEY_PREFIX}{book_id}"


def is_book_key(key: str) -> bool:
    """Check whether a sync key names a book dataset."""
    return key.startswith(BOOK_KEY_PREFIX)


class MasterCursor(BaseModel):
    """Version cursor of the master dataset."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = Field(default=0, ge=0, description="Last applied master version")

    def precedes(self, other: MasterCursor) -> bool:
        """True if ``other`` is not older than this cursor."""
        return other.version >= self.version

    def __str__(self) -> str:
        return f"v{self.version}"


class BookCursor(BaseModel):
    """Version cursor of one book dataset: last applied (major, minor) releases."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    major: int = Field(default=0, ge=0, description="Last applied major release")
    minor: int = Field(default=0, ge=0, description="Last applied minor release")

    def precedes(self, other: BookCursor) -> bool:
        """True if ``other`` is not older than this cursor."""
        return (other.major, other.minor) >= (self.major, self.minor)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


VersionCursor = Union[MasterCursor, BookCursor]


def zero_cursor(key: str) -> VersionCursor:
    """The cursor of a key that has never been synced."""
    return BookCursor() if is_book_key(key) else MasterCursor()


class MasterPatchInfo(BaseModel):
    """Payload of ``GET patches/master`` when an update is available."""

    model_config = ConfigDict(populate_by_name=True)

    patch_url: str
    version: int = Field(alias="Version", ge=0)


class BookPatchInfo(BaseModel):
    """
    Payload of ``GET patches/book-updates/{id}`` when an update is available.

    Either release URL may be missing; a missing release is skipped.
    """

    major_release_url: str | None = None
    minor_release_url: str | None = None
    major_release: int = Field(default=0, ge=0)
    minor_release: int = Field(default=0, ge=0)

    @property
    def cursor(self) -> BookCursor:
        return BookCursor(major=self.major_release, minor=self.minor_release)


class SyncPhase(str, Enum):
    """Phase of the sync state machine for one key."""

    IDLE = "idle"
    FETCHING = "fetching"
    UP_TO_DATE = "up_to_date"
    EXTRACTING = "extracting"
    MERGING = "merging"
    PERSISTING = "persisting"
    FAILED = "failed"


class SyncStatus(str, Enum):
    """Outcome of a completed sync."""

    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"


class SyncResult(BaseModel):
    """
    Result of one sync of a dataset.

    Example:
        >>> result = SyncResult(
        ...     key="master",
        ...     status=SyncStatus.UPDATED,
        ...     previous=MasterCursor(version=3),
        ...     current=MasterCursor(version=5),
        ... )
        >>> result.summary()
        'master updated v3 -> v5'
    """

    key: str = Field(description="Sync key (master or book_<id>)")
    status: SyncStatus
    previous: VersionCursor = Field(description="Cursor before the sync")
    current: VersionCursor = Field(description="Cursor after the sync")
    table_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Record count per table after the sync",
    )
    patch_records: dict[str, int] = Field(
        default_factory=dict,
        description="Number of patch records applied per table",
    )

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def updated(self) -> bool:
        return self.status == SyncStatus.UPDATED

    @property
    def duration_seconds(self) -> float | None:
        """Calculate sync duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if not self.updated:
            return f"{self.key} up to date at {self.current}"
        return f"{self.key} updated {self.previous} -> {self.current}"


__all__ = [
    "MASTER_KEY",
    "book_key",
    "is_book_key",
    "MasterCursor",
    "BookCursor",
    "VersionCursor",
    "zero_cursor",
    "MasterPatchInfo",
    "BookPatchInfo",
    "SyncPhase",
    "SyncStatus",
    "SyncResult",
]
