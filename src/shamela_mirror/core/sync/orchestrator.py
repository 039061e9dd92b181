"""
Sync orchestration for the master dataset and per-book datasets.

Each sync key (``master`` or ``book_<id>``) moves through:

    IDLE -> FETCHING -> UP_TO_DATE -> IDLE
    IDLE -> FETCHING -> EXTRACTING -> MERGING -> PERSISTING -> IDLE

and any phase after IDLE can fall to FAILED -> IDLE on error.

The merged dataset is written before the new cursor. A crash between the
two writes leaves the old cursor in place, so the next sync fetches and
re-applies the same patch; merging is idempotent, so the result is the
same. Nothing is written before the merged dataset is fully computed, so
a failed or cancelled sync leaves the previous snapshot and cursor intact.

Syncs on the same key are serialized with a per-key lock; syncs on
different keys run independently.

Example:
    >>> orchestrator = SyncOrchestrator(client, snapshots, versions)
    >>> result = await orchestrator.sync_master()
    >>> print(result.summary())
    master updated v0 -> v12
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import cast

from shamela_mirror.core.archive import ArchiveTableExtractor
from shamela_mirror.core.exceptions import NetworkError
from shamela_mirror.core.merge import merge_tables, replace_tables
from shamela_mirror.core.outline import TitleNode, build_outline
from shamela_mirror.core.records import Record
from shamela_mirror.core.snapshot.models import BookDataset, MasterDataset
from shamela_mirror.core.snapshot.store import SnapshotStore
from shamela_mirror.core.sync.client import PatchClient
from shamela_mirror.core.sync.models import (
    MASTER_KEY,
    BookCursor,
    MasterCursor,
    SyncPhase,
    SyncResult,
    SyncStatus,
    VersionCursor,
    book_key,
)
from shamela_mirror.core.sync.versions import VersionStore

logger = logging.getLogger(__name__)

PhaseListener = Callable[[str, SyncPhase], None]


def _count_records(*patches: Mapping[str, Sequence[Record]] | None) -> dict[str, int]:
    counts: dict[str, int] = {}
    for patch in patches:
        for name, records in (patch or {}).items():
            counts[name] = counts.get(name, 0) + len(records)
    return counts


class SyncOrchestrator:
    """
    Coordinates cursor lookup, patch download, extraction, merge and persistence.

    Stores and the patch client are injected so they can be swapped for
    in-memory doubles.
    """

    def __init__(
        self,
        client: PatchClient,
        snapshots: SnapshotStore,
        versions: VersionStore,
        extractor: ArchiveTableExtractor | None = None,
        *,
        on_phase: PhaseListener | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            client: Remote patch API client
            snapshots: Snapshot storage
            versions: Version cursor storage
            extractor: Archive extractor (default: ArchiveTableExtractor())
            on_phase: Optional callback invoked on every phase transition
        """
        self.client = client
        self.snapshots = snapshots
        self.versions = versions
        self.extractor = extractor or ArchiveTableExtractor()
        self._on_phase = on_phase
        self._locks: dict[str, asyncio.Lock] = {}
        self._phases: dict[str, SyncPhase] = {}

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def phase(self, key: str) -> SyncPhase:
        """Current phase of a sync key."""
        return self._phases.get(key, SyncPhase.IDLE)

    def _enter(self, key: str, phase: SyncPhase) -> None:
        previous = self.phase(key)
        self._phases[key] = phase
        logger.debug("Sync '%s': %s -> %s", key, previous.value, phase.value)
        if self._on_phase is not None:
            self._on_phase(key, phase)

    def _lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def _check_advance(self, key: str, previous: VersionCursor, target: VersionCursor) -> None:
        if not previous.precedes(target):  # type: ignore[arg-type]
            raise NetworkError(
                f"Remote offered {target} for '{key}', older than local {previous}",
                key=key,
                local=str(previous),
                remote=str(target),
            )

    async def _extract(self, archive: bytes) -> dict[str, list[Record]]:
        extracted = await asyncio.to_thread(self.extractor.extract, archive, strict=True)
        return extracted.tables

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------

    async def sync_master(self) -> SyncResult:
        """
        Bring the master dataset up to date.

        Returns:
            SyncResult with status UPDATED or UP_TO_DATE

        Raises:
            NetworkError, ExtractionError, PersistenceError: The sync failed;
                the previous snapshot and cursor are unchanged
        """
        async with self._lock(MASTER_KEY):
            try:
                return await self._sync_master()
            except Exception as e:
                self._enter(MASTER_KEY, SyncPhase.FAILED)
                logger.error("Sync of '%s' failed: %s", MASTER_KEY, e)
                raise
            finally:
                self._enter(MASTER_KEY, SyncPhase.IDLE)

    async def sync_book(self, book_id: int) -> SyncResult:
        """
        Bring one book's dataset up to date.

        Applies the major release (the book is reset to its contents) and then
        the minor release (delta merge), skipping whichever is absent.

        Args:
            book_id: Remote id of the book

        Returns:
            SyncResult with status UPDATED or UP_TO_DATE

        Raises:
            NetworkError, ExtractionError, PersistenceError: The sync failed;
                the previous snapshot and cursor are unchanged
        """
        key = book_key(book_id)
        async with self._lock(key):
            try:
                return await self._sync_book(book_id)
            except Exception as e:
                self._enter(key, SyncPhase.FAILED)
                logger.error("Sync of '%s' failed: %s", key, e)
                raise
            finally:
                self._enter(key, SyncPhase.IDLE)

    async def _sync_master(self) -> SyncResult:
        started_at = datetime.now(timezone.utc)
        previous = cast(MasterCursor, self.versions.get(MASTER_KEY))

        self._enter(MASTER_KEY, SyncPhase.FETCHING)
        info = await self.client.fetch_master_patch(previous)
        if info is None:
            self._enter(MASTER_KEY, SyncPhase.UP_TO_DATE)
            logger.info("Master dataset is up to date at %s", previous)
            return SyncResult(
                key=MASTER_KEY,
                status=SyncStatus.UP_TO_DATE,
                previous=previous,
                current=previous,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
            )

        target = MasterCursor(version=info.version)
        self._check_advance(MASTER_KEY, previous, target)
        archive = await self.client.download(info.patch_url)

        self._enter(MASTER_KEY, SyncPhase.EXTRACTING)
        patch = await self._extract(archive)

        self._enter(MASTER_KEY, SyncPhase.MERGING)
        base = await asyncio.to_thread(self.snapshots.load_master)
        merged = MasterDataset(tables=merge_tables(base.tables, patch, MasterDataset.TABLES))

        self._enter(MASTER_KEY, SyncPhase.PERSISTING)
        await asyncio.to_thread(self.snapshots.save_master, merged)
        await asyncio.to_thread(self.versions.set, MASTER_KEY, target)

        logger.info("Master dataset updated %s -> %s", previous, target)
        return SyncResult(
            key=MASTER_KEY,
            status=SyncStatus.UPDATED,
            previous=previous,
            current=target,
            table_counts=merged.counts(),
            patch_records=_count_records(patch),
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

    async def _sync_book(self, book_id: int) -> SyncResult:
        key = book_key(book_id)
        started_at = datetime.now(timezone.utc)
        previous = cast(BookCursor, self.versions.get(key))

        # Without a local snapshot there is nothing to apply deltas onto,
        # so ask for the book from scratch.
        requested = previous if self.snapshots.has_book(book_id) else BookCursor()

        self._enter(key, SyncPhase.FETCHING)
        info = await self.client.fetch_book_patch(book_id, requested)
        if info is None:
            self._enter(key, SyncPhase.UP_TO_DATE)
            logger.info("Book %d is up to date at %s", book_id, requested)
            return SyncResult(
                key=key,
                status=SyncStatus.UP_TO_DATE,
                previous=previous,
                current=previous,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
            )

        target = info.cursor
        self._check_advance(key, requested, target)
        major_archive = (
            await self.client.download(info.major_release_url) if info.major_release_url else None
        )
        minor_archive = (
            await self.client.download(info.minor_release_url) if info.minor_release_url else None
        )

        self._enter(key, SyncPhase.EXTRACTING)
        major = await self._extract(major_archive) if major_archive is not None else None
        minor = await self._extract(minor_archive) if minor_archive is not None else None

        self._enter(key, SyncPhase.MERGING)
        if major is not None:
            # A major release is a new edition; nothing of the previous one survives
            tables = replace_tables(BookDataset.empty().tables, major, BookDataset.TABLES)
        else:
            base = await asyncio.to_thread(self.snapshots.load_book, book_id) or BookDataset.empty()
            tables = base.tables
        if minor is not None:
            tables = merge_tables(tables, minor, BookDataset.TABLES)
        merged = BookDataset(tables=tables)

        self._enter(key, SyncPhase.PERSISTING)
        await asyncio.to_thread(self.snapshots.save_book, book_id, merged)
        await asyncio.to_thread(self.versions.set, key, target)

        logger.info("Book %d updated %s -> %s", book_id, previous, target)
        return SyncResult(
            key=key,
            status=SyncStatus.UPDATED,
            previous=previous,
            current=target,
            table_counts=merged.counts(),
            patch_records=_count_records(major, minor),
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    def get_master(self) -> MasterDataset:
        """The last persisted master dataset (empty before the first sync)."""
        return self.snapshots.load_master()

    async def get_book_content(self, book_id: int) -> BookDataset | None:
        """
        The persisted dataset of a book, downloading it first if needed.

        Args:
            book_id: Remote id of the book

        Returns:
            BookDataset, or None if the remote has no content for the book

        Raises:
            NetworkError, ExtractionError, PersistenceError: The download failed
        """
        dataset = await asyncio.to_thread(self.snapshots.load_book, book_id)
        if dataset is not None:
            return dataset

        # sync_book holds the per-key lock; a caller that queued behind another
        # download finds the snapshot in place and gets a 204 from the remote
        await self.sync_book(book_id)
        return await asyncio.to_thread(self.snapshots.load_book, book_id)

    def get_outline(self, book_id: int) -> list[TitleNode]:
        """
        Outline tree of a downloaded book (empty if not downloaded).

        Raises:
            MalformedOutlineError: If the book's title links contain a cycle
        """
        dataset = self.snapshots.load_book(book_id)
        if dataset is None:
            return []
        return build_outline(dataset.table("title"))


__all__ = ["SyncOrchestrator", "PhaseListener"]
