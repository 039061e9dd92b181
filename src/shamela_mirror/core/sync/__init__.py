"""
Incremental synchronization of the master dataset and per-book datasets.

Example:
    >>> from shamela_mirror.core.sync import SyncOrchestrator, PatchClient
    >>> async with PatchClient(base_url, api_key) as client:
    ...     orchestrator = SyncOrchestrator(
    ...         client,
    ...         FileSnapshotStore(data_dir),
    ...         FileVersionStore(cache_dir),
    ...     )
    ...     result = await orchestrator.sync_master()
    ...     print(result.summary())
"""

from shamela_mirror.core.sync.client import PatchClient
from shamela_mirror.core.sync.models import (
    MASTER_KEY,
    BookCursor,
    BookPatchInfo,
    MasterCursor,
    MasterPatchInfo,
    SyncPhase,
    SyncResult,
    SyncStatus,
    VersionCursor,
    book_key,
)
from shamela_mirror.core.sync.orchestrator import SyncOrchestrator
from shamela_mirror.core.sync.versions import (
    FileVersionStore,
    MemoryVersionStore,
    VersionStore,
)

__all__ = [
    "MASTER_KEY",
    "book_key",
    "MasterCursor",
    "BookCursor",
    "VersionCursor",
    "MasterPatchInfo",
    "BookPatchInfo",
    "SyncPhase",
    "SyncStatus",
    "SyncResult",
    "PatchClient",
    "SyncOrchestrator",
    "VersionStore",
    "FileVersionStore",
    "MemoryVersionStore",
]
