"""
Durable snapshots of the master dataset and per-book datasets.

Example:
    >>> from shamela_mirror.core.snapshot import FileSnapshotStore
    >>> store = FileSnapshotStore(Path("shamela_data"))
    >>> master = store.load_master()
    >>> len(master.table("book"))
    0
"""

from shamela_mirror.core.snapshot.models import (
    BookDataset,
    Dataset,
    DatasetKind,
    MasterDataset,
)
from shamela_mirror.core.snapshot.store import (
    FileSnapshotStore,
    MemorySnapshotStore,
    SnapshotStore,
)

__all__ = [
    "Dataset",
    "DatasetKind",
    "MasterDataset",
    "BookDataset",
    "SnapshotStore",
    "FileSnapshotStore",
    "MemorySnapshotStore",
]
