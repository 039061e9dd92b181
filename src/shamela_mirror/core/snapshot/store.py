"""
Snapshot storage for the master dataset and per-book datasets.

Layout of the file backend:

    <data_dir>/master.json
    <data_dir>/books/<book_id>.json

Every save is all-or-nothing (temp file + rename), so a crash mid-write
leaves the previous snapshot readable.

Example:
    >>> store = FileSnapshotStore(Path("shamela_data"))
    >>> master = store.load_master()
    >>> store.save_master(master)
    >>> store.load_book(6387) is None
    True
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import ValidationError

from shamela_mirror.core.exceptions import PersistenceError
from shamela_mirror.core.snapshot.models import BookDataset, Dataset, MasterDataset
from shamela_mirror.utils.files import atomic_write_text

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Dataset)


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Protocol for snapshot storage backends.

    Loading the master never fails on "not found" (an empty dataset is
    returned); loading a book that was never downloaded returns None.
    """

    def load_master(self) -> MasterDataset: ...

    def save_master(self, dataset: MasterDataset) -> None: ...

    def load_book(self, book_id: int) -> BookDataset | None: ...

    def save_book(self, book_id: int, dataset: BookDataset) -> None: ...

    def has_book(self, book_id: int) -> bool: ...

    def list_books(self) -> list[int]: ...


def _check_persistable(dataset: Dataset, name: str) -> None:
    if dataset.has_unchanged():
        raise PersistenceError(
            f"Refusing to save {name}: dataset still holds UNCHANGED markers",
            snapshot=name,
        )


class FileSnapshotStore:
    """JSON file backend for snapshots."""

    MASTER_FILE = "master.json"
    BOOKS_DIR = "books"

    def __init__(self, data_dir: Path) -> None:
        """
        Initialize the store.

        Args:
            data_dir: Directory holding master.json and the books/ directory
        """
        self.data_dir = Path(data_dir)

    @property
    def master_path(self) -> Path:
        """Path to the master snapshot file."""
        return self.data_dir / self.MASTER_FILE

    @property
    def books_dir(self) -> Path:
        """Directory holding per-book snapshot files."""
        return self.data_dir / self.BOOKS_DIR

    def book_path(self, book_id: int) -> Path:
        """Path to the snapshot file of one book."""
        return self.books_dir / f"{book_id}.json"

    def load_master(self) -> MasterDataset:
        dataset = self._load(self.master_path, MasterDataset)
        return dataset if dataset is not None else MasterDataset.empty()

    def save_master(self, dataset: MasterDataset) -> None:
        self._save(self.master_path, dataset)

    def load_book(self, book_id: int) -> BookDataset | None:
        return self._load(self.book_path(book_id), BookDataset)

    def save_book(self, book_id: int, dataset: BookDataset) -> None:
        self._save(self.book_path(book_id), dataset)

    def has_book(self, book_id: int) -> bool:
        return self.book_path(book_id).exists()

    def list_books(self) -> list[int]:
        if not self.books_dir.exists():
            return []
        return sorted(
            int(path.stem) for path in self.books_dir.glob("*.json") if path.stem.isdigit()
        )

    def _load(self, path: Path, model: type[D]) -> D | None:
        if not path.exists():
            return None

        try:
            content = path.read_text(encoding="utf-8")
            return model.model_validate_json(content)
        except (OSError, ValidationError) as e:
            raise PersistenceError(
                f"Failed to read snapshot {path.name}: {e}",
                path=str(path),
            ) from e

    def _save(self, path: Path, dataset: Dataset) -> None:
        _check_persistable(dataset, path.name)
        try:
            atomic_write_text(path, dataset.model_dump_json(indent=2))
        except OSError as e:
            raise PersistenceError(
                f"Failed to write snapshot {path.name}: {e}",
                path=str(path),
            ) from e
        logger.debug("Saved snapshot %s (%s)", path, dataset.counts())


class MemorySnapshotStore:
    """In-memory backend; keeps serialized copies so callers cannot alias them."""

    def __init__(self) -> None:
        self._master: str | None = None
        self._books: dict[int, str] = {}

    def load_master(self) -> MasterDataset:
        if self._master is None:
            return MasterDataset.empty()
        return MasterDataset.model_validate_json(self._master)

    def save_master(self, dataset: MasterDataset) -> None:
        _check_persistable(dataset, "master")
        self._master = dataset.model_dump_json()

    def load_book(self, book_id: int) -> BookDataset | None:
        data = self._books.get(book_id)
        return None if data is None else BookDataset.model_validate_json(data)

    def save_book(self, book_id: int, dataset: BookDataset) -> None:
        _check_persistable(dataset, f"book {book_id}")
        self._books[book_id] = dataset.model_dump_json()

    def has_book(self, book_id: int) -> bool:
        return book_id in self._books

    def list_books(self) -> list[int]:
        return sorted(self._books)


__all__ = ["SnapshotStore", "FileSnapshotStore", "MemorySnapshotStore"]
