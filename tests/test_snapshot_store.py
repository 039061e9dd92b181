"""Tests for snapshot models and storage backends."""

import json
from pathlib import Path

import pytest

from shamela_mirror.core.exceptions import PersistenceError
from shamela_mirror.core.records import UNCHANGED
from shamela_mirror.core.snapshot import (
    BookDataset,
    FileSnapshotStore,
    MasterDataset,
    MemorySnapshotStore,
    SnapshotStore,
)


def _master() -> MasterDataset:
    return MasterDataset(
        tables={
            "category": {1: {"id": 1, "name": "الحديث"}},
            "book": {10: {"id": 10, "name": "X", "is_deleted": False}, 11: {"id": 11, "is_deleted": True}},
        }
    )


class TestDatasetModels:
    """Test suite for dataset models."""

    def test_missing_tables_filled(self) -> None:
        dataset = MasterDataset(tables={"book": {}})
        assert set(dataset.tables) == {"category", "author", "book"}

    def test_empty(self) -> None:
        assert BookDataset.empty().counts() == {"page": 0, "title": 0}

    def test_serialized_as_record_lists(self) -> None:
        data = json.loads(_master().model_dump_json())
        assert data["kind"] == "master"
        assert data["tables"]["book"] == [
            {"id": 10, "name": "X", "is_deleted": False},
            {"id": 11, "is_deleted": True},
        ]

    def test_round_trip_preserves_table_keys(self) -> None:
        restored = MasterDataset.model_validate_json(_master().model_dump_json())
        assert restored.tables == _master().tables
        assert 10 in restored.table("book")

    def test_live_skips_deleted(self) -> None:
        assert [r["id"] for r in _master().live("book")] == [10]

    def test_has_unchanged(self) -> None:
        dataset = BookDataset(tables={"page": {1: {"id": 1, "content": UNCHANGED}}})
        assert dataset.has_unchanged()
        assert not _master().has_unchanged()


class TestFileSnapshotStore:
    """Test suite for the JSON file backend."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> FileSnapshotStore:
        return FileSnapshotStore(tmp_path / "data")

    def test_implements_protocol(self, store: FileSnapshotStore) -> None:
        assert isinstance(store, SnapshotStore)

    def test_load_master_before_first_save(self, store: FileSnapshotStore) -> None:
        master = store.load_master()
        assert master.counts() == {"category": 0, "author": 0, "book": 0}

    def test_master_round_trip(self, store: FileSnapshotStore) -> None:
        store.save_master(_master())
        assert store.master_path.exists()
        assert store.load_master().tables == _master().tables

    def test_book_round_trip(self, store: FileSnapshotStore) -> None:
        dataset = BookDataset(tables={"page": {1: {"id": 1, "content": "نص"}}})
        assert store.load_book(6387) is None
        assert not store.has_book(6387)

        store.save_book(6387, dataset)
        assert store.has_book(6387)
        assert store.book_path(6387) == store.data_dir / "books" / "6387.json"
        assert store.load_book(6387).table("page")[1]["content"] == "نص"

    def test_list_books(self, store: FileSnapshotStore) -> None:
        assert store.list_books() == []
        for book_id in (30, 4, 100):
            store.save_book(book_id, BookDataset.empty())
        (store.books_dir / "notes.json").write_text("{}")
        assert store.list_books() == [4, 30, 100]

    def test_no_temp_files_left_behind(self, store: FileSnapshotStore) -> None:
        store.save_master(_master())
        store.save_master(_master())
        assert [p.name for p in store.data_dir.iterdir() if p.is_file()] == ["master.json"]

    def test_corrupt_snapshot_raises(self, store: FileSnapshotStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.master_path.write_text("{not json")
        with pytest.raises(PersistenceError, match="master.json"):
            store.load_master()

    @pytest.mark.parametrize(
        "tables",
        [
            {"book": [{"name": "x"}]},
            {"book": ["oops"]},
        ],
    )
    def test_malformed_records_raise(self, store: FileSnapshotStore, tables: dict) -> None:
        store.data_dir.mkdir(parents=True)
        store.master_path.write_text(json.dumps({"kind": "master", "tables": tables}))
        with pytest.raises(PersistenceError, match="master.json"):
            store.load_master()

    def test_refuses_unchanged_markers(self, store: FileSnapshotStore) -> None:
        dataset = BookDataset(tables={"page": {1: {"id": 1, "content": UNCHANGED}}})
        with pytest.raises(PersistenceError, match="UNCHANGED"):
            store.save_book(1, dataset)
        assert not store.has_book(1)

    def test_write_failure_keeps_previous_snapshot(
        self, store: FileSnapshotStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store.save_master(_master())

        def fail(path: Path, text: str) -> Path:
            raise OSError("disk full")

        monkeypatch.setattr("shamela_mirror.core.snapshot.store.atomic_write_text", fail)
        with pytest.raises(PersistenceError, match="disk full"):
            store.save_master(MasterDataset.empty())
        assert store.load_master().tables == _master().tables


class TestMemorySnapshotStore:
    """Test suite for the in-memory backend."""

    def test_copies_are_isolated(self) -> None:
        store = MemorySnapshotStore()
        dataset = _master()
        store.save_master(dataset)
        dataset.tables["book"].clear()
        assert len(store.load_master().table("book")) == 2

    def test_books(self) -> None:
        store = MemorySnapshotStore()
        store.save_book(2, BookDataset.empty())
        store.save_book(1, BookDataset.empty())
        assert store.list_books() == [1, 2]
        assert store.has_book(1)
        assert store.load_book(3) is None
