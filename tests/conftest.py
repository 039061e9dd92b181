"""
Pytest configuration and shared fixtures.

Provides an in-process fake of the remote patch API (served through
httpx.MockTransport), builders for real zip + SQLite patch archives,
in-memory stores, and sample catalog data.
"""

import io
import sqlite3
import tempfile
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from shamela_mirror.core.config import clear_cache
from shamela_mirror.core.snapshot.store import MemorySnapshotStore
from shamela_mirror.core.sync.client import PatchClient
from shamela_mirror.core.sync.orchestrator import SyncOrchestrator
from shamela_mirror.core.sync.versions import MemoryVersionStore

Rows = list[dict[str, Any]]

# ==============================================================================
# Archive Builders
# ==============================================================================


def build_table_db(table: str, rows: Rows) -> bytes:
    """Build an SQLite file holding one table with the given rows."""
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    if not columns:
        columns = ["id"]

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / f"{table}.db"
        conn = sqlite3.connect(str(path))
        try:
            column_list = ", ".join(f'"{c}"' for c in columns)
            placeholders = ", ".join("?" for _ in columns)
            conn.execute(f'CREATE TABLE "{table}" ({column_list})')
            conn.executemany(
                f'INSERT INTO "{table}" ({column_list}) VALUES ({placeholders})',
                [tuple(row.get(c) for c in columns) for row in rows],
            )
            conn.commit()
        finally:
            conn.close()
        return path.read_bytes()


def build_archive(tables: dict[str, Rows], extra: dict[str, bytes] | None = None) -> bytes:
    """Build a patch archive: one ``<table>.db`` entry per table plus extra entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, rows in tables.items():
            archive.writestr(f"{name}.db", build_table_db(name, rows))
        for name, data in (extra or {}).items():
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def make_table_db() -> Callable[[str, Rows], bytes]:
    """Provide the single-table SQLite file builder."""
    return build_table_db


@pytest.fixture
def make_archive() -> Callable[..., bytes]:
    """Provide the patch archive builder."""
    return build_archive


# ==============================================================================
# Fake Remote
# ==============================================================================


class FakeRemote:
    """
    In-process stand-in for the patch API and its archive host.

    Publishing a release makes the matching patch endpoint answer 200 for
    older cursors and 204 for current ones, like the real service.
    """

    BASE_URL = "https://api.test/v1"
    FILES_URL = "https://files.test"
    API_KEY = "test-key"

    def __init__(self) -> None:
        self.master: dict[str, Any] | None = None
        self.books: dict[int, dict[str, Any]] = {}
        self.archives: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.patch_status: int | None = None
        self.archive_status: int | None = None

    def publish_master(self, version: int, tables: dict[str, Rows]) -> str:
        url = f"{self.FILES_URL}/master-{version}.zip?sig=secret"
        self.archives[url] = build_archive(tables)
        self.master = {"patch_url": url, "Version": version}
        return url

    def publish_book(
        self,
        book_id: int,
        major: int,
        minor: int,
        major_tables: dict[str, Rows] | None = None,
        minor_tables: dict[str, Rows] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"major_release": major, "minor_release": minor}
        if major_tables is not None:
            url = f"{self.FILES_URL}/{book_id}-major-{major}.zip"
            self.archives[url] = build_archive(major_tables)
            payload["major_release_url"] = url
        if minor_tables is not None:
            url = f"{self.FILES_URL}/{book_id}-minor-{major}-{minor}.zip"
            self.archives[url] = build_archive(minor_tables)
            payload["minor_release_url"] = url
        self.books[book_id] = payload

    def patch_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/patches/" in r.url.path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if "/patches/" in path:
            if self.patch_status is not None:
                return httpx.Response(self.patch_status, json={"error": "unavailable"})
            if request.url.params.get("api_key") != self.API_KEY:
                return httpx.Response(401, json={"error": "bad key"})
            if path.endswith("/patches/master"):
                return self._master_response(request)
            book_id = int(path.rsplit("/", 1)[1])
            return self._book_response(book_id, request)

        if str(request.url) in self.archives:
            if self.archive_status is not None:
                return httpx.Response(self.archive_status)
            return httpx.Response(200, content=self.archives[str(request.url)])
        return httpx.Response(404)

    def _master_response(self, request: httpx.Request) -> httpx.Response:
        local = int(request.url.params["version"])
        if self.master is None or local >= self.master["Version"]:
            return httpx.Response(204)
        return httpx.Response(200, json=self.master)

    def _book_response(self, book_id: int, request: httpx.Request) -> httpx.Response:
        payload = self.books.get(book_id)
        local = (int(request.url.params["major_release"]), int(request.url.params["minor_release"]))
        if payload is None or local >= (payload["major_release"], payload["minor_release"]):
            return httpx.Response(204)
        return httpx.Response(200, json=payload)


@pytest.fixture
def remote() -> FakeRemote:
    """Provide a fresh fake remote with nothing published."""
    return FakeRemote()


@pytest.fixture
def patch_client(remote: FakeRemote) -> PatchClient:
    """Provide a PatchClient wired to the fake remote."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(remote.handler))
    return PatchClient(FakeRemote.BASE_URL, FakeRemote.API_KEY, http_client=http_client)


# ==============================================================================
# Stores and Orchestrator
# ==============================================================================


@pytest.fixture
def snapshots() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def versions() -> MemoryVersionStore:
    return MemoryVersionStore()


@pytest.fixture
def orchestrator(
    patch_client: PatchClient,
    snapshots: MemorySnapshotStore,
    versions: MemoryVersionStore,
) -> SyncOrchestrator:
    """Provide an orchestrator over in-memory stores and the fake remote."""
    return SyncOrchestrator(patch_client, snapshots, versions)


# ==============================================================================
# Sample Data
# ==============================================================================


@pytest.fixture
def master_tables() -> dict[str, Rows]:
    """
    A small catalog: two categories, three authors, four books.

    Book 4 and author 3 are flagged deleted; book 3 points at an author
    and a category that do not exist.
    """
    return {
        "category": [
            {"id": 1, "name": "الحديث", "order": 2, "is_deleted": 0},
            {"id": 2, "name": "الفقه", "order": 1, "is_deleted": "0"},
        ],
        "author": [
            {"id": 1, "name": "البخاري", "biography": "إمام المحدثين", "death_text": "256", "death_number": 256, "is_deleted": 0},
            {"id": 2, "name": "مسلم", "biography": "صاحب الصحيح", "death_text": "261", "death_number": 261, "is_deleted": 0},
            {"id": 3, "name": "محذوف", "biography": None, "death_text": None, "death_number": None, "is_deleted": 1},
        ],
        "book": [
            {
                "id": 1,
                "name": "صحيح البخاري",
                "author": "1",
                "category": 1,
                "type": 1,
                "printed": 1,
                "date": 256,
                "bibliography": "الجامع الصحيح",
                "pdf_links": '{"files": ["a.pdf"]}',
                "metadata": "not json",
                "is_deleted": 0,
            },
            {
                "id": 2,
                "name": "صحيح مسلم",
                "author": "2, 1",
                "category": 1,
                "type": 1,
                "printed": 1,
                "date": 261,
                "bibliography": None,
                "pdf_links": None,
                "metadata": None,
                "is_deleted": 0,
            },
            {
                "id": 3,
                "name": "كتاب بلا مؤلف",
                "author": "99",
                "category": 42,
                "type": 2,
                "printed": 0,
                "date": None,
                "bibliography": None,
                "pdf_links": None,
                "metadata": None,
                "is_deleted": 0,
            },
            {
                "id": 4,
                "name": "كتاب محذوف",
                "author": "1",
                "category": 2,
                "type": 1,
                "printed": 1,
                "date": 100,
                "bibliography": None,
                "pdf_links": None,
                "metadata": None,
                "is_deleted": 1,
            },
        ],
    }


@pytest.fixture
def book_tables() -> dict[str, Rows]:
    """Pages and titles of a small book with a two-level outline."""
    return {
        "page": [
            {"id": 3, "part": "1", "page": 3, "content": "ثالثة", "services": None},
            {"id": 1, "part": "1", "page": 1, "content": "أولى", "services": '{"hadith": [1]}'},
            {"id": 2, "part": "2", "page": 1, "content": "ثانية", "services": "broken"},
        ],
        "title": [
            {"id": 1, "parent": 0, "content": "Part 1", "page": 1},
            {"id": 2, "parent": 1, "content": "Chapter 1", "page": 2},
            {"id": 3, "parent": 0, "content": "Part 2", "page": 3},
            {"id": 4, "parent": 2, "content": "Section 1", "page": 2},
        ],
    }


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep tests away from the real user config and environment."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "SHAMELA_API_KEY",
        "SHAMELA_BASE_URL",
        "SHAMELA_DATA_DIR",
        "SHAMELA_CACHE_DIR",
        "SHAMELA_TIMEOUT",
        "SHAMELA_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()
