"""
Read-only queries over the persisted library snapshots.

The catalog never talks to the network; it only reads what the sync
engine has persisted. Deleted records are never returned, and references
to authors or categories that do not exist render as absent.

Example:
    >>> catalog = LibraryCatalog(FileSnapshotStore(Path("shamela_data")))
    >>> page = catalog.books(search="صحيح", limit=10)
    >>> for book in page.data:
    ...     print(book.id, book.name, book.author)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from shamela_mirror.core.outline import build_outline
from shamela_mirror.core.records import UNCHANGED, Record, is_deleted
from shamela_mirror.core.snapshot.models import BookDataset, MasterDataset
from shamela_mirror.core.snapshot.store import SnapshotStore

from .models import (
    AuthorList,
    AuthorRef,
    AuthorSummary,
    BookContent,
    BookDetail,
    BookList,
    BookSummary,
    CategoryRef,
    CategorySummary,
    LibraryStats,
    PageView,
    SearchHit,
    SearchResults,
)

logger = logging.getLogger(__name__)

AUTHOR_SEPARATOR = " و "
MISSING_SORT_KEY = 9999
MIN_QUERY_LENGTH = 2
DEFAULT_PAGE_SIZE = 50
DEFAULT_SEARCH_LIMIT = 20


class SearchScope(str, Enum):
    """Which record kinds a search covers."""

    ALL = "all"
    BOOKS = "books"
    AUTHORS = "authors"


def to_int(value: Any) -> int | None:
    """Parse an integer cell, returning None for blanks and garbage."""
    if value is None or value is UNCHANGED or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def to_text(value: Any) -> str | None:
    """Render a cell as text (None stays None)."""
    if value is None or value is UNCHANGED:
        return None
    return str(value)


def parse_author_ids(value: Any) -> list[int]:
    """
    Parse the comma-separated author id list of a book.

    Example:
        >>> parse_author_ids("12, 7,x")
        [12, 7]
    """
    if value is None or value is UNCHANGED:
        return []
    ids = []
    for part in str(value).split(","):
        author_id = to_int(part)
        if author_id is not None:
            ids.append(author_id)
    return ids


def decode_json(value: Any) -> Any:
    """Decode a JSON-encoded cell; anything invalid or empty becomes None."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return None


def _sort_number(value: Any) -> float:
    # Blank and zero sort last, as the upstream catalog does
    try:
        number = float(value)
    except (TypeError, ValueError):
        return MISSING_SORT_KEY
    return number or MISSING_SORT_KEY


def _matches(query: str, *fields: Any) -> bool:
    return any(isinstance(field, str) and query in field.lower() for field in fields)


def _window(items: list[Any], offset: int, limit: int) -> list[Any]:
    offset = max(offset, 0)
    return items[offset:offset + max(limit, 0)]


class LibraryCatalog:
    """Query layer over the master dataset and downloaded books."""

    def __init__(self, snapshots: SnapshotStore) -> None:
        self.snapshots = snapshots

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _master(self) -> MasterDataset:
        return self.snapshots.load_master()

    @staticmethod
    def _authors_of(master: MasterDataset, book: Record) -> list[Record]:
        authors = master.table("author")
        return [
            authors[i]
            for i in parse_author_ids(book.get("author"))
            if i in authors and not is_deleted(authors[i])
        ]

    @classmethod
    def _author_names(cls, master: MasterDataset, book: Record) -> str | None:
        names = [to_text(a.get("name")) or "" for a in cls._authors_of(master, book)]
        return AUTHOR_SEPARATOR.join(names) if names else None

    @staticmethod
    def _category_of(master: MasterDataset, book: Record) -> Record | None:
        category_id = to_int(book.get("category"))
        if category_id is None:
            return None
        category = master.table("category").get(category_id)
        if category is None or is_deleted(category):
            return None
        return category

    def _summarize_book(self, master: MasterDataset, book: Record, downloaded: set[int]) -> BookSummary:
        category = self._category_of(master, book)
        return BookSummary(
            id=book["id"],
            name=to_text(book.get("name")),
            author=self._author_names(master, book),
            author_ids=to_text(book.get("author")),
            category=to_text(category.get("name")) if category else None,
            category_id=to_int(book.get("category")),
            type=to_int(book.get("type")),
            printed=book.get("printed"),
            date=book.get("date"),
            bibliography=to_text(book.get("bibliography")),
            is_downloaded=book["id"] in downloaded,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def categories(self) -> list[CategorySummary]:
        """Live categories ordered by their ``order`` field."""
        master = self._master()
        counts: dict[int, int] = {}
        for book in master.live("book"):
            category_id = to_int(book.get("category"))
            if category_id is not None:
                counts[category_id] = counts.get(category_id, 0) + 1

        categories = sorted(master.live("category"), key=lambda c: to_int(c.get("order")) or 0)
        return [
            CategorySummary(
                id=c["id"],
                name=to_text(c.get("name")),
                order=to_int(c.get("order")),
                book_count=counts.get(c["id"], 0),
            )
            for c in categories
        ]

    def authors(
        self,
        search: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> AuthorList:
        """
        Live authors, optionally filtered by name or biography.

        Ordered by death year; authors without one come last.
        """
        master = self._master()
        authors = master.live("author")
        if search:
            query = search.lower()
            authors = [a for a in authors if _matches(query, a.get("name"), a.get("biography"))]
        authors.sort(key=lambda a: _sort_number(a.get("death_number")))

        counts: dict[int, int] = {}
        for book in master.live("book"):
            for author_id in set(parse_author_ids(book.get("author"))):
                counts[author_id] = counts.get(author_id, 0) + 1

        return AuthorList(
            total=len(authors),
            offset=offset,
            limit=limit,
            data=[
                AuthorSummary(
                    id=a["id"],
                    name=to_text(a.get("name")),
                    biography=to_text(a.get("biography")),
                    death_text=to_text(a.get("death_text")),
                    death_number=a.get("death_number"),
                    book_count=counts.get(a["id"], 0),
                )
                for a in _window(authors, offset, limit)
            ],
        )

    def books(
        self,
        search: str | None = None,
        category: int | None = None,
        author: int | None = None,
        type: int | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> BookList:
        """
        Live books matching the given filters, ordered by date.

        Args:
            search: Case-insensitive substring of the name or bibliography
            category: Category id
            author: Author id (matches any entry of the book's author list)
            type: Book type code
            limit: Page size
            offset: Number of matches to skip
        """
        master = self._master()
        books = master.live("book")
        if search:
            query = search.lower()
            books = [b for b in books if _matches(query, b.get("name"), b.get("bibliography"))]
        if category is not None:
            books = [b for b in books if to_int(b.get("category")) == category]
        if author is not None:
            books = [b for b in books if author in parse_author_ids(b.get("author"))]
        if type is not None:
            books = [b for b in books if to_int(b.get("type")) == type]
        books.sort(key=lambda b: _sort_number(b.get("date")))

        downloaded = set(self.snapshots.list_books())
        return BookList(
            total=len(books),
            offset=offset,
            limit=limit,
            data=[self._summarize_book(master, b, downloaded) for b in _window(books, offset, limit)],
        )

    def book(self, book_id: int) -> BookDetail | None:
        """
        Details of one live book, or None if the catalog does not list it.

        ``pdf_links`` and ``metadata`` are JSON-decoded when they hold valid
        JSON. Content counters come from the local book snapshot, if any.
        """
        master = self._master()
        book = master.table("book").get(book_id)
        if book is None or is_deleted(book):
            return None

        category = self._category_of(master, book)
        local = self.snapshots.load_book(book_id)
        return BookDetail(
            id=book["id"],
            name=to_text(book.get("name")),
            authors=[
                AuthorRef(id=a["id"], name=to_text(a.get("name")), death_text=to_text(a.get("death_text")))
                for a in self._authors_of(master, book)
            ],
            category=CategoryRef(id=category["id"], name=to_text(category.get("name"))) if category else None,
            type=to_int(book.get("type")),
            printed=book.get("printed"),
            date=book.get("date"),
            bibliography=to_text(book.get("bibliography")),
            version=book.get("version"),
            pdf_links=decode_json(book.get("pdf_links")),
            metadata=decode_json(book.get("metadata")),
            has_content=local is not None,
            page_count=len(local.live("page")) if local else 0,
            title_count=len(local.live("title")) if local else 0,
        )

    def book_content(
        self,
        dataset: BookDataset,
        page: int | None = None,
        part: str | None = None,
    ) -> BookContent:
        """
        Render a book dataset: filtered pages sorted by id plus the outline.

        Args:
            dataset: The book's persisted dataset
            page: Keep only pages with this printed page number
            part: Keep only pages of this volume

        Raises:
            MalformedOutlineError: If the title links contain a cycle
        """
        all_pages = dataset.live("page")
        pages = all_pages
        if page is not None:
            pages = [p for p in pages if to_int(p.get("page")) == page]
        if part is not None:
            pages = [p for p in pages if to_text(p.get("part")) == part]
        pages = sorted(pages, key=lambda p: p["id"])

        return BookContent(
            pages=[
                PageView(
                    id=p["id"],
                    part=p.get("part"),
                    page=p.get("page"),
                    content=to_text(p.get("content")),
                    services=decode_json(p.get("services")),
                )
                for p in pages
            ],
            titles=build_outline(dataset.table("title")),
            total_pages=len(all_pages),
            total_titles=len(dataset.live("title")),
        )

    def search(
        self,
        query: str | None,
        scope: SearchScope = SearchScope.ALL,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> SearchResults:
        """
        Search book and author names.

        Queries shorter than two characters return no results.
        """
        results = SearchResults()
        if not query or len(query) < MIN_QUERY_LENGTH:
            return results

        master = self._master()
        needle = query.lower()

        if scope in (SearchScope.ALL, SearchScope.BOOKS):
            results.books = [
                SearchHit(
                    id=b["id"],
                    name=to_text(b.get("name")),
                    author=self._author_names(master, b),
                    type="book",
                )
                for b in _first(master.live("book"), needle, limit)
            ]

        if scope in (SearchScope.ALL, SearchScope.AUTHORS):
            results.authors = [
                SearchHit(
                    id=a["id"],
                    name=to_text(a.get("name")),
                    death_text=to_text(a.get("death_text")),
                    type="author",
                )
                for a in _first(master.live("author"), needle, limit)
            ]

        logger.debug(
            "Search '%s' (%s): %d books, %d authors",
            query,
            scope.value,
            len(results.books),
            len(results.authors),
        )
        return results

    def stats(self) -> LibraryStats:
        """Table sizes of the master dataset and the downloaded book count."""
        counts = self._master().counts()
        return LibraryStats(
            categories=counts.get("category", 0),
            books=counts.get("book", 0),
            authors=counts.get("author", 0),
            downloaded_books=len(self.snapshots.list_books()),
        )


def _first(records: Iterable[Record], needle: str, limit: int) -> list[Record]:
    matches = [r for r in records if _matches(needle, r.get("name"))]
    return matches[:max(limit, 0)]


__all__ = [
    "LibraryCatalog",
    "SearchScope",
    "parse_author_ids",
    "decode_json",
    "to_int",
    "to_text",
]
