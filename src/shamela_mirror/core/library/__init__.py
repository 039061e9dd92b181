"""
Library catalog: read-only queries over persisted snapshots.
"""

from shamela_mirror.core.library.catalog import (
    LibraryCatalog,
    SearchScope,
    decode_json,
    parse_author_ids,
)
from shamela_mirror.core.library.models import (
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

__all__ = [
    "LibraryCatalog",
    "SearchScope",
    "decode_json",
    "parse_author_ids",
    "AuthorList",
    "AuthorRef",
    "AuthorSummary",
    "BookContent",
    "BookDetail",
    "BookList",
    "BookSummary",
    "CategoryRef",
    "CategorySummary",
    "LibraryStats",
    "PageView",
    "SearchHit",
    "SearchResults",
]
