"""
Response models for library catalog queries.

Field names follow the public JSON shape of the HTTP API (camelCase where
the API uses it); Python code reads them through snake_case attributes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shamela_mirror.core.outline import TitleNode


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CategorySummary(_ApiModel):
    """A live category with the number of books filed under it."""

    id: int
    name: str | None = None
    order: int | None = None
    book_count: int = Field(default=0, alias="bookCount")


class AuthorSummary(_ApiModel):
    """A live author with the number of books credited to them."""

    id: int
    name: str | None = None
    biography: str | None = None
    death_text: str | None = None
    death_number: Any = None
    book_count: int = Field(default=0, alias="bookCount")


class BookSummary(_ApiModel):
    """A live book enriched with display names of its author(s) and category."""

    id: int
    name: str | None = None
    author: str | None = Field(default=None, description="Author names joined by ' و '")
    author_ids: str | None = Field(default=None, alias="authorIds")
    category: str | None = None
    category_id: int | None = Field(default=None, alias="categoryId")
    type: int | None = None
    printed: Any = None
    date: Any = None
    bibliography: str | None = None
    is_downloaded: bool = Field(default=False, alias="isDownloaded")


class AuthorRef(_ApiModel):
    id: int
    name: str | None = None
    death_text: str | None = None


class CategoryRef(_ApiModel):
    id: int
    name: str | None = None


class BookDetail(_ApiModel):
    """Full description of one book, including local content availability."""

    id: int
    name: str | None = None
    authors: list[AuthorRef] = Field(default_factory=list)
    category: CategoryRef | None = None
    type: int | None = None
    printed: Any = None
    date: Any = None
    bibliography: str | None = None
    version: Any = None
    pdf_links: Any = Field(default=None, alias="pdfLinks")
    metadata: Any = None
    has_content: bool = Field(default=False, alias="hasContent")
    page_count: int = Field(default=0, alias="pageCount")
    title_count: int = Field(default=0, alias="titleCount")


class PageView(_ApiModel):
    id: int
    part: Any = None
    page: Any = None
    content: str | None = None
    services: Any = None


class BookContent(_ApiModel):
    """Pages of a book (possibly filtered) with its full outline."""

    pages: list[PageView] = Field(default_factory=list)
    titles: list[TitleNode] = Field(default_factory=list)
    total_pages: int = Field(default=0, alias="totalPages")
    total_titles: int = Field(default=0, alias="totalTitles")


class ListPage(_ApiModel):
    """Paging envelope shared by list queries."""

    total: int = 0
    offset: int = 0
    limit: int = 0


class AuthorList(ListPage):
    data: list[AuthorSummary] = Field(default_factory=list)


class BookList(ListPage):
    data: list[BookSummary] = Field(default_factory=list)


class SearchHit(_ApiModel):
    id: int
    name: str | None = None
    type: str
    author: str | None = None
    death_text: str | None = None


class SearchResults(_ApiModel):
    books: list[SearchHit] = Field(default_factory=list)
    authors: list[SearchHit] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.books or self.authors)


class LibraryStats(_ApiModel):
    """Table sizes of the master dataset and the number of downloaded books."""

    categories: int = 0
    books: int = 0
    authors: int = 0
    downloaded_books: int = Field(default=0, alias="downloadedBooks")


__all__ = [
    "CategorySummary",
    "AuthorSummary",
    "BookSummary",
    "AuthorRef",
    "CategoryRef",
    "BookDetail",
    "PageView",
    "BookContent",
    "ListPage",
    "AuthorList",
    "BookList",
    "SearchHit",
    "SearchResults",
    "LibraryStats",
]
