"""
Catalog API routes.

Provides read-only endpoints over the local master snapshot:
- GET /api/categories - Live categories with book counts
- GET /api/authors - Authors with search and paging
- GET /api/books - Books with search, filters and paging
- GET /api/books/{id} - Details of one book
- GET /api/search - Name search across books and authors
- GET /api/stats - Table sizes and downloaded book count
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from shamela_mirror.core.api.deps import get_catalog
from shamela_mirror.core.library.catalog import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SEARCH_LIMIT,
    LibraryCatalog,
    SearchScope,
)
from shamela_mirror.core.library.models import ListPage

router = APIRouter()


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json", by_alias=True)


def _list_envelope(page: ListPage, data: list[Any]) -> dict[str, Any]:
    return {
        "success": True,
        "total": page.total,
        "count": len(data),
        "offset": page.offset,
        "limit": page.limit,
        "data": [_dump(item) for item in data],
    }


@router.get("/categories")
def list_categories(catalog: LibraryCatalog = Depends(get_catalog)) -> dict[str, Any]:
    """Live categories sorted by display order."""
    categories = catalog.categories()
    return {"success": True, "count": len(categories), "data": [_dump(c) for c in categories]}


@router.get("/authors")
def list_authors(
    search: str | None = Query(None, description="Substring of name or biography"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=0),
    offset: int = Query(0, ge=0),
    catalog: LibraryCatalog = Depends(get_catalog),
) -> dict[str, Any]:
    """Live authors ordered by death year, paged."""
    page = catalog.authors(search=search, limit=limit, offset=offset)
    return _list_envelope(page, page.data)


@router.get("/books")
def list_books(
    search: str | None = Query(None, description="Substring of name or bibliography"),
    category: int | None = Query(None, description="Category id"),
    author: int | None = Query(None, description="Author id"),
    type: int | None = Query(None, description="Book type code"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=0),
    offset: int = Query(0, ge=0),
    catalog: LibraryCatalog = Depends(get_catalog),
) -> dict[str, Any]:
    """
    Live books ordered by date, paged.

    Each book carries its author names, category name and whether its
    content has been downloaded.
    """
    page = catalog.books(
        search=search,
        category=category,
        author=author,
        type=type,
        limit=limit,
        offset=offset,
    )
    return _list_envelope(page, page.data)


@router.get("/books/{book_id}")
def get_book(book_id: int, catalog: LibraryCatalog = Depends(get_catalog)) -> dict[str, Any]:
    """
    Details of one book.

    Raises:
        HTTPException: 404 if the catalog does not list the book
    """
    detail = catalog.book(book_id)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Book {book_id} not found")
    return {"success": True, "data": _dump(detail)}


@router.get("/search")
def search(
    q: str | None = Query(None, description="Search text (at least 2 characters)"),
    type: SearchScope = Query(SearchScope.ALL),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=0),
    catalog: LibraryCatalog = Depends(get_catalog),
) -> dict[str, Any]:
    """Search book and author names."""
    results = catalog.search(q, scope=type, limit=limit)
    return {"success": True, "query": q, "results": _dump(results)}


@router.get("/stats")
def get_stats(catalog: LibraryCatalog = Depends(get_catalog)) -> dict[str, Any]:
    """Master table sizes and number of downloaded books."""
    return {"success": True, "stats": _dump(catalog.stats())}
