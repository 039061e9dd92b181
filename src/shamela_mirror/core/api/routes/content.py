"""
Book content API route.

- GET /api/books/{id}/content - Pages and outline of a book, downloading
  the book first if it has no local snapshot
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from shamela_mirror.core.api.deps import get_mirror
from shamela_mirror.core.service import MirrorService

router = APIRouter()


@router.get("/books/{book_id}/content")
async def get_book_content(
    book_id: int,
    page: int | None = Query(None, description="Printed page number"),
    part: str | None = Query(None, description="Volume"),
    mirror: MirrorService = Depends(get_mirror),
) -> dict[str, Any]:
    """
    Pages (optionally filtered by page or part) and the outline of a book.

    Raises:
        HTTPException: 404 if the remote has no content for the book
        MirrorError: If the on-demand download fails
    """
    dataset = await mirror.orchestrator.get_book_content(book_id)
    if dataset is None:
        raise HTTPException(status_code=404, detail=f"Book {book_id} has no content")

    content = mirror.catalog.book_content(dataset, page=page, part=part)
    return {"success": True, "data": content.model_dump(mode="json", by_alias=True)}
