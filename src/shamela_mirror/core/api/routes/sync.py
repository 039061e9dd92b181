"""
Sync API routes.

- POST /api/sync/master - Bring the master dataset up to date
- POST /api/sync/book/{id} - Bring one book up to date
"""

from typing import Any

from fastapi import APIRouter, Depends

from shamela_mirror.core.api.deps import get_orchestrator
from shamela_mirror.core.sync.models import SyncResult
from shamela_mirror.core.sync.orchestrator import SyncOrchestrator

router = APIRouter()


def _envelope(result: SyncResult) -> dict[str, Any]:
    return {
        "success": True,
        "message": result.summary(),
        "data": result.model_dump(mode="json"),
    }


@router.post("/sync/master")
async def sync_master(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    """Run a master sync and return its result."""
    return _envelope(await orchestrator.sync_master())


@router.post("/sync/book/{book_id}")
async def sync_book(
    book_id: int,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Run a sync of one book and return its result."""
    return _envelope(await orchestrator.sync_book(book_id))
