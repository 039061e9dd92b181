"""
Request dependencies for API routes.
"""

from fastapi import Request

from shamela_mirror.core.library.catalog import LibraryCatalog
from shamela_mirror.core.service import MirrorService
from shamela_mirror.core.sync.orchestrator import SyncOrchestrator


def get_mirror(request: Request) -> MirrorService:
    """The mirror service attached to the running app."""
    mirror: MirrorService = request.app.state.mirror
    return mirror


def get_catalog(request: Request) -> LibraryCatalog:
    return get_mirror(request).catalog


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return get_mirror(request).orchestrator
