"""
Mirror service: wires configuration to the sync engine and the catalog.

Both the CLI and the HTTP API go through this class so they share one way
of building the patch client, the stores, the orchestrator and the catalog.

Example:
    config = load_config()
    async with MirrorService.from_config(config) as mirror:
        result = await mirror.orchestrator.sync_master()
        print(result.summary())
        print(mirror.catalog.stats())
"""

from __future__ import annotations

import logging
from types import TracebackType

from shamela_mirror.core.config.models import MirrorConfig
from shamela_mirror.core.library.catalog import LibraryCatalog
from shamela_mirror.core.snapshot.store import FileSnapshotStore, SnapshotStore
from shamela_mirror.core.sync.client import PatchClient
from shamela_mirror.core.sync.orchestrator import SyncOrchestrator
from shamela_mirror.core.sync.versions import FileVersionStore

logger = logging.getLogger(__name__)


class MirrorService:
    """
    Owns the patch client and exposes the orchestrator and catalog built on it.

    The service shares one snapshot store between the orchestrator (writer)
    and the catalog (reader).
    """

    def __init__(self, client: PatchClient, orchestrator: SyncOrchestrator) -> None:
        """
        Initialize the service.

        Args:
            client: Patch client; closed by :meth:`aclose`
            orchestrator: Sync orchestrator using ``client``
        """
        self.client = client
        self.orchestrator = orchestrator
        self.catalog = LibraryCatalog(orchestrator.snapshots)

    @classmethod
    def from_config(cls, config: MirrorConfig) -> MirrorService:
        """Build a file-backed service from configuration."""
        if not config.api.api_key:
            logger.warning("No API key configured; set SHAMELA_API_KEY to sync")

        client = PatchClient(
            config.api.base_url,
            config.api.api_key,
            timeout=config.api.timeout_seconds,
        )
        snapshots: SnapshotStore = FileSnapshotStore(config.storage.data_dir)
        versions = FileVersionStore(config.storage.cache_dir)
        logger.debug(
            "Mirror using data dir %s and cache dir %s",
            config.storage.data_dir,
            config.storage.cache_dir,
        )
        return cls(client, SyncOrchestrator(client, snapshots, versions))

    async def __aenter__(self) -> MirrorService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()


__all__ = ["MirrorService"]
