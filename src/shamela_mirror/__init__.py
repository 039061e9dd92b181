"""
shamela-mirror - Incremental mirror of the Shamela library

Keeps a local copy of the library catalog and downloaded books in sync
with the remote patch API and serves it over a CLI and an HTTP API.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from shamela_mirror.core.config.models import MirrorConfig
from shamela_mirror.core.snapshot.models import BookDataset, MasterDataset
from shamela_mirror.core.sync.models import SyncResult

__all__ = ["MirrorConfig", "MasterDataset", "BookDataset", "SyncResult", "__version__"]
