"""
Version cursor storage.

One small JSON record per sync key, stored as ``<cache_dir>/<key>_version.json``:

    {"version": 12}              # master
    {"major": 3, "minor": 7}     # book_<id>
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from shamela_mirror.core.exceptions import PersistenceError
from shamela_mirror.core.sync.models import (
    BookCursor,
    MasterCursor,
    VersionCursor,
    is_book_key,
    zero_cursor,
)
from shamela_mirror.utils.files import atomic_write_text

logger = logging.getLogger(__name__)


@runtime_checkable
class VersionStore(Protocol):
    """
    Protocol for version cursor storage.

    ``get`` returns the zero cursor for keys never stored; ``set`` is
    durable once it returns.
    """

    def get(self, key: str) -> VersionCursor: ...

    def set(self, key: str, cursor: VersionCursor) -> None: ...


def _cursor_model(key: str) -> type[MasterCursor] | type[BookCursor]:
    return BookCursor if is_book_key(key) else MasterCursor


def _check_kind(key: str, cursor: VersionCursor) -> None:
    if not isinstance(cursor, _cursor_model(key)):
        raise PersistenceError(
            f"Cursor {type(cursor).__name__} does not match sync key '{key}'",
            key=key,
        )


class FileVersionStore:
    """JSON file backend for version cursors."""

    def __init__(self, cache_dir: Path) -> None:
        """
        Initialize the store.

        Args:
            cache_dir: Directory holding one cursor file per sync key
        """
        self.cache_dir = Path(cache_dir)

    def path_for(self, key: str) -> Path:
        """Path to the cursor file of a sync key."""
        return self.cache_dir / f"{key}_version.json"

    def get(self, key: str) -> VersionCursor:
        path = self.path_for(key)
        if not path.exists():
            return zero_cursor(key)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return _cursor_model(key).model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(
                f"Unreadable version cursor for '{key}': {e}",
                path=str(path),
            ) from e

    def set(self, key: str, cursor: VersionCursor) -> None:
        _check_kind(key, cursor)
        path = self.path_for(key)
        try:
            atomic_write_text(path, cursor.model_dump_json(indent=2))
        except OSError as e:
            raise PersistenceError(
                f"Failed to write version cursor for '{key}': {e}",
                path=str(path),
            ) from e
        logger.debug("Version cursor for '%s' set to %s", key, cursor)


class MemoryVersionStore:
    """In-memory backend for version cursors."""

    def __init__(self) -> None:
        self._cursors: dict[str, VersionCursor] = {}

    def get(self, key: str) -> VersionCursor:
        return self._cursors.get(key) or zero_cursor(key)

    def set(self, key: str, cursor: VersionCursor) -> None:
        _check_kind(key, cursor)
        self._cursors[key] = cursor


__all__ = ["VersionStore", "FileVersionStore", "MemoryVersionStore"]
