"""
File helpers for durable, all-or-nothing writes.

A reader never observes a half-written file: content is written to a
temporary file in the target directory, flushed to disk, then renamed over
the destination.
"""

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> Path:
    """
    Write text to ``path`` atomically.

    Creates the parent directory if needed. The temporary file is removed
    if anything fails before the rename.

    Args:
        path: Destination file
        text: Content to write (UTF-8)

    Returns:
        The destination path

    Raises:
        OSError: If the file cannot be written or renamed
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        except OSError:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise

    return path
