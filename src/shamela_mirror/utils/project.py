"""
Project directory discovery.

The project directory is where the project config file lives and where
relative data and cache directories are resolved from.
"""

from pathlib import Path

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    ".shamela-mirror.json",
    ".shamela-mirror",
    ".git",
]


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root(Path("/library/books/cache"))  # with /library/.git
        PosixPath('/library')
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for candidate in (current, *current.parents):
        for marker in PROJECT_ROOT_MARKERS:
            if (candidate / marker).exists():
                return candidate

    return None
