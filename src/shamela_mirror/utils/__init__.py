"""Utility modules for shamela-mirror."""

from .files import atomic_write_text
from .project import find_project_root

__all__ = ["atomic_write_text", "find_project_root"]
