"""
Book outline reconstruction.

Rebuilds the hierarchical table of contents of a book from its flat
``title`` table, where each record points at its parent title by id and
``parent == 0`` marks a top-level entry.

The outline is derived on every read and never persisted.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from shamela_mirror.core.exceptions import MalformedOutlineError
from shamela_mirror.core.records import UNCHANGED, Record

ROOT_PARENT = 0


class TitleNode(BaseModel):
    """One entry of a book outline with its nested entries."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    content: str | None = None
    page_id: int | None = Field(default=None, alias="pageId")
    children: list[TitleNode] = Field(default_factory=list)


def _parent_of(record: Record) -> int | None:
    parent = record.get("parent")
    if parent is None or parent is UNCHANGED:
        return None
    return int(parent)


def _check_acyclic(titles: Mapping[int, Record]) -> None:
    done: set[int] = set()

    for start in titles:
        path: list[int] = []
        on_path: set[int] = set()
        current: int | None = start

        while current is not None and current in titles and current not in done:
            if current in on_path:
                raise MalformedOutlineError(
                    f"Title {current} is part of a parent cycle",
                    title_id=current,
                    cycle=path[path.index(current):],
                )
            on_path.add(current)
            path.append(current)
            current = _parent_of(titles[current])

        done.update(path)


def build_outline(titles: Mapping[int, Record]) -> list[TitleNode]:
    """
    Build the outline tree of a book.

    Siblings are ordered by ascending id. Titles whose parent does not
    exist are not reachable from a root and are left out.

    Args:
        titles: The book's ``title`` table (id -> record)

    Returns:
        Top-level outline nodes

    Raises:
        MalformedOutlineError: If the parent links contain a cycle

    Example:
        >>> titles = {
        ...     1: {"id": 1, "parent": 0, "content": "Part 1", "page": 1},
        ...     2: {"id": 2, "parent": 1, "content": "Chapter 1", "page": 2},
        ... }
        >>> [n.id for n in build_outline(titles)[0].children]
        [2]
    """
    _check_acyclic(titles)

    children_of: dict[int, list[Record]] = {}
    for record in titles.values():
        parent = _parent_of(record)
        if parent is None:
            continue
        children_of.setdefault(parent, []).append(record)
    for group in children_of.values():
        group.sort(key=lambda r: r["id"])

    roots: list[TitleNode] = []
    visited: set[int] = set()
    # Reverse so siblings pop off the stack in ascending order
    stack: list[tuple[Record, list[TitleNode]]] = [
        (record, roots) for record in reversed(children_of.get(ROOT_PARENT, []))
    ]

    while stack:
        record, siblings = stack.pop()
        title_id = record["id"]
        if title_id in visited:
            raise MalformedOutlineError(
                f"Title {title_id} reached twice while building outline",
                title_id=title_id,
            )
        visited.add(title_id)

        page = record.get("page")
        node = TitleNode(
            id=title_id,
            content=record.get("content"),
            page_id=None if page is UNCHANGED else page,
        )
        siblings.append(node)

        for child in reversed(children_of.get(title_id, [])):
            stack.append((child, node.children))

    return roots


__all__ = ["TitleNode", "build_outline", "ROOT_PARENT"]
