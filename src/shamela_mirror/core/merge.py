"""
Delta merge of extracted patch records onto persisted tables.

All functions here are pure: they never mutate the base table or the patch
records and always return a new table.

Merge rules, applied per patch record in archive order:
- deletion flag set: any record with that id is removed (hard delete)
- id already present: patch fields overwrite base fields, except fields
  holding UNCHANGED, which keep the base value; base-only fields are kept
- id not present: the record is inserted with UNCHANGED resolved to None

Because UNCHANGED never regresses a value and deleting a missing id is a
no-op, ``merge_table(merge_table(t, p), p) == merge_table(t, p)``.

Example:
    >>> base = {10: {"id": 10, "name": "A", "author": "1"}}
    >>> patch = [{"id": 10, "name": UNCHANGED, "author": "2"}]
    >>> merge_table(base, patch)
    {10: {'id': 10, 'name': 'A', 'author': '2'}}
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from shamela_mirror.core.records import UNCHANGED, Record, Table, is_deleted

logger = logging.getLogger(__name__)


def _resolve_new(record: Record) -> Record:
    return {key: (None if value is UNCHANGED else value) for key, value in record.items()}


def _apply_update(existing: Record, update: Record) -> Record:
    merged = dict(existing)
    for key, value in update.items():
        if value is UNCHANGED:
            continue
        merged[key] = value
    return merged


def merge_table(base: Mapping[int, Record], patch: Iterable[Record]) -> Table:
    """
    Apply one table's patch records onto a base table.

    Args:
        base: Current table (id -> record)
        patch: Patch records in archive order

    Returns:
        New table; ``base`` is left untouched
    """
    result: Table = dict(base)

    for update in patch:
        record_id = update["id"]
        if is_deleted(update):
            result.pop(record_id, None)
        elif record_id in result:
            result[record_id] = _apply_update(result[record_id], update)
        else:
            result[record_id] = _resolve_new(update)

    return result


def merge_tables(
    tables: Mapping[str, Mapping[int, Record]],
    patch: Mapping[str, Sequence[Record]],
    known: Iterable[str],
) -> dict[str, Table]:
    """
    Merge every known table present in the patch; pass the rest through.

    Args:
        tables: Current dataset tables
        patch: Extracted patch tables
        known: Table names that belong to the dataset

    Returns:
        New mapping of table name to table
    """
    known = list(known)
    result: dict[str, Table] = {name: dict(tables.get(name, {})) for name in known}

    for name, records in patch.items():
        if name not in result:
            logger.warning("Ignoring table '%s' not part of this dataset", name)
            continue
        result[name] = merge_table(result[name], records)
        logger.debug("Merged %d patch records into table '%s'", len(records), name)

    return result


def replace_tables(
    tables: Mapping[str, Mapping[int, Record]],
    patch: Mapping[str, Sequence[Record]],
    known: Iterable[str],
) -> dict[str, Table]:
    """
    Reset every known table present in the patch to exactly its contents.

    Used for full releases, where a table is rebuilt from scratch rather
    than merged. Tables absent from the patch are kept.

    Args:
        tables: Current dataset tables
        patch: Extracted patch tables
        known: Table names that belong to the dataset

    Returns:
        New mapping of table name to table
    """
    known = list(known)
    result: dict[str, Table] = {name: dict(tables.get(name, {})) for name in known}

    for name, records in patch.items():
        if name not in result:
            logger.warning("Ignoring table '%s' not part of this dataset", name)
            continue
        result[name] = merge_table({}, records)
        logger.debug("Replaced table '%s' with %d records", name, len(result[name]))

    return result


__all__ = ["merge_table", "merge_tables", "replace_tables"]
