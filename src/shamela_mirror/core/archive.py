"""
Table extraction from downloaded patch archives.

A patch archive is a zip container holding one SQLite file per table,
named ``<table>.db`` and containing a table of the same name. Every row is
read in table order and normalized into a generic record (see
:mod:`shamela_mirror.core.records`).

Extraction is atomic per table: a table is either returned with its full
record sequence or omitted with its error recorded on the result.

Example:
    >>> extractor = ArchiveTableExtractor()
    >>> extracted = extractor.extract(archive_bytes, strict=True)
    >>> extracted.tables["book"][0]["id"]
    10
"""

from __future__ import annotations

import io
import logging
import re
import sqlite3
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from shamela_mirror.core.exceptions import ExtractionError
from shamela_mirror.core.records import Record, normalize_record

logger = logging.getLogger(__name__)

TABLE_SUFFIX = ".db"

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class ExtractedArchive:
    """
    Tables read from one archive.

    Attributes:
        tables: Table name to records, in archive order
        errors: Table name to error message for tables that were omitted
    """

    tables: dict[str, list[Record]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True when every table extract was readable."""
        return not self.errors


class ArchiveTableExtractor:
    """
    Reads the tabular extracts of a patch archive.

    Each SQLite extract is copied to a temporary file under ``work_dir``
    (the system temp dir by default) because sqlite3 can only open files.
    """

    def __init__(self, work_dir: Path | None = None) -> None:
        """
        Initialize the extractor.

        Args:
            work_dir: Directory for temporary SQLite files
        """
        self.work_dir = work_dir

    def extract(self, archive: bytes | Path, *, strict: bool = False) -> ExtractedArchive:
        """
        Extract every table from an archive.

        Args:
            archive: Raw archive bytes or path to an archive file
            strict: Raise instead of returning a result with failed tables

        Returns:
            ExtractedArchive with the readable tables and per-table errors

        Raises:
            ExtractionError: If the archive cannot be opened, or if
                ``strict`` is set and any table extract is unreadable
        """
        source = io.BytesIO(archive) if isinstance(archive, (bytes, bytearray)) else archive

        try:
            container = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Cannot open patch archive: {e}") from e

        result = ExtractedArchive()
        with container:
            for info in container.infolist():
                if info.is_dir() or not info.filename.endswith(TABLE_SUFFIX):
                    continue

                table_name = Path(info.filename).name[: -len(TABLE_SUFFIX)]
                if not _TABLE_NAME.match(table_name):
                    logger.debug("Skipping non-table entry %s", info.filename)
                    continue

                try:
                    data = container.read(info)
                    result.tables[table_name] = self._read_table(table_name, data)
                except (
                    ExtractionError,
                    zipfile.BadZipFile,
                    zlib.error,
                    OSError,
                    sqlite3.Error,
                ) as e:
                    logger.warning("Skipping unreadable table '%s': %s", table_name, e)
                    result.tables.pop(table_name, None)
                    result.errors[table_name] = str(e)
                else:
                    logger.debug(
                        "Extracted %d records from table '%s'",
                        len(result.tables[table_name]),
                        table_name,
                    )

        if strict and result.errors:
            failed = ", ".join(sorted(result.errors))
            raise ExtractionError(
                f"Unreadable table extracts in patch archive: {failed}",
                errors=dict(result.errors),
            )

        return result

    def _read_table(self, table_name: str, data: bytes) -> list[Record]:
        with tempfile.TemporaryDirectory(dir=self.work_dir) as tmp:
            db_path = Path(tmp) / f"{table_name}{TABLE_SUFFIX}"
            db_path.write_bytes(data)

            conn = sqlite3.connect(str(db_path))
            try:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(f'SELECT * FROM "{table_name}"').fetchall()
            finally:
                conn.close()

        records: list[Record] = []
        for index, row in enumerate(rows):
            try:
                records.append(normalize_record(dict(row)))
            except ValueError as e:
                raise ExtractionError(
                    f"Row {index} of table '{table_name}' is invalid: {e}",
                    table=table_name,
                    row=index,
                ) from e
        return records


__all__ = ["ArchiveTableExtractor", "ExtractedArchive", "TABLE_SUFFIX"]
