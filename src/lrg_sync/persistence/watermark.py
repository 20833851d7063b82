"""Watermark-based undo for batches of core database writes.

A watermark is the highest key a table held before a batch started.
Reverting deletes every row whose key is above it. This is a coarse,
global boundary: rows written by anyone else after the snapshot are
deleted too. gene_attrib has no growing key; revert removes the rows
left pointing at deleted genes, attribute types or record regions.
Clean is the per-record way to remove an import.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, TextIO

import structlog

from lrg_sync.errors import ConfigurationError, RevertError
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.schema import OVERLAP_ATTRIB_CODES

logger = structlog.get_logger()

# table -> field whose values only grow as an import writes rows
WATERMARK_FIELDS = {
    "coord_system": "coord_system_id",
    "seq_region": "seq_region_id",
    "dna": "seq_region_id",
    "assembly": "asm_seq_region_id",
    "analysis": "analysis_id",
    "analysis_description": "analysis_id",
    "attrib_type": "attrib_type_id",
    "gene": "gene_id",
    "transcript": "transcript_id",
    "exon": "exon_id",
    "exon_transcript": "transcript_id",
    "translation": "translation_id",
    "external_db": "external_db_id",
    "xref": "xref_id",
    "object_xref": "object_xref_id",
}

REVERT_WARNING = (
    "Reverting deletes every row whose key is above the stored maximum, "
    "including rows added by other processes since the maximum was taken, "
    "not necessarily just your own."
)


@dataclass(frozen=True)
class WatermarkRecord:
    """Highest value of ``field`` in ``table`` at snapshot time."""
    table: str
    field: str
    max_value: int


def snapshot(
    store: CoreStore,
    tables: Optional[dict[str, str]] = None,
) -> list[WatermarkRecord]:
    """
    Record the current maximum key of each table.

    Args:
        store: Core database
        tables: table -> field mapping (default: WATERMARK_FIELDS)

    Returns:
        One WatermarkRecord per table; empty tables yield 0
    """
    tables = tables or WATERMARK_FIELDS
    _check_names(store, [(t, f) for t, f in tables.items()])

    records = []
    for table, field in tables.items():
        value = store.fetch_value(f"SELECT COALESCE(MAX({field}), 0) FROM {table}")
        records.append(WatermarkRecord(table=table, field=field, max_value=int(value)))
    logger.info("watermark_snapshot", tables=len(records))
    return records


def revert(store: CoreStore, records: Iterable[WatermarkRecord]) -> dict[str, int]:
    """
    Delete all rows written after a snapshot.

    Args:
        store: Core database
        records: Watermarks from :func:`snapshot` or :func:`read_watermarks`

    Returns:
        table -> number of rows deleted

    Raises:
        RevertError: If a record names an unknown table or column
    """
    records = list(records)
    _check_names(store, [(r.table, r.field) for r in records])

    logger.warning("watermark_revert_start", tables=len(records), warning=REVERT_WARNING)
    deleted: dict[str, int] = {}
    with store.transaction():
        for record in records:
            count = store.delete(record.table, f"{record.field} > ?", [record.max_value])
            deleted[record.table] = deleted.get(record.table, 0) + count
        orphans = _delete_orphan_attributes(store)
        if orphans:
            deleted["gene_attrib"] = deleted.get("gene_attrib", 0) + orphans
    logger.info("watermark_revert_complete", deleted=deleted)
    return deleted


def _delete_orphan_attributes(store: CoreStore) -> int:
    """
    gene_attrib has no increasing key. Drop rows whose gene or attribute
    type is gone, and overlap rows naming a record region that is gone.
    """
    return store.delete(
        "gene_attrib",
        """
        gene_id NOT IN (SELECT gene_id FROM gene)
        OR attrib_type_id NOT IN (SELECT attrib_type_id FROM attrib_type)
        OR (
            attrib_type_id IN (
                SELECT attrib_type_id FROM attrib_type WHERE list_contains(?, code)
            )
            AND value NOT IN (SELECT name FROM seq_region)
        )
        """,
        [list(OVERLAP_ATTRIB_CODES)],
    )


def _check_names(store: CoreStore, pairs: list[tuple[str, str]]) -> None:
    columns = store.table_columns()
    for table, field in pairs:
        if table not in columns:
            raise RevertError(f"Unknown table '{table}' in watermark")
        if field not in columns[table]:
            raise RevertError(f"Unknown field '{field}' for table '{table}' in watermark")


def format_watermarks(records: Iterable[WatermarkRecord]) -> str:
    """Render watermarks as tab-separated ``table field value`` lines."""
    return "".join(f"{r.table}\t{r.field}\t{r.max_value}\n" for r in records)


def write_watermarks(records: Iterable[WatermarkRecord], stream: TextIO) -> None:
    stream.write(format_watermarks(records))


def read_watermarks(path: Path | str) -> list[WatermarkRecord]:
    """
    Parse a watermark file written by :func:`write_watermarks`.

    Lines are whitespace-separated ``table field max_value`` triples; blank
    lines and ``#`` comments are skipped.

    Raises:
        ConfigurationError: If the file is missing or a line is malformed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Watermark file {path} does not exist")

    records = []
    with path.open() as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 3:
                raise ConfigurationError(
                    f"{path}:{line_number}: expected 'table field max_value', got '{line}'"
                )
            table, field, value = parts
            try:
                max_value = int(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"{path}:{line_number}: max_value '{value}' is not an integer"
                ) from e
            records.append(WatermarkRecord(table=table, field=field, max_value=max_value))
    return records
