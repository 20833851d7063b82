"""Persistence layer: core database access, watermark ledger and provenance."""

from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.provenance import ProvenanceTracker
from lrg_sync.persistence.watermark import (
    REVERT_WARNING,
    WATERMARK_FIELDS,
    WatermarkRecord,
    format_watermarks,
    read_watermarks,
    revert,
    snapshot,
    write_watermarks,
)

__all__ = [
    "CoreStore",
    "ProvenanceTracker",
    "REVERT_WARNING",
    "WATERMARK_FIELDS",
    "WatermarkRecord",
    "format_watermarks",
    "read_watermarks",
    "revert",
    "snapshot",
    "write_watermarks",
]
