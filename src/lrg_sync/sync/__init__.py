"""Synchronization of LRG records with the core database.

Import, clean, overlap annotation, verification and the (disabled) xref
linker, plus the batch runner that sequences them per record.
"""

from lrg_sync.sync.batch import (
    BatchActions,
    BatchReport,
    RecordOutcome,
    RecordSource,
    run_batch,
)
from lrg_sync.sync.clean import purge
from lrg_sync.sync.engine import ImportResult, SyncEngine
from lrg_sync.sync.overlap import OverlapAttribute, annotate_overlaps, classify_overlap
from lrg_sync.sync.verify import ConsistencyVerifier, VerificationResult, verify_record
from lrg_sync.sync.xrefs import XrefLinker

__all__ = [
    "BatchActions",
    "BatchReport",
    "RecordOutcome",
    "RecordSource",
    "run_batch",
    "purge",
    "ImportResult",
    "SyncEngine",
    "OverlapAttribute",
    "annotate_overlaps",
    "classify_overlap",
    "ConsistencyVerifier",
    "VerificationResult",
    "verify_record",
    "XrefLinker",
]
