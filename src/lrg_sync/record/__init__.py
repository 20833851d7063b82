"""LRG record documents: labeled tree, XML parser and typed accessors."""

from lrg_sync.record.tree import RecordNode
from lrg_sync.record.parser import parse_record
from lrg_sync.record.models import (
    ExonAnnotation,
    LRGRecord,
    TranscriptAnnotation,
    validate_lrg_id,
)


def load_record(source) -> LRGRecord:
    """Parse an LRG XML file (or bytes) into an LRGRecord."""
    return LRGRecord(parse_record(source))


__all__ = [
    "RecordNode",
    "parse_record",
    "load_record",
    "ExonAnnotation",
    "LRGRecord",
    "TranscriptAnnotation",
    "validate_lrg_id",
]
