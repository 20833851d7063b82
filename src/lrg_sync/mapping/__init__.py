"""Coordinate mapping between LRG and chromosome coordinate systems.

Provides span/pair/gap models and the builder that turns declared mapping
spans into an ordered, gap-aware list of coordinate pairs.
"""

from lrg_sync.mapping.models import (
    AlignedBlock,
    CoordinatePair,
    Gap,
    Mapping,
    MappingSpan,
    MatchedPair,
)
from lrg_sync.mapping.builder import build_mapping, covering_range

__all__ = [
    "AlignedBlock",
    "CoordinatePair",
    "Gap",
    "Mapping",
    "MappingSpan",
    "MatchedPair",
    "build_mapping",
    "covering_range",
]
