"""Persist a Mapping as an LRG seq_region assembled from chromosome blocks.

Aligned blocks without mismatches point into the chromosome. Record
stretches with no usable chromosome bases (record-side insertions and
mismatching blocks) are stored as small patch contigs carrying the record's
own bases, so the assembled LRG region reads back as the record sequence.
"""

from dataclasses import dataclass

import structlog

from lrg_sync.mapping.models import Mapping
from lrg_sync.persistence.core_store import CoreStore

logger = structlog.get_logger()

PATCH_COORD_SYSTEM = "contig"


def patch_name(lrg_id: str, index: int) -> str:
    return f"{lrg_id}_p{index}"


@dataclass
class MappingWriteResult:
    """Rows written for one mapping."""
    seq_region_id: int
    chromosome_blocks: int = 0
    patches: int = 0


def write_mapping(
    store: CoreStore,
    lrg_id: str,
    coord_system_id: int,
    mapping: Mapping,
    chr_seq_region_id: int,
    record_seq: str,
) -> MappingWriteResult:
    """
    Create the LRG seq_region and its assembly rows.

    Args:
        store: Core database
        lrg_id: Record identifier (becomes the seq_region name)
        coord_system_id: The LRG coordinate system
        mapping: Mapping built for the database's assembly
        chr_seq_region_id: Chromosome seq_region the mapping targets
        record_seq: Full record sequence (source of patch bases)

    Returns:
        MappingWriteResult with the new seq_region id and row counts
    """
    seq_region_id = store.add_seq_region(lrg_id, coord_system_id, mapping.total_record_length)
    result = MappingWriteResult(seq_region_id=seq_region_id)

    for block in mapping.blocks():
        if block.mismatch:
            continue
        store.insert("assembly", {
            "asm_seq_region_id": seq_region_id,
            "cmp_seq_region_id": chr_seq_region_id,
            "asm_start": block.record_start,
            "asm_end": block.record_end,
            "cmp_start": block.chr_start,
            "cmp_end": block.chr_end,
            "ori": block.strand,
        })
        result.chromosome_blocks += 1

    segments = mapping.record_segments()
    if segments:
        contig_cs_id = store.add_coord_system(PATCH_COORD_SYSTEM, attrib="sequence_level")
        for index, (start, end) in enumerate(segments, start=1):
            bases = record_seq[start - 1:end]
            contig_id = store.add_seq_region(
                patch_name(lrg_id, index), contig_cs_id, len(bases), sequence=bases
            )
            store.insert("assembly", {
                "asm_seq_region_id": seq_region_id,
                "cmp_seq_region_id": contig_id,
                "asm_start": start,
                "asm_end": end,
                "cmp_start": 1,
                "cmp_end": len(bases),
                "ori": 1,
            })
            result.patches += 1

    logger.info(
        "mapping_written",
        lrg_id=lrg_id,
        seq_region_id=seq_region_id,
        chromosome_blocks=result.chromosome_blocks,
        patches=result.patches,
    )
    return result
