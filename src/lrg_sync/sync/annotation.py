"""Write the fixed-annotation transcript structure as core gene rows."""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from lrg_sync.errors import MappingError
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.record.models import LRGRecord, TranscriptAnnotation

logger = structlog.get_logger()


def transcript_stable_id(lrg_id: str, transcript_name: str) -> str:
    """Stable id convention for LRG transcripts, e.g. LRG_1_t1."""
    return f"{lrg_id}_{transcript_name}"


def exon_stable_id(lrg_id: str, transcript_name: str, rank: int) -> str:
    return f"{lrg_id}_{transcript_name}e{rank}"


@dataclass
class AnnotationWriteResult:
    """Rows written for one record's annotation."""
    gene_id: int
    transcript_ids: dict[str, int] = field(default_factory=dict)
    translation_ids: dict[str, int] = field(default_factory=dict)
    exon_count: int = 0


def _exon_phases(transcript: TranscriptAnnotation) -> list[tuple[int, int]]:
    """(phase, end_phase) per exon, -1 where the exon has no coding start/end."""
    if not transcript.is_coding:
        return [(-1, -1)] * len(transcript.exons)

    phases = []
    previous_end_phase = -1
    for exon in transcript.exons:
        coding_start = max(exon.start, transcript.coding_start)
        coding_end = min(exon.end, transcript.coding_end)
        if coding_start > coding_end:
            phases.append((-1, -1))
            previous_end_phase = -1
            continue
        if coding_start == exon.start:
            phase = previous_end_phase if previous_end_phase >= 0 else 0
        else:
            phase = -1
        coded_before = max(phase, 0)
        end_phase = (coded_before + coding_end - coding_start + 1) % 3
        if coding_end < exon.end:
            end_phase = -1
        phases.append((phase, end_phase))
        previous_end_phase = end_phase
    return phases


def _locate(transcript: TranscriptAnnotation, position: int) -> Optional[int]:
    """Index of the exon containing ``position``."""
    for index, exon in enumerate(transcript.exons):
        if exon.start <= position <= exon.end:
            return index
    return None


def write_annotation(
    store: CoreStore,
    record: LRGRecord,
    seq_region_id: int,
    biotype: str,
    analysis_id: int,
) -> AnnotationWriteResult:
    """
    Store the record's gene, transcripts, exons and translations.

    All rows are placed on the record's own seq_region in LRG coordinates
    (forward strand).

    Args:
        store: Core database
        record: Source record
        seq_region_id: The record's seq_region
        biotype: Biotype for the gene and transcripts
        analysis_id: Analysis the rows are attributed to

    Returns:
        AnnotationWriteResult with the ids of created rows

    Raises:
        MappingError: If a coding region falls outside the transcript's exons
    """
    lrg_id = record.lrg_id
    transcripts = [t for t in record.transcripts() if t.exons]
    if transcripts:
        gene_start = min(t.start for t in transcripts)
        gene_end = max(t.end for t in transcripts)
    else:
        gene_start, gene_end = 1, len(record.sequence)

    gene_id = store.insert("gene", {
        "biotype": biotype,
        "analysis_id": analysis_id,
        "seq_region_id": seq_region_id,
        "seq_region_start": gene_start,
        "seq_region_end": gene_end,
        "seq_region_strand": 1,
        "stable_id": lrg_id,
        "description": f"Locus Reference Genomic record {lrg_id}",
    }, returning="gene_id")
    result = AnnotationWriteResult(gene_id=gene_id)

    for transcript in transcripts:
        transcript_id = store.insert("transcript", {
            "gene_id": gene_id,
            "analysis_id": analysis_id,
            "seq_region_id": seq_region_id,
            "seq_region_start": transcript.start,
            "seq_region_end": transcript.end,
            "seq_region_strand": 1,
            "biotype": biotype,
            "stable_id": transcript_stable_id(lrg_id, transcript.name),
        }, returning="transcript_id")
        result.transcript_ids[transcript.name] = transcript_id

        exon_ids = []
        for rank, (exon, (phase, end_phase)) in enumerate(
            zip(transcript.exons, _exon_phases(transcript)), start=1
        ):
            exon_id = store.insert("exon", {
                "seq_region_id": seq_region_id,
                "seq_region_start": exon.start,
                "seq_region_end": exon.end,
                "seq_region_strand": 1,
                "phase": phase,
                "end_phase": end_phase,
                "stable_id": exon_stable_id(lrg_id, transcript.name, rank),
            }, returning="exon_id")
            store.insert("exon_transcript", {
                "exon_id": exon_id,
                "transcript_id": transcript_id,
                "rank": rank,
            })
            exon_ids.append(exon_id)
        result.exon_count += len(exon_ids)

        if not transcript.is_coding:
            continue

        start_index = _locate(transcript, transcript.coding_start)
        end_index = _locate(transcript, transcript.coding_end)
        if start_index is None or end_index is None:
            raise MappingError(
                f"Coding region {transcript.coding_start}-{transcript.coding_end} of "
                f"transcript {transcript.name} is not inside its exons",
                lrg_id=lrg_id,
            )
        translation_name = transcript.translation_name or transcript.name.replace("t", "p", 1)
        translation_id = store.insert("translation", {
            "transcript_id": transcript_id,
            "seq_start": transcript.coding_start - transcript.exons[start_index].start + 1,
            "start_exon_id": exon_ids[start_index],
            "seq_end": transcript.coding_end - transcript.exons[end_index].start + 1,
            "end_exon_id": exon_ids[end_index],
            "stable_id": f"{lrg_id}_{translation_name}",
        }, returning="translation_id")
        result.translation_ids[transcript.name] = translation_id

    logger.info(
        "annotation_written",
        lrg_id=lrg_id,
        gene_id=gene_id,
        transcripts=len(result.transcript_ids),
        translations=len(result.translation_ids),
        exons=result.exon_count,
    )
    return result
