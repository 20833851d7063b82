"""Build coordinate mappings from declared mapping spans.

Spans align record and chromosome positions 1:1; everything between two
consecutive spans is a gap (an insertion unique to one coordinate system).
Positions are walked in lock-step inside each span, chromosome coordinates
decreasing on the reverse strand.
"""

from typing import Optional, Sequence

import structlog
from Bio.Seq import Seq

from lrg_sync.errors import MappingError
from lrg_sync.mapping.models import Gap, Mapping, MappingSpan, MatchedPair

logger = structlog.get_logger()


def covering_range(spans: Sequence[MappingSpan]) -> tuple[int, int]:
    """Lowest and highest chromosome coordinate touched by ``spans``."""
    return min(s.chr_start for s in spans), max(s.chr_end for s in spans)


def _validate_spans(
    spans: list[MappingSpan],
    record_length: int,
    chr_offset: int,
    chr_length: int,
) -> None:
    strands = {s.strand for s in spans}
    if not strands <= {1, -1}:
        raise MappingError(f"Invalid strand values in mapping spans: {sorted(strands)}")
    if len(strands) > 1:
        raise MappingError("Mapping spans are on mixed strands")

    for span in spans:
        if span.record_start < 1 or span.record_end < span.record_start:
            raise MappingError(
                f"Invalid record range {span.record_start}-{span.record_end} in mapping span"
            )
        if span.chr_end < span.chr_start:
            raise MappingError(
                f"Invalid chromosome range {span.chr_start}-{span.chr_end} in mapping span"
            )
        if span.record_length != span.chr_length:
            raise MappingError(
                f"Mapping span {span.record_start}-{span.record_end} covers "
                f"{span.record_length} record bases but {span.chr_length} chromosome bases"
            )
        if span.record_end > record_length:
            raise MappingError(
                f"Mapping span ends at {span.record_end}, beyond record length {record_length}"
            )
        if span.chr_start < chr_offset or span.chr_end > chr_offset + chr_length - 1:
            raise MappingError(
                f"Mapping span {span.chr_start}-{span.chr_end} lies outside the supplied "
                f"chromosome sequence {chr_offset}-{chr_offset + chr_length - 1}"
            )

    for prev, nxt in zip(spans, spans[1:]):
        if nxt.record_start <= prev.record_end:
            raise MappingError(
                f"Mapping spans overlap in record coordinates at {nxt.record_start}"
            )
        if prev.strand == 1 and nxt.chr_start <= prev.chr_end:
            raise MappingError(
                f"Mapping spans are not ordered on the chromosome at {nxt.chr_start}"
            )
        if prev.strand == -1 and nxt.chr_end >= prev.chr_start:
            raise MappingError(
                f"Mapping spans are not ordered on the chromosome at {nxt.chr_end}"
            )


def _gap_between(prev: MappingSpan, nxt: MappingSpan) -> Optional[Gap]:
    record_gap = nxt.record_start - prev.record_end - 1
    if prev.strand == 1:
        chr_gap = nxt.chr_start - prev.chr_end - 1
        chr_start = prev.chr_end + 1
    else:
        chr_gap = prev.chr_start - nxt.chr_end - 1
        chr_start = nxt.chr_end + 1
    if record_gap == 0 and chr_gap == 0:
        return None
    return Gap(
        record_start=prev.record_end + 1,
        record_length=record_gap,
        chr_start=chr_start,
        chr_length=chr_gap,
    )


def build_mapping(
    spans: Sequence[MappingSpan],
    record_seq: str,
    chr_seq: str,
    chr_offset: Optional[int] = None,
) -> Mapping:
    """Turn mapping spans into an ordered list of matched pairs and gaps.

    Args:
        spans: Spans for one assembly, in any order
        record_seq: Full record sequence
        chr_seq: Chromosome sequence covering every span
        chr_offset: Chromosome coordinate of ``chr_seq[0]`` (default: lowest
            span start)

    Returns:
        Mapping whose pairs cover every record position exactly once, either
        as a matched pair or inside a record-side gap

    Raises:
        MappingError: If spans are empty, overlap, are on mixed strands, or
            fall outside the supplied sequences
    """
    if not spans:
        raise MappingError("No mapping spans supplied")

    ordered = sorted(spans, key=lambda s: s.record_start)
    if chr_offset is None:
        chr_offset = covering_range(ordered)[0]
    record_length = len(record_seq)
    _validate_spans(ordered, record_length, chr_offset, len(chr_seq))

    record_upper = record_seq.upper()
    chr_upper = chr_seq.upper()
    chr_complement = None
    if ordered[0].strand == -1:
        chr_complement = str(Seq(chr_upper).complement())

    pairs = []
    first = ordered[0]
    if first.record_start > 1:
        pairs.append(Gap(
            record_start=1,
            record_length=first.record_start - 1,
            chr_start=first.chr_start if first.strand == 1 else first.chr_end + 1,
            chr_length=0,
        ))

    prev = None
    for span in ordered:
        if prev is not None:
            gap = _gap_between(prev, span)
            if gap is not None:
                pairs.append(gap)

        bases = chr_upper if span.strand == 1 else chr_complement
        for offset in range(span.record_length):
            record_pos = span.record_start + offset
            if span.strand == 1:
                chr_pos = span.chr_start + offset
            else:
                chr_pos = span.chr_end - offset
            pairs.append(MatchedPair(
                record_pos=record_pos,
                chr_pos=chr_pos,
                strand=span.strand,
                mismatch=record_upper[record_pos - 1] != bases[chr_pos - chr_offset],
            ))
        prev = span

    last = ordered[-1]
    if last.record_end < record_length:
        pairs.append(Gap(
            record_start=last.record_end + 1,
            record_length=record_length - last.record_end,
            chr_start=last.chr_end + 1 if last.strand == 1 else last.chr_start,
            chr_length=0,
        ))

    mapping = Mapping(
        pairs=pairs,
        total_record_length=record_length,
        chr_name=first.chr_name,
        assembly=first.assembly,
    )
    logger.info(
        "mapping_built",
        spans=len(ordered),
        matched=len(mapping.matched),
        gaps=len(mapping.gaps),
        mismatches=mapping.mismatch_count,
        record_length=record_length,
    )
    return mapping
