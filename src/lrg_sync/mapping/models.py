"""Data models for LRG <-> chromosome coordinate mappings."""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class MappingSpan:
    """One contiguous aligned region declared by the record.

    Coordinates are 1-based and inclusive. A span aligns its record range
    1:1 with its chromosome range, so both ranges have the same length.

    Attributes:
        record_start: First LRG coordinate
        record_end: Last LRG coordinate
        chr_start: Lowest chromosome coordinate
        chr_end: Highest chromosome coordinate
        strand: 1 or -1 (on -1, record_start pairs with chr_end)
        assembly: Assembly name the span targets (e.g. GRCh38)
        chr_name: Chromosome name
        most_recent: Whether the record flags this mapping as current
    """
    record_start: int
    record_end: int
    chr_start: int
    chr_end: int
    strand: int = 1
    assembly: Optional[str] = None
    chr_name: Optional[str] = None
    most_recent: bool = False

    @property
    def record_length(self) -> int:
        return self.record_end - self.record_start + 1

    @property
    def chr_length(self) -> int:
        return self.chr_end - self.chr_start + 1


@dataclass(frozen=True, slots=True)
class MatchedPair:
    """A record position aligned to a chromosome position."""
    record_pos: int
    chr_pos: int
    strand: int = 1
    mismatch: bool = False


@dataclass(frozen=True)
class Gap:
    """Unaligned stretch between matched pairs.

    ``record_length`` bases of the record and ``chr_length`` bases of the
    chromosome have no counterpart on the other axis. For a zero-length
    side, the start is the position right after the flanking matched pair.
    """
    record_start: int
    record_length: int
    chr_start: Optional[int]
    chr_length: int

    @property
    def side(self) -> str:
        if self.record_length and not self.chr_length:
            return "record"
        if self.chr_length and not self.record_length:
            return "chromosome"
        return "both"

    @property
    def length(self) -> int:
        """Length of the insertion on the side that has it."""
        return max(self.record_length, self.chr_length)

    @property
    def record_end(self) -> int:
        return self.record_start + self.record_length - 1


CoordinatePair = Union[MatchedPair, Gap]


@dataclass(frozen=True)
class AlignedBlock:
    """Run of consecutive matched pairs, contiguous on both axes."""
    record_start: int
    record_end: int
    chr_start: int
    chr_end: int
    strand: int
    mismatch: bool = False

    @property
    def length(self) -> int:
        return self.record_end - self.record_start + 1


@dataclass
class Mapping:
    """Ordered pairs and gaps covering a whole record sequence.

    Attributes:
        pairs: MatchedPair and Gap entries in increasing record order
        total_record_length: Length of the record sequence
        chr_name: Chromosome the record maps to
        assembly: Assembly the mapping targets
    """
    pairs: list[CoordinatePair] = field(default_factory=list)
    total_record_length: int = 0
    chr_name: Optional[str] = None
    assembly: Optional[str] = None

    @property
    def matched(self) -> list[MatchedPair]:
        return [p for p in self.pairs if isinstance(p, MatchedPair)]

    @property
    def gaps(self) -> list[Gap]:
        return [p for p in self.pairs if isinstance(p, Gap)]

    @property
    def mismatch_count(self) -> int:
        return sum(1 for p in self.pairs if isinstance(p, MatchedPair) and p.mismatch)

    def blocks(self) -> Iterator[AlignedBlock]:
        """Collapse matched pairs into maximal aligned blocks."""
        current: Optional[list[MatchedPair]] = None
        for entry in self.pairs:
            if isinstance(entry, Gap):
                if current:
                    yield _block(current)
                current = None
                continue
            if current and _extends(current[-1], entry):
                current.append(entry)
            else:
                if current:
                    yield _block(current)
                current = [entry]
        if current:
            yield _block(current)

    def record_segments(self) -> list[tuple[int, int]]:
        """Record ranges that need their own sequence (no usable chromosome bases).

        These are record-side insertions and mismatching blocks, merged where
        they touch.
        """
        segments: list[tuple[int, int]] = []
        for entry in self.pairs:
            if isinstance(entry, Gap) and entry.record_length > 0:
                segments.append((entry.record_start, entry.record_end))
        segments.extend(
            (b.record_start, b.record_end) for b in self.blocks() if b.mismatch
        )
        segments.sort()

        merged: list[tuple[int, int]] = []
        for start, end in segments:
            if merged and start <= merged[-1][1] + 1:
                merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
            else:
                merged.append((start, end))
        return merged


def _extends(last: MatchedPair, pair: MatchedPair) -> bool:
    return (
        pair.strand == last.strand
        and pair.mismatch == last.mismatch
        and pair.record_pos == last.record_pos + 1
        and pair.chr_pos == last.chr_pos + last.strand
    )


def _block(run: list[MatchedPair]) -> AlignedBlock:
    first, last = run[0], run[-1]
    return AlignedBlock(
        record_start=first.record_pos,
        record_end=last.record_pos,
        chr_start=min(first.chr_pos, last.chr_pos),
        chr_end=max(first.chr_pos, last.chr_pos),
        strand=first.strand,
        mismatch=first.mismatch,
    )
