"""Sequences as the core database presents them.

A region's sequence comes from ``dna`` when it has one, otherwise it is
assembled from its ``assembly`` components. This is the view the verifier
compares against the source record.
"""

from typing import Optional

from Bio.Seq import Seq

from lrg_sync.persistence.core_store import CoreStore


def reverse_complement(sequence: str) -> str:
    return str(Seq(sequence).reverse_complement())


def fetch_region_sequence(
    store: CoreStore,
    seq_region_id: int,
    start: int = 1,
    end: Optional[int] = None,
    strand: int = 1,
) -> str:
    """
    Sequence of ``start..end`` (1-based, inclusive) of a seq_region.

    Positions no component covers are returned as ``N``.

    Args:
        store: Core database
        seq_region_id: Region to read
        start: First position
        end: Last position (default: region length)
        strand: -1 to return the reverse complement

    Returns:
        Sequence string of length ``end - start + 1``
    """
    if end is None:
        end = store.fetch_value(
            "SELECT length FROM seq_region WHERE seq_region_id = ?", [seq_region_id]
        )
        if end is None:
            raise ValueError(f"Unknown seq_region {seq_region_id}")
    if end < start:
        return ""

    dna = store.fetch_value(
        "SELECT substr(sequence, ?, ?) FROM dna WHERE seq_region_id = ?",
        [start, end - start + 1, seq_region_id],
    )
    if dna is not None:
        sequence = dna.upper().ljust(end - start + 1, "N")
    else:
        sequence = _assemble(store, seq_region_id, start, end)

    return reverse_complement(sequence) if strand == -1 else sequence


def _assemble(store: CoreStore, seq_region_id: int, start: int, end: int) -> str:
    bases = ["N"] * (end - start + 1)
    rows = store.fetch_all(
        """
        SELECT cmp_seq_region_id, asm_start, asm_end, cmp_start, cmp_end, ori
        FROM assembly
        WHERE asm_seq_region_id = ? AND asm_end >= ? AND asm_start <= ?
        ORDER BY asm_start
        """,
        [seq_region_id, start, end],
    )
    for cmp_id, asm_start, asm_end, cmp_start, cmp_end, ori in rows:
        # clip the block to the requested window
        left = max(start, asm_start) - asm_start
        right = asm_end - min(end, asm_end)
        if ori == 1:
            piece = fetch_region_sequence(store, cmp_id, cmp_start + left, cmp_end - right)
        else:
            piece = fetch_region_sequence(store, cmp_id, cmp_start + right, cmp_end - left, strand=-1)
        offset = max(start, asm_start) - start
        bases[offset:offset + len(piece)] = piece
    return "".join(bases)


def _transcript_exons(store: CoreStore, transcript_id: int) -> list[tuple]:
    return store.fetch_all(
        """
        SELECT e.exon_id, e.seq_region_id, e.seq_region_start, e.seq_region_end, e.seq_region_strand
        FROM exon_transcript et JOIN exon e USING (exon_id)
        WHERE et.transcript_id = ?
        ORDER BY et.rank
        """,
        [transcript_id],
    )


def spliced_sequence(store: CoreStore, transcript_id: int) -> str:
    """Exon sequences of a transcript concatenated in rank order."""
    return "".join(
        fetch_region_sequence(store, sr_id, start, end, strand)
        for _, sr_id, start, end, strand in _transcript_exons(store, transcript_id)
    )


def coding_sequence(store: CoreStore, transcript_id: int) -> Optional[str]:
    """Coding part of the spliced sequence, or None if there is no translation."""
    row = store.conn.execute(
        """
        SELECT seq_start, start_exon_id, seq_end, end_exon_id
        FROM translation WHERE transcript_id = ?
        ORDER BY translation_id LIMIT 1
        """,
        [transcript_id],
    ).fetchone()
    if row is None:
        return None
    seq_start, start_exon_id, seq_end, end_exon_id = row

    cdna_start = cdna_end = None
    offset = 0
    for exon_id, _, start, end, _ in _transcript_exons(store, transcript_id):
        if exon_id == start_exon_id:
            cdna_start = offset + seq_start
        if exon_id == end_exon_id:
            cdna_end = offset + seq_end
        offset += end - start + 1
    if cdna_start is None or cdna_end is None:
        return None
    return spliced_sequence(store, transcript_id)[cdna_start - 1:cdna_end]


def translate(cds: str) -> str:
    """Translate with the standard table; stops are kept as ``*``."""
    usable = len(cds) - len(cds) % 3
    return str(Seq(cds[:usable]).translate())


def translation_sequence(store: CoreStore, transcript_id: int) -> Optional[str]:
    """Peptide of a transcript's translation, or None if it has none."""
    cds = coding_sequence(store, transcript_id)
    if cds is None:
        return None
    return translate(cds)
