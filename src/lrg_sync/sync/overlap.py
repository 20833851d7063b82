"""Flag genome genes that overlap an imported record's region."""

from dataclasses import dataclass
from typing import Optional

import structlog

from lrg_sync.errors import RecordNotImportedError
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.schema import OVERLAP_ATTRIB_CODES

logger = structlog.get_logger()

COMPLETE_OVERLAP_CODE, PARTIAL_OVERLAP_CODE = OVERLAP_ATTRIB_CODES


@dataclass(frozen=True)
class OverlapAttribute:
    """A gene's overlap with a record region."""
    gene_id: int
    record_id: str
    is_partial: bool

    @property
    def code(self) -> str:
        return PARTIAL_OVERLAP_CODE if self.is_partial else COMPLETE_OVERLAP_CODE


@dataclass(frozen=True)
class GenomicInterval:
    seq_region_id: int
    start: int
    end: int

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end


def classify_overlap(interval: GenomicInterval, gene_start: int, gene_end: int) -> bool:
    """True when the overlap is partial, False when the gene lies fully inside."""
    return not interval.contains(gene_start, gene_end)


def record_interval(
    store: CoreStore,
    lrg_id: str,
    coord_system_name: str = "lrg",
    chromosome_coord_system: str = "chromosome",
) -> Optional[GenomicInterval]:
    """Chromosome interval covered by an imported record, or None if it has no chromosome blocks."""
    region_id = store.get_seq_region_id(lrg_id, store.get_coord_system_id(coord_system_name))
    if region_id is None:
        raise RecordNotImportedError(
            "Record is not imported, cannot annotate overlaps", lrg_id=lrg_id
        )
    row = store.conn.execute(
        """
        SELECT a.cmp_seq_region_id, MIN(a.cmp_start), MAX(a.cmp_end)
        FROM assembly a
        JOIN seq_region sr ON sr.seq_region_id = a.cmp_seq_region_id
        JOIN coord_system cs ON cs.coord_system_id = sr.coord_system_id
        WHERE a.asm_seq_region_id = ? AND cs.name = ?
        GROUP BY a.cmp_seq_region_id
        ORDER BY a.cmp_seq_region_id
        LIMIT 1
        """,
        [region_id, chromosome_coord_system],
    ).fetchone()
    if row is None:
        return None
    return GenomicInterval(seq_region_id=row[0], start=row[1], end=row[2])


def annotate_overlaps(
    store: CoreStore,
    lrg_id: str,
    coord_system_name: str = "lrg",
    lrg_biotype: str = "LRG_gene",
) -> list[OverlapAttribute]:
    """
    Attach one overlap attribute per gene intersecting the record's region.

    Existing attributes for the same (gene, record) pair are replaced, so
    re-running gives the same rows.

    Args:
        store: Core database
        lrg_id: Imported record
        coord_system_name: Name of the LRG coordinate system
        lrg_biotype: Biotype of LRG genes, which are never annotated

    Returns:
        The attributes written, ordered by gene id

    Raises:
        RecordNotImportedError: If the record has no seq_region
    """
    interval = record_interval(store, lrg_id, coord_system_name)
    if interval is None:
        logger.warning("overlap_no_chromosome_region", lrg_id=lrg_id)
        return []

    genes = store.execute_query(
        """
        SELECT gene_id, seq_region_start, seq_region_end, stable_id
        FROM gene
        WHERE seq_region_id = ?
          AND seq_region_end >= ? AND seq_region_start <= ?
          AND (biotype IS NULL OR biotype != ?)
        ORDER BY gene_id
        """,
        [interval.seq_region_id, interval.start, interval.end, lrg_biotype],
    )

    attributes = []
    with store.transaction():
        type_ids = {
            COMPLETE_OVERLAP_CODE: store.add_attrib_type(
                COMPLETE_OVERLAP_CODE, "Gene in LRG", "This gene is completely within the LRG region"
            ),
            PARTIAL_OVERLAP_CODE: store.add_attrib_type(
                PARTIAL_OVERLAP_CODE, "Gene overlaps LRG", "This gene overlaps the LRG region"
            ),
        }
        for gene in genes.iter_rows(named=True):
            gene_id = gene["gene_id"]
            attribute = OverlapAttribute(
                gene_id=gene_id,
                record_id=lrg_id,
                is_partial=classify_overlap(
                    interval, gene["seq_region_start"], gene["seq_region_end"]
                ),
            )
            store.delete(
                "gene_attrib",
                "gene_id = ? AND value = ? AND list_contains(?, attrib_type_id)",
                [gene_id, lrg_id, list(type_ids.values())],
            )
            store.insert("gene_attrib", {
                "gene_id": gene_id,
                "attrib_type_id": type_ids[attribute.code],
                "value": lrg_id,
            })
            logger.info(
                "overlap_attribute_added",
                lrg_id=lrg_id,
                gene=gene["stable_id"],
                partial=attribute.is_partial,
            )
            attributes.append(attribute)

    return attributes
