"""Per-record import and clean against the core database."""

from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Optional

import structlog

from lrg_sync.config.schema import LRGConfig
from lrg_sync.errors import PreconditionError, RecordAlreadyImportedError
from lrg_sync.mapping import build_mapping, covering_range
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.provenance import ProvenanceTracker
from lrg_sync.record.models import LRGRecord, validate_lrg_id
from lrg_sync.sync.annotation import write_annotation
from lrg_sync.sync.clean import purge
from lrg_sync.sync.mapping_writer import write_mapping
from lrg_sync.sync.sequence import fetch_region_sequence

logger = structlog.get_logger()

CHROMOSOME_COORD_SYSTEM = "chromosome"


@dataclass
class ImportResult:
    """Summary of one record import."""
    lrg_id: str
    assembly: str
    seq_region_id: int
    gene_id: int
    transcripts: list[str] = field(default_factory=list)
    matched_positions: int = 0
    gaps: int = 0
    mismatches: int = 0
    patches: int = 0


class SyncEngine:
    """
    Import and clean LRG records in one core database.

    Import is deliberately not idempotent: a record whose seq_region exists
    must be cleaned first. With ``transactional`` set, each import runs in
    its own transaction and a failure leaves the database as it was;
    without it, a failure can leave a partial import that clean removes.
    """

    def __init__(
        self,
        store: CoreStore,
        lrg_config: Optional[LRGConfig] = None,
        transactional: bool = True,
        provenance: Optional[ProvenanceTracker] = None,
    ):
        self.store = store
        self.lrg = lrg_config or LRGConfig()
        self.transactional = transactional
        self.provenance = provenance

    @classmethod
    def from_config(cls, store: CoreStore, config, provenance=None) -> "SyncEngine":
        return cls(
            store,
            lrg_config=config.lrg,
            transactional=config.database.transactional,
            provenance=provenance,
        )

    def _record_step(self, step_name: str, details: dict) -> None:
        if self.provenance is not None:
            self.provenance.record_step(step_name, details)

    def record_region_id(self, lrg_id: str) -> Optional[int]:
        """seq_region id of an imported record, or None."""
        cs_id = self.store.get_coord_system_id(self.lrg.coord_system_name)
        return self.store.get_seq_region_id(lrg_id, cs_id)

    def is_imported(self, lrg_id: str) -> bool:
        return self.record_region_id(lrg_id) is not None

    def clean(self, lrg_id: str) -> dict[str, int]:
        """Remove the record's rows; a no-op for an absent record."""
        validate_lrg_id(lrg_id)
        counts = purge(self.store, lrg_id, self.lrg.coord_system_name)
        self._record_step("clean", {"lrg_id": lrg_id, "deleted": sum(counts.values())})
        return counts

    def import_record(self, record: LRGRecord) -> ImportResult:
        """
        Import a record's mapping and annotation.

        Args:
            record: Parsed LRG record

        Returns:
            ImportResult describing what was written

        Raises:
            RecordAlreadyImportedError: If the record's seq_region exists
            PreconditionError: If the database has no assembly or lacks the
                mapped chromosome
            NoApplicableMappingError: If no mapping targets the database's assembly
            MappingError: If the mapping spans are inconsistent
        """
        lrg_id = record.lrg_id
        if self.is_imported(lrg_id):
            raise RecordAlreadyImportedError(
                "Record already exists in the core database. Delete it first using clean",
                lrg_id=lrg_id,
            )

        assembly = self.store.get_assembly()
        if not assembly:
            raise PreconditionError(
                "Core database has no assembly.default meta entry", lrg_id=lrg_id
            )
        logger.info("core_assembly", lrg_id=lrg_id, assembly=assembly)

        spans = record.mapping_spans(assembly)
        chr_name = spans[0].chr_name
        chr_region_id = self.store.get_seq_region_id(
            chr_name, self.store.get_coord_system_id(CHROMOSOME_COORD_SYSTEM)
        )
        if chr_region_id is None:
            raise PreconditionError(
                f"Chromosome '{chr_name}' of assembly {assembly} is not in the core database",
                lrg_id=lrg_id,
            )

        chr_start, chr_end = covering_range(spans)
        chr_seq = fetch_region_sequence(self.store, chr_region_id, chr_start, chr_end)
        record_seq = record.sequence
        mapping = build_mapping(spans, record_seq, chr_seq, chr_offset=chr_start)

        scope = self.store.transaction() if self.transactional else nullcontext()
        with scope:
            analysis_id = self.store.add_analysis(self.lrg.analysis_logic_name)
            self.store.add_analysis_description(
                analysis_id,
                self.lrg.analysis_description,
                self.lrg.analysis_display_label,
                web_data=self.lrg.analysis_web_data,
            )
            cs_id = self.store.add_coord_system(
                self.lrg.coord_system_name, attrib="default_version"
            )
            written = write_mapping(
                self.store, lrg_id, cs_id, mapping, chr_region_id, record_seq
            )
            annotation = write_annotation(
                self.store, record, written.seq_region_id, self.lrg.biotype, analysis_id
            )

        result = ImportResult(
            lrg_id=lrg_id,
            assembly=assembly,
            seq_region_id=written.seq_region_id,
            gene_id=annotation.gene_id,
            transcripts=list(annotation.transcript_ids),
            matched_positions=len(mapping.matched),
            gaps=len(mapping.gaps),
            mismatches=mapping.mismatch_count,
            patches=written.patches,
        )
        logger.info(
            "record_imported",
            lrg_id=lrg_id,
            assembly=assembly,
            transcripts=len(result.transcripts),
            mismatches=result.mismatches,
        )
        self._record_step("import", {
            "lrg_id": lrg_id,
            "assembly": assembly,
            "transcripts": result.transcripts,
            "gaps": result.gaps,
            "mismatches": result.mismatches,
        })
        return result
