"""Cross-reference linking between LRG genes and Ensembl annotation.

This used to run as part of every import. It has been superseded by the
core xref pipeline, which builds the same links from HGNC data, so the
linker refuses to run unless it is explicitly enabled.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from lrg_sync.errors import (
    PreconditionError,
    RecordNotImportedError,
    XrefsSupersededError,
)
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.record.models import LRGRecord
from lrg_sync.sync.annotation import transcript_stable_id

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExternalDb:
    db_name: str
    status: str = "KNOWN"
    priority: int = 10
    db_display_name: str = ""
    db_release: str = "1"
    dbprimary_acc_linkable: bool = True
    display_label_linkable: bool = False
    type: str = "MISC"


LRG_EXTERNAL_DB = ExternalDb("LRG", db_display_name="Locus Reference Genomic")
ENS_LRG_GENE_DB = ExternalDb("ENS_LRG_gene", db_display_name="LRG display in Ensembl")
ENS_LRG_TRANSCRIPT_DB = ExternalDb("ENS_LRG_transcript", db_display_name="LRG display in Ensembl")

HGNC_DB = ExternalDb("HGNC", db_display_name="HGNC Symbol", type="PRIMARY_DB_SYNONYM")
ENS_GENE_DB = ExternalDb("Ens_Hs_gene", db_display_name="Ensembl gene")
ENS_TRANSCRIPT_DB = ExternalDb("Ens_Hs_transcript", db_display_name="Ensembl transcript")
ENS_TRANSLATION_DB = ExternalDb("Ens_Hs_translation", db_display_name="Ensembl protein")


@dataclass
class XrefLinkResult:
    lrg_id: str
    gene_id: int
    display_xref_id: Optional[int] = None
    object_xrefs: int = 0


class XrefLinker:
    """
    Historical xref linking for an imported record.

    Links created for record ``LRG_N`` with HGNC symbol ``S``:

    - LRG gene -> HGNC ``S`` and LRG ``LRG_N`` (the latter becomes the
      gene's display xref)
    - LRG gene -> each Ensembl gene named in the record, and each such
      Ensembl gene -> ``ENS_LRG_gene`` ``LRG_N``
    - LRG transcript -> its Ensembl transcript, Ensembl transcript ->
      ``ENS_LRG_transcript`` ``LRG_N_tX``, Ensembl translation -> its
      Ensembl protein accession
    """

    def __init__(self, store: CoreStore, enabled: bool = False):
        self.store = store
        self.enabled = enabled

    def ensure_enabled(self) -> None:
        if not self.enabled:
            raise XrefsSupersededError(
                "Adding xrefs is no longer done by lrg-sync; the core xref pipeline "
                "creates these links. Set lrg.xrefs_enabled to run it anyway"
            )

    def add_external_db(self, db: ExternalDb) -> int:
        """Get or create an external_db row."""
        external_db_id = self.store.fetch_value(
            "SELECT external_db_id FROM external_db WHERE db_name = ?", [db.db_name]
        )
        if external_db_id is None:
            external_db_id = self.store.insert("external_db", {
                "db_name": db.db_name,
                "status": db.status,
                "priority": db.priority,
                "db_display_name": db.db_display_name,
                "db_release": db.db_release,
                "dbprimary_acc_linkable": db.dbprimary_acc_linkable,
                "display_label_linkable": db.display_label_linkable,
                "type": db.type,
            }, returning="external_db_id")
        return external_db_id

    def add_xref(
        self,
        db: ExternalDb,
        accession: str,
        label: str,
        description: Optional[str] = None,
        info_type: Optional[str] = None,
    ) -> int:
        """Get or create an xref by external db and primary accession."""
        external_db_id = self.add_external_db(db)
        xref_id = self.store.fetch_value(
            "SELECT xref_id FROM xref WHERE external_db_id = ? AND dbprimary_acc = ?",
            [external_db_id, accession],
        )
        if xref_id is None:
            xref_id = self.store.insert("xref", {
                "external_db_id": external_db_id,
                "dbprimary_acc": accession,
                "display_label": label,
                "description": description,
                "info_type": info_type,
            }, returning="xref_id")
        return xref_id

    def add_object_xref(self, ensembl_id: int, object_type: str, xref_id: int) -> int:
        object_xref_id = self.store.fetch_value(
            """
            SELECT object_xref_id FROM object_xref
            WHERE ensembl_id = ? AND ensembl_object_type = ? AND xref_id = ?
            """,
            [ensembl_id, object_type, xref_id],
        )
        if object_xref_id is None:
            object_xref_id = self.store.insert("object_xref", {
                "ensembl_id": ensembl_id,
                "ensembl_object_type": object_type,
                "xref_id": xref_id,
            }, returning="object_xref_id")
        return object_xref_id

    def link(self, record: LRGRecord) -> XrefLinkResult:
        """
        Create the record's xrefs.

        Raises:
            XrefsSupersededError: Unless the linker was created enabled
            RecordNotImportedError: If the LRG gene is not in the database
            PreconditionError: If the record lacks the HGNC gene annotation
        """
        self.ensure_enabled()

        lrg_id = record.lrg_id
        gene_id = self.store.get_object_id_by_stable_id("gene", lrg_id)
        if gene_id is None:
            raise RecordNotImportedError(
                f"Could not find gene with stable id {lrg_id} in core database", lrg_id=lrg_id
            )

        hgnc_name = record.gene_symbol("HGNC")
        if not hgnc_name:
            raise PreconditionError("Could not find HGNC identifier in XML file", lrg_id=lrg_id)
        ensembl_set = record.annotation_set("Ensembl")
        lrg_gene = ensembl_set.find("features/gene", {"symbol": hgnc_name}) if ensembl_set else None
        if lrg_gene is None:
            raise PreconditionError(
                f"Could not find Ensembl annotation for gene {hgnc_name} in XML file",
                lrg_id=lrg_id,
            )

        result = XrefLinkResult(lrg_id=lrg_id, gene_id=gene_id)
        with self.store.transaction():
            hgnc_node = lrg_gene.find("db_xref", {"source": "HGNC"})
            if hgnc_node is not None:
                xref_id = self.add_xref(HGNC_DB, hgnc_node.get("accession"), hgnc_name)
                self.add_object_xref(gene_id, "Gene", xref_id)
                result.object_xrefs += 1

            for db in (LRG_EXTERNAL_DB, ENS_LRG_GENE_DB, ENS_LRG_TRANSCRIPT_DB):
                self.add_external_db(db)

            lrg_xref_id = self.add_xref(
                LRG_EXTERNAL_DB,
                lrg_id,
                lrg_id,
                description=f"Locus Reference Genomic record for {hgnc_name}",
                info_type="DIRECT",
            )
            self.add_object_xref(gene_id, "Gene", lrg_xref_id)
            self.store.conn.execute(
                "UPDATE gene SET display_xref_id = ? WHERE gene_id = ?", [lrg_xref_id, gene_id]
            )
            result.display_xref_id = lrg_xref_id
            result.object_xrefs += 1

            for xref_node in lrg_gene.find_all("db_xref", {"source": "Ensembl"}):
                stable_id = xref_node.get("accession")
                xref_id = self.add_xref(ENS_GENE_DB, stable_id, stable_id)
                self.add_object_xref(gene_id, "Gene", xref_id)
                result.object_xrefs += 1

                ensembl_gene_id = self.store.get_object_id_by_stable_id("gene", stable_id)
                if ensembl_gene_id is None:
                    logger.warning("xref_ensembl_gene_missing", lrg_id=lrg_id, stable_id=stable_id)
                    continue
                xref_id = self.add_xref(ENS_LRG_GENE_DB, lrg_id, lrg_id)
                self.add_object_xref(ensembl_gene_id, "Gene", xref_id)
                result.object_xrefs += 1

            for transcript_node in lrg_gene.find_all("transcript", {"source": "Ensembl"}):
                result.object_xrefs += self._link_transcript(lrg_id, transcript_node)

        logger.info("xrefs_linked", lrg_id=lrg_id, object_xrefs=result.object_xrefs)
        return result

    def _link_transcript(self, lrg_id: str, transcript_node) -> int:
        fixed_id = transcript_node.get("fixed_id")
        accession = transcript_node.get("transcript_id")
        if not fixed_id or not accession:
            return 0

        core_stable_id = transcript_stable_id(lrg_id, fixed_id)
        lrg_transcript_id = self.store.get_object_id_by_stable_id("transcript", core_stable_id)
        if lrg_transcript_id is None:
            return 0

        links = 0
        xref_id = self.add_xref(ENS_TRANSCRIPT_DB, accession, accession)
        self.add_object_xref(lrg_transcript_id, "Transcript", xref_id)
        links += 1

        ensembl_transcript_id = self.store.get_object_id_by_stable_id("transcript", accession)
        if ensembl_transcript_id is None:
            return links
        xref_id = self.add_xref(ENS_LRG_TRANSCRIPT_DB, core_stable_id, core_stable_id)
        self.add_object_xref(ensembl_transcript_id, "Transcript", xref_id)
        links += 1

        protein = transcript_node.find("protein_product", {"source": "Ensembl"})
        protein_accession = protein.get("accession") if protein is not None else None
        if not protein_accession:
            return links
        translation_id = self.store.fetch_value(
            "SELECT translation_id FROM translation WHERE transcript_id = ? ORDER BY translation_id LIMIT 1",
            [ensembl_transcript_id],
        )
        if translation_id is None:
            return links
        xref_id = self.add_xref(ENS_TRANSLATION_DB, protein_accession, protein_accession)
        self.add_object_xref(translation_id, "Translation", xref_id)
        return links + 1
