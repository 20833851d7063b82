"""Remove everything an import (and the xref/overlap steps) wrote for a record.

Rows are found both through the record's seq_region and through its stable
id prefix, so a partially-written import is removed as completely as a
finished one. Shared rows (coordinate systems, analyses, external dbs,
attribute types, third-party xrefs) are left in place.
"""

from typing import Iterable

import structlog

from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.schema import OVERLAP_ATTRIB_CODES
from lrg_sync.sync.mapping_writer import PATCH_COORD_SYSTEM


logger = structlog.get_logger()


# external dbs whose xrefs are named after the record itself
RECORD_XREF_DBS = ("LRG", "ENS_LRG_gene", "ENS_LRG_transcript")

CLEANED_TABLES = (
    "gene_attrib",
    "object_xref",
    "xref",
    "translation",
    "exon_transcript",
    "exon",
    "transcript",
    "gene",
    "assembly",
    "dna",
    "seq_region",
)


def _in(column: str) -> str:
    return f"list_contains(?, {column})"


def _ids(store: CoreStore, query: str, params: list) -> list[int]:
    return sorted({row[0] for row in store.fetch_all(query, params) if row[0] is not None})


def _delete_ids(store: CoreStore, table: str, column: str, ids: Iterable[int]) -> int:
    ids = list(ids)
    if not ids:
        return 0
    return store.delete(table, _in(column), [ids])


def purge(store: CoreStore, lrg_id: str, coord_system_name: str = "lrg") -> dict[str, int]:
    """
    Delete a record's rows from the core database.

    Safe to call on a record that was never imported or was only partly
    imported; the second call on the same record deletes nothing.

    Args:
        store: Core database
        lrg_id: Record identifier
        coord_system_name: Name of the LRG coordinate system

    Returns:
        table -> number of rows deleted, for every cleaned table
    """
    prefix = f"{lrg_id}_"
    counts = {table: 0 for table in CLEANED_TABLES}

    with store.transaction():
        region_id = store.get_seq_region_id(lrg_id, store.get_coord_system_id(coord_system_name))
        patch_ids = []
        contig_cs_id = store.get_coord_system_id(PATCH_COORD_SYSTEM)
        if contig_cs_id is not None:
            patch_ids = _ids(
                store,
                "SELECT seq_region_id FROM seq_region "
                "WHERE coord_system_id = ? AND starts_with(name, ?)",
                [contig_cs_id, f"{lrg_id}_p"],
            )
        region_ids = ([region_id] if region_id is not None else []) + patch_ids

        gene_ids = _ids(
            store,
            "SELECT gene_id FROM gene WHERE stable_id = ? OR seq_region_id = ?",
            [lrg_id, region_id],
        )
        transcript_ids = _ids(
            store,
            "SELECT transcript_id FROM transcript "
            "WHERE starts_with(stable_id, ?) OR seq_region_id = ?",
            [prefix, region_id],
        )
        if gene_ids:
            transcript_ids = sorted(set(transcript_ids) | set(_ids(
                store, f"SELECT transcript_id FROM transcript WHERE {_in('gene_id')}", [gene_ids]
            )))
        exon_ids = _ids(
            store,
            "SELECT exon_id FROM exon WHERE starts_with(stable_id, ?) OR seq_region_id = ?",
            [prefix, region_id],
        )
        translation_ids = _ids(
            store,
            "SELECT translation_id FROM translation WHERE starts_with(stable_id, ?)",
            [prefix],
        )
        if transcript_ids:
            exon_ids = sorted(set(exon_ids) | set(_ids(
                store,
                f"SELECT exon_id FROM exon_transcript WHERE {_in('transcript_id')}",
                [transcript_ids],
            )))
            translation_ids = sorted(set(translation_ids) | set(_ids(
                store,
                f"SELECT translation_id FROM translation WHERE {_in('transcript_id')}",
                [transcript_ids],
            )))

        # overlap attributes naming the record, and any attributes on its own genes
        counts["gene_attrib"] += store.delete(
            "gene_attrib",
            "value = ? AND attrib_type_id IN "
            "(SELECT attrib_type_id FROM attrib_type WHERE list_contains(?, code))",
            [lrg_id, list(OVERLAP_ATTRIB_CODES)],
        )
        counts["gene_attrib"] += _delete_ids(store, "gene_attrib", "gene_id", gene_ids)

        xref_ids = _ids(
            store,
            """
            SELECT x.xref_id FROM xref x JOIN external_db e USING (external_db_id)
            WHERE list_contains(?, e.db_name)
              AND (x.dbprimary_acc = ? OR starts_with(x.dbprimary_acc, ?))
            """,
            [list(RECORD_XREF_DBS), lrg_id, prefix],
        )
        for object_type, ids in (
            ("Gene", gene_ids),
            ("Transcript", transcript_ids),
            ("Translation", translation_ids),
        ):
            if ids:
                counts["object_xref"] += store.delete(
                    "object_xref",
                    f"ensembl_object_type = ? AND {_in('ensembl_id')}",
                    [object_type, ids],
                )
        counts["object_xref"] += _delete_ids(store, "object_xref", "xref_id", xref_ids)
        if xref_ids:
            store.conn.execute(
                f"UPDATE gene SET display_xref_id = NULL WHERE {_in('display_xref_id')}",
                [xref_ids],
            )
        counts["xref"] += _delete_ids(store, "xref", "xref_id", xref_ids)

        counts["translation"] += _delete_ids(store, "translation", "translation_id", translation_ids)
        counts["exon_transcript"] += _delete_ids(store, "exon_transcript", "transcript_id", transcript_ids)
        counts["exon_transcript"] += _delete_ids(store, "exon_transcript", "exon_id", exon_ids)
        counts["exon"] += _delete_ids(store, "exon", "exon_id", exon_ids)
        counts["transcript"] += _delete_ids(store, "transcript", "transcript_id", transcript_ids)
        counts["gene"] += _delete_ids(store, "gene", "gene_id", gene_ids)

        counts["assembly"] += _delete_ids(store, "assembly", "asm_seq_region_id", region_ids)
        counts["assembly"] += _delete_ids(store, "assembly", "cmp_seq_region_id", region_ids)
        counts["dna"] += _delete_ids(store, "dna", "seq_region_id", region_ids)
        counts["seq_region"] += _delete_ids(store, "seq_region", "seq_region_id", region_ids)

    logger.info("record_cleaned", lrg_id=lrg_id, deleted=sum(counts.values()), counts=counts)
    return counts
