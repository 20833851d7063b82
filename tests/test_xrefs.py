"""Tests for the superseded xref linking capability."""

import pytest

from lrg_sync.errors import RecordNotImportedError, XrefsSupersededError
from lrg_sync.sync import SyncEngine, XrefLinker


def _links(store):
    rows = store.fetch_all(
        """
        SELECT ox.ensembl_object_type, ox.ensembl_id, e.db_name, x.dbprimary_acc
        FROM object_xref ox
        JOIN xref x USING (xref_id)
        JOIN external_db e USING (external_db_id)
        """
    )
    return sorted(rows, key=lambda row: (row[2], row[3]))


@pytest.fixture
def imported(core_store, lrg_record):
    SyncEngine(core_store).import_record(lrg_record)
    return core_store


def test_linker_refuses_by_default(imported, lrg_record):
    with pytest.raises(XrefsSupersededError, match="no longer"):
        XrefLinker(imported).link(lrg_record)
    assert imported.fetch_value("SELECT COUNT(*) FROM xref") == 0
    assert imported.fetch_value("SELECT COUNT(*) FROM external_db") == 0


def test_linker_requires_import(core_store, lrg_record):
    with pytest.raises(RecordNotImportedError):
        XrefLinker(core_store, enabled=True).link(lrg_record)


def test_enabled_linker_creates_links(imported, lrg_record):
    result = XrefLinker(imported, enabled=True).link(lrg_record)

    lrg_gene = imported.get_object_id_by_stable_id("gene", "LRG_1")
    lrg_t1 = imported.get_object_id_by_stable_id("transcript", "LRG_1_t1")
    ens_gene = imported.seeded["genes"]["ENSG00000108821"]
    ens_transcript = imported.seeded["transcript_id"]
    ens_translation = imported.get_object_id_by_stable_id("translation", "ENSP00000225964")

    assert _links(imported) == [
        ("Gene", ens_gene, "ENS_LRG_gene", "LRG_1"),
        ("Transcript", ens_transcript, "ENS_LRG_transcript", "LRG_1_t1"),
        ("Gene", lrg_gene, "Ens_Hs_gene", "ENSG00000108821"),
        ("Transcript", lrg_t1, "Ens_Hs_transcript", "ENST00000225964"),
        ("Translation", ens_translation, "Ens_Hs_translation", "ENSP00000225964"),
        ("Gene", lrg_gene, "HGNC", "2197"),
        ("Gene", lrg_gene, "LRG", "LRG_1"),
    ]
    display = imported.fetch_value("SELECT display_xref_id FROM gene WHERE gene_id = ?", [lrg_gene])
    assert display == result.display_xref_id
    assert imported.fetch_value(
        "SELECT description FROM xref WHERE xref_id = ?", [display]
    ) == "Locus Reference Genomic record for COL1A1"


def test_linking_twice_reuses_rows(imported, lrg_record):
    linker = XrefLinker(imported, enabled=True)
    linker.link(lrg_record)
    first = _links(imported)

    linker.link(lrg_record)

    assert _links(imported) == first
    assert imported.fetch_value("SELECT COUNT(*) FROM external_db WHERE db_name = 'LRG'") == 1


def test_clean_removes_record_links(imported, lrg_record):
    XrefLinker(imported, enabled=True).link(lrg_record)

    SyncEngine(imported).clean("LRG_1")

    remaining = _links(imported)
    assert [row[2] for row in remaining] == ["Ens_Hs_translation"]
    assert imported.fetch_value(
        "SELECT COUNT(*) FROM xref WHERE dbprimary_acc LIKE 'LRG%'"
    ) == 0
