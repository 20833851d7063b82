"""Tests for the DuckDB core store and provenance tracking."""

import json

import polars as pl
import pytest

from lrg_sync.persistence import CoreStore, ProvenanceTracker


def test_store_creates_database(tmp_path):
    """Test that CoreStore creates .duckdb file and schema at specified path."""
    db_path = tmp_path / "nested" / "core.duckdb"
    assert not db_path.exists()

    store = CoreStore(db_path)
    columns = store.table_columns()
    store.close()

    assert db_path.exists()
    assert {"seq_region", "assembly", "gene", "gene_attrib", "xref"} <= set(columns)
    assert "asm_seq_region_id" in columns["assembly"]


def test_store_reopen_keeps_data(tmp_path):
    db_path = tmp_path / "core.duckdb"
    with CoreStore(db_path) as store:
        store.set_meta("assembly.default", "GRCh38")

    with CoreStore(db_path) as store:
        assert store.get_assembly() == "GRCh38"


def test_execute_query_returns_polars(store):
    store.add_coord_system("chromosome", version="GRCh38", rank=1)
    df = store.execute_query("SELECT name, rank FROM coord_system")
    assert isinstance(df, pl.DataFrame)
    assert df["name"].to_list() == ["chromosome"]


def test_get_or_create_helpers(store):
    cs1 = store.add_coord_system("lrg")
    cs2 = store.add_coord_system("lrg")
    assert cs1 == cs2

    a1 = store.add_analysis("LRG_import")
    a2 = store.add_analysis("LRG_import")
    assert a1 == a2

    store.add_analysis_description(a1, "Data from LRG database", "LRG Genes")
    store.add_analysis_description(a1, "Other", "Other")
    assert store.fetch_value("SELECT COUNT(*) FROM analysis_description") == 1
    assert store.fetch_value("SELECT description FROM analysis_description") == "Data from LRG database"

    assert store.add_attrib_type("GeneInLRG") == store.add_attrib_type("GeneInLRG")


def test_seq_region_with_dna(store):
    cs_id = store.add_coord_system("contig")
    sr_id = store.add_seq_region("LRG_1_p1", cs_id, 4, sequence="ACGT")

    assert store.get_seq_region_id("LRG_1_p1", cs_id) == sr_id
    assert store.get_seq_region_id("LRG_1_p1", None) is None
    assert store.get_seq_region(sr_id) == {
        "seq_region_id": sr_id,
        "name": "LRG_1_p1",
        "length": 4,
        "coord_system": "contig",
    }
    assert store.fetch_value("SELECT sequence FROM dna WHERE seq_region_id = ?", [sr_id]) == "ACGT"


def test_keys_are_not_reused_after_delete(store):
    first = store.add_analysis("a")
    store.delete("analysis", "analysis_id = ?", [first])
    second = store.add_analysis("b")
    assert second > first


def test_delete_returns_count(store):
    for name in ("a", "b", "c"):
        store.add_analysis(name)
    assert store.delete("analysis", "logic_name != ?", ["a"]) == 2
    assert store.delete("analysis", "logic_name = ?", ["zzz"]) == 0


def test_transaction_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.add_analysis("inside")
            raise RuntimeError("boom")

    assert store.fetch_value("SELECT COUNT(*) FROM analysis") == 0


def test_nested_transaction_joins_outer(store):
    with store.transaction():
        store.add_analysis("outer")
        with store.transaction():
            store.add_analysis("inner")

    assert store.fetch_value("SELECT COUNT(*) FROM analysis") == 2


def test_object_id_by_stable_id(core_store):
    gene_id = core_store.get_object_id_by_stable_id("gene", "ENSG00000108821")
    assert gene_id == core_store.seeded["genes"]["ENSG00000108821"]
    assert core_store.get_object_id_by_stable_id("transcript", "ENST_missing") is None


def test_provenance_sidecar(tmp_path, sync_config):
    provenance = ProvenanceTracker.from_config(sync_config, version="0.1.0")
    provenance.record_step("import", {"lrg_id": "LRG_1"})
    provenance.record_step("verify")

    sidecar = provenance.save_sidecar(tmp_path / "out" / "batch.json")

    assert sidecar.name == "batch.provenance.json"
    metadata = ProvenanceTracker.load_sidecar(sidecar)
    assert metadata["tool_version"] == "0.1.0"
    assert metadata["config_hash"] == sync_config.config_hash()
    assert metadata["database"] == str(sync_config.database.path)
    assert [s["step_name"] for s in metadata["processing_steps"]] == ["import", "verify"]
    assert metadata["processing_steps"][0]["details"] == {"lrg_id": "LRG_1"}
    assert json.loads(sidecar.read_text())["remote_sources"] == sync_config.remote.base_urls


def test_provenance_tracks_records(sync_config):
    provenance = ProvenanceTracker.from_config(sync_config, version="0.1.0")
    provenance.record_step("import", {"lrg_id": "LRG_2"})
    provenance.record_step("import", {"lrg_id": "LRG_1"})
    provenance.record_step("failure", {"lrg_id": "LRG_1", "error": "boom"})
    provenance.record_step("verify", {"lrg_id": "LRG_2", "passed": True})

    assert provenance.records() == ["LRG_2", "LRG_1"]
    assert provenance.failed_records() == ["LRG_1"]
    assert [s["step_name"] for s in provenance.steps_for("LRG_2")] == ["import", "verify"]
    assert provenance.create_metadata()["failed_records"] == ["LRG_1"]
