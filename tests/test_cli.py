"""Integration tests for the lrg-sync CLI using CliRunner.

Tests:
- info
- process --import --verify from an input file
- argument errors (no action, malformed identifier, xrefs refused)
- interactive record selection from the server listing
- max / revert round trip
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from lrg_sync.cli.main import cli
from lrg_sync.persistence import CoreStore
from lrg_sync.remote import LRGRemoteClient

from conftest import build_lrg_xml, seed_core


@pytest.fixture
def seeded_db(tmp_path):
    """Seed the database the test config points at, then release it."""
    db_path = tmp_path / "core.duckdb"
    store = CoreStore(db_path)
    seed_core(store)
    store.close()
    return db_path


@pytest.fixture
def record_file(tmp_path):
    path = tmp_path / "LRG_1.xml"
    path.write_bytes(build_lrg_xml())
    return path


def _gene_count(db_path, stable_id="LRG_1"):
    store = CoreStore(db_path)
    try:
        return store.fetch_value("SELECT COUNT(*) FROM gene WHERE stable_id = ?", [stable_id])
    finally:
        store.close()


def test_info(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(config_file), 'info'])

    assert result.exit_code == 0
    assert "Config Hash:" in result.output
    assert "Coordinate System: lrg" in result.output
    assert "Xrefs Enabled: False" in result.output


def test_process_import_and_verify(config_file, seeded_db, record_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file),
        'process', '--input-file', str(record_file), '--import', '--verify',
    ])

    assert result.exit_code == 0, result.output
    assert "LRG_1: import, verify" in result.output
    assert "Imported 2 transcripts on GRCh38" in result.output
    assert "is consistent" in result.output
    assert "All records processed successfully" in result.output
    assert _gene_count(seeded_db) == 1
    assert list((tmp_path / "data").glob("batch_*.provenance.json"))


def test_process_reports_failed_record(config_file, seeded_db, record_file):
    runner = CliRunner()
    args = ['--config', str(config_file), 'process', '--input_file', str(record_file), '--import']
    runner.invoke(cli, args)

    result = runner.invoke(cli, args)

    assert result.exit_code == 1
    assert "LRG_1: FAILED" in result.output
    assert "Delete it first using clean" in result.output


def test_process_clean(config_file, seeded_db, record_file):
    runner = CliRunner()
    runner.invoke(cli, [
        '--config', str(config_file), 'process', '--input-file', str(record_file), '--import',
    ])

    result = runner.invoke(cli, [
        '--config', str(config_file), 'process', '--lrg-id', 'LRG_1', '--clean',
    ])

    assert result.exit_code == 0, result.output
    assert "LRG_1: clean" in result.output
    assert _gene_count(seeded_db) == 0


def test_process_requires_an_action(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(config_file), 'process', '--lrg-id', 'LRG_1'])

    assert result.exit_code == 1
    assert "No action selected" in result.output


def test_process_rejects_malformed_identifier(config_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file), 'process', '--lrg-id', 'LRG1', '--clean',
    ])

    assert result.exit_code == 1
    assert "not in the correct format" in result.output
    assert not (tmp_path / "core.duckdb").exists()


def test_process_refuses_xrefs(config_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file), 'process', '--lrg-id', 'LRG_1', '--xrefs',
    ])

    assert result.exit_code == 1
    assert "no longer" in result.output
    assert not (tmp_path / "core.duckdb").exists()


def test_process_missing_input_file(config_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file),
        'process', '--input-file', str(tmp_path / "missing.xml"), '--verify',
    ])

    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_process_prompts_for_records(config_file, seeded_db):
    runner = CliRunner()
    with patch.object(LRGRemoteClient, "list_lrg_ids", return_value=["LRG_1", "LRG_2"]):
        result = runner.invoke(
            cli,
            ['--config', str(config_file), 'process', '--clean'],
            input="LRG_2\n",
        )

    assert result.exit_code == 0, result.output
    assert "2 LRG records available" in result.output
    assert "Records: LRG_2" in result.output
    assert "LRG_2: clean" in result.output


def test_process_overlap_on_missing_record(config_file, seeded_db):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file), 'process', '--lrg-id', 'LRG_5', '--overlap',
    ])

    assert result.exit_code == 1
    assert "LRG_5: FAILED" in result.output


def test_max_and_revert(config_file, seeded_db, record_file, tmp_path):
    runner = CliRunner()
    watermarks = tmp_path / "max.txt"

    result = runner.invoke(cli, ['--config', str(config_file), 'max', '--output', str(watermarks)])
    assert result.exit_code == 0, result.output
    assert "gene\tgene_id\t3" in watermarks.read_text()

    runner.invoke(cli, [
        '--config', str(config_file), 'process', '--input-file', str(record_file), '--import',
    ])
    assert _gene_count(seeded_db) == 1

    result = runner.invoke(cli, [
        '--config', str(config_file), 'revert', '--input-file', str(watermarks), '--yes',
    ])

    assert result.exit_code == 0, result.output
    assert "WARNING" in result.output
    assert "gene\t1" in result.output
    assert _gene_count(seeded_db) == 0


def test_max_to_stdout(config_file, seeded_db):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(config_file), 'max'])

    assert result.exit_code == 0
    assert "seq_region\tseq_region_id\t1" in result.output


def test_revert_asks_for_confirmation(config_file, seeded_db, tmp_path):
    watermarks = tmp_path / "max.txt"
    watermarks.write_text("gene\tgene_id\t0\n")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ['--config', str(config_file), 'revert', '--input-file', str(watermarks)],
        input="n\n",
    )

    assert result.exit_code == 1
    assert _gene_count(seeded_db, "ENSG00000108821") == 1


def test_revert_unknown_table(config_file, seeded_db, tmp_path):
    watermarks = tmp_path / "max.txt"
    watermarks.write_text("genes\tgene_id\t0\n")

    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(config_file), 'revert', '--input-file', str(watermarks), '--yes',
    ])

    assert result.exit_code == 1
    assert "Unknown table 'genes'" in result.output
