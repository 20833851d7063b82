"""Tests for the per-record batch runner."""

from unittest.mock import Mock

import pytest

from lrg_sync.errors import (
    ConfigurationError,
    InvalidIdentifierError,
    RemoteFetchError,
    XrefsSupersededError,
)
from lrg_sync.persistence import ProvenanceTracker
from lrg_sync.sync import BatchActions, RecordSource, run_batch


@pytest.fixture
def record_file(tmp_path, lrg_xml):
    path = tmp_path / "LRG_1.xml"
    path.write_bytes(lrg_xml())
    return path


def test_actions_run_in_fixed_order():
    actions = BatchActions(verify=True, overlap=True, clean=True, import_=True)
    assert actions.selected() == ["clean", "import", "overlap", "verify"]
    assert actions.needs_record
    assert not BatchActions(clean=True, overlap=True).needs_record


def test_import_overlap_verify(core_store, sync_config, record_file):
    provenance = ProvenanceTracker.from_config(sync_config, version="0.1.0")
    report = run_batch(
        ["LRG_1"],
        BatchActions(import_=True, overlap=True, verify=True),
        core_store,
        sync_config,
        source=RecordSource(input_file=record_file),
        provenance=provenance,
    )

    assert report.ok
    outcome = report.outcomes[0]
    assert outcome.completed == ["import", "overlap", "verify"]
    assert outcome.imported.transcripts == ["t1", "t2"]
    assert len(outcome.overlaps) == 2
    assert outcome.verification.passed
    assert [s["step_name"] for s in provenance.get_steps()] == ["import", "overlap", "verify"]


def test_clean_and_reimport(core_store, sync_config, record_file):
    source = RecordSource(input_file=record_file)
    run_batch(["LRG_1"], BatchActions(import_=True), core_store, sync_config, source=source)

    report = run_batch(
        ["LRG_1"], BatchActions(clean=True, import_=True), core_store, sync_config, source=source
    )

    assert report.ok
    assert report.outcomes[0].cleaned["gene"] == 1
    assert core_store.fetch_value("SELECT COUNT(*) FROM gene WHERE stable_id = 'LRG_1'") == 1


def test_failure_is_recorded_and_batch_continues(core_store, sync_config, lrg_xml, tmp_path):
    client = Mock()
    paths = {}
    for lrg_id in ("LRG_1", "LRG_2"):
        paths[lrg_id] = tmp_path / f"{lrg_id}.xml"
        paths[lrg_id].write_bytes(lrg_xml(lrg_id=lrg_id))

    def fetch(lrg_id):
        if lrg_id == "LRG_404":
            raise RemoteFetchError("Could not fetch XML file", lrg_id=lrg_id)
        return paths[lrg_id]

    client.fetch_record.side_effect = fetch
    source = RecordSource(client=client)
    run_batch(["LRG_1"], BatchActions(import_=True), core_store, sync_config, source=source)

    report = run_batch(
        ["LRG_1", "LRG_404", "LRG_2"],
        BatchActions(import_=True),
        core_store,
        sync_config,
        source=source,
    )

    assert not report.ok
    assert [o.lrg_id for o in report.failures] == ["LRG_1", "LRG_404"]
    assert "already exists" in report.outcomes[0].error
    assert "Could not fetch" in report.outcomes[1].error
    assert report.outcomes[2].completed == ["import"]


def test_inconsistent_record_fails_report(core_store, sync_config, lrg_xml, tmp_path):
    run_batch(
        ["LRG_1"],
        BatchActions(import_=True),
        core_store,
        sync_config,
        source=RecordSource(input_file=_write(tmp_path / "a.xml", lrg_xml())),
    )
    changed = _write(tmp_path / "b.xml", lrg_xml(record_seq="C" * 1000))

    report = run_batch(
        ["LRG_1"], BatchActions(verify=True), core_store, sync_config,
        source=RecordSource(input_file=changed),
    )

    assert not report.ok
    assert report.failures == []
    assert len(report.inconsistent) == 1


def _write(path, content):
    path.write_bytes(content)
    return path


def test_invalid_identifier_is_fatal_before_writes(core_store, sync_config, record_file):
    with pytest.raises(InvalidIdentifierError):
        run_batch(
            ["LRG_1", "LRG1"],
            BatchActions(import_=True),
            core_store,
            sync_config,
            source=RecordSource(input_file=record_file),
        )
    assert core_store.fetch_value("SELECT COUNT(*) FROM gene WHERE stable_id = 'LRG_1'") == 0


def test_input_file_must_match_identifier(core_store, sync_config, record_file):
    with pytest.raises(ConfigurationError, match="expected 'LRG_2'"):
        run_batch(
            ["LRG_2"],
            BatchActions(verify=True),
            core_store,
            sync_config,
            source=RecordSource(input_file=record_file),
        )


def test_xrefs_refused_before_any_action(core_store, sync_config, record_file):
    with pytest.raises(XrefsSupersededError):
        run_batch(
            ["LRG_1"],
            BatchActions(import_=True, xrefs=True),
            core_store,
            sync_config,
            source=RecordSource(input_file=record_file),
        )
    assert core_store.fetch_value("SELECT COUNT(*) FROM gene WHERE stable_id = 'LRG_1'") == 0


def test_xrefs_when_enabled(core_store, sync_config, record_file):
    config = sync_config.model_copy(
        update={"lrg": sync_config.lrg.model_copy(update={"xrefs_enabled": True})}
    )
    report = run_batch(
        ["LRG_1"],
        BatchActions(import_=True, xrefs=True),
        core_store,
        config,
        source=RecordSource(input_file=record_file),
    )

    assert report.ok
    assert report.outcomes[0].xrefs.object_xrefs == 7


def test_malformed_record_fails_alone(core_store, sync_config, lrg_xml, tmp_path):
    broken = _write(
        tmp_path / "LRG_2.xml",
        lrg_xml(lrg_id="LRG_2").replace(b'lrg_start="1" ', b"", 1),
    )
    good = _write(tmp_path / "LRG_3.xml", lrg_xml(lrg_id="LRG_3"))
    client = Mock()
    client.fetch_record.side_effect = lambda lrg_id: {"LRG_2": broken, "LRG_3": good}[lrg_id]

    report = run_batch(
        ["LRG_2", "LRG_3"],
        BatchActions(import_=True, verify=True),
        core_store,
        sync_config,
        source=RecordSource(client=client),
    )

    assert [o.lrg_id for o in report.failures] == ["LRG_2"]
    assert "lrg_start" in report.outcomes[0].error
    assert report.outcomes[1].completed == ["import", "verify"]
    assert report.outcomes[1].verification.passed
    assert core_store.fetch_value("SELECT COUNT(*) FROM seq_region WHERE name = 'LRG_2'") == 0
