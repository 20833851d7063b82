"""Run the selected actions over a list of records, one record at a time."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import structlog

from lrg_sync.config.schema import SyncConfig
from lrg_sync.errors import ConfigurationError, LRGSyncError
from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.persistence.provenance import ProvenanceTracker
from lrg_sync.record import load_record
from lrg_sync.record.models import LRGRecord, validate_lrg_id
from lrg_sync.remote.client import LRGRemoteClient
from lrg_sync.sync.engine import ImportResult, SyncEngine
from lrg_sync.sync.overlap import OverlapAttribute, annotate_overlaps
from lrg_sync.sync.verify import ConsistencyVerifier, VerificationResult
from lrg_sync.sync.xrefs import XrefLinker, XrefLinkResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class BatchActions:
    """Actions to run per record; they always run in field order."""
    clean: bool = False
    import_: bool = False
    xrefs: bool = False
    overlap: bool = False
    verify: bool = False

    @property
    def needs_record(self) -> bool:
        return self.import_ or self.xrefs or self.verify

    def selected(self) -> list[str]:
        names = [
            ("clean", self.clean),
            ("import", self.import_),
            ("xrefs", self.xrefs),
            ("overlap", self.overlap),
            ("verify", self.verify),
        ]
        return [name for name, enabled in names if enabled]


@dataclass
class RecordOutcome:
    """What happened to one record."""
    lrg_id: str
    completed: list[str] = field(default_factory=list)
    cleaned: Optional[dict[str, int]] = None
    imported: Optional[ImportResult] = None
    xrefs: Optional[XrefLinkResult] = None
    overlaps: Optional[list[OverlapAttribute]] = None
    verification: Optional[VerificationResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        if self.error is not None:
            return False
        return self.verification is None or self.verification.passed


@dataclass
class BatchReport:
    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def inconsistent(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.verification is not None and not o.verification.passed]

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)


class RecordSource:
    """Supplies parsed records from a local file or the LRG server."""

    def __init__(
        self,
        input_file: Optional[Path] = None,
        client: Optional[LRGRemoteClient] = None,
    ):
        self.input_file = Path(input_file) if input_file else None
        self.client = client
        self._local: Optional[LRGRecord] = None
        if self.input_file is not None:
            self._local = load_record(self.input_file)

    @property
    def local_id(self) -> Optional[str]:
        return self._local.lrg_id if self._local is not None else None

    def get(self, lrg_id: str) -> LRGRecord:
        if self._local is not None:
            if self._local.lrg_id != lrg_id:
                raise ConfigurationError(
                    f"LRG identifier in {self.input_file} is '{self._local.lrg_id}' "
                    f"but expected '{lrg_id}'"
                )
            return self._local
        if self.client is None:
            raise ConfigurationError("No input file or LRG server client to read the record from")
        logger.info("record_fetch", lrg_id=lrg_id)
        return load_record(self.client.fetch_record(lrg_id))


def run_batch(
    lrg_ids: list[str],
    actions: BatchActions,
    store: CoreStore,
    config: SyncConfig,
    source: Optional[RecordSource] = None,
    provenance: Optional[ProvenanceTracker] = None,
) -> BatchReport:
    """
    Process records sequentially in input order.

    Identifiers, the xrefs capability and the input file are checked before
    anything is written. Errors scoped to one record are recorded in its
    outcome and the batch moves on to the next identifier.

    Args:
        lrg_ids: Records to process
        actions: Actions to run (clean, import, xrefs, overlap, verify)
        store: Core database
        config: Run configuration
        source: Where records are read from (required for import, xrefs and verify)
        provenance: Optional tracker receiving one step per action

    Returns:
        BatchReport with one outcome per identifier

    Raises:
        ConfigurationError: If an identifier is malformed or the input file
            does not describe the requested record
        XrefsSupersededError: If xrefs are requested but disabled
    """
    for lrg_id in lrg_ids:
        validate_lrg_id(lrg_id)

    linker = XrefLinker(store, enabled=config.lrg.xrefs_enabled)
    if actions.xrefs:
        linker.ensure_enabled()

    if actions.needs_record:
        if source is None:
            raise ConfigurationError("A record source is required for import, xrefs and verify")
        if source.local_id is not None:
            for lrg_id in lrg_ids:
                source.get(lrg_id)

    engine = SyncEngine.from_config(store, config, provenance=provenance)
    verifier = ConsistencyVerifier(
        store,
        coord_system_name=config.lrg.coord_system_name,
        analysis_logic_name=config.lrg.analysis_logic_name,
    )

    report = BatchReport()
    logger.info("batch_start", records=len(lrg_ids), actions=actions.selected())
    for lrg_id in lrg_ids:
        outcome = RecordOutcome(lrg_id=lrg_id)
        report.outcomes.append(outcome)
        try:
            if actions.clean:
                outcome.cleaned = engine.clean(lrg_id)
                outcome.completed.append("clean")

            record = source.get(lrg_id) if actions.needs_record else None

            if actions.import_:
                outcome.imported = engine.import_record(record)
                outcome.completed.append("import")

            if actions.xrefs:
                outcome.xrefs = linker.link(record)
                outcome.completed.append("xrefs")

            if actions.overlap:
                outcome.overlaps = annotate_overlaps(
                    store, lrg_id, config.lrg.coord_system_name, config.lrg.biotype
                )
                outcome.completed.append("overlap")
                if provenance is not None:
                    provenance.record_step("overlap", {
                        "lrg_id": lrg_id,
                        "genes": len(outcome.overlaps),
                        "partial": sum(1 for a in outcome.overlaps if a.is_partial),
                    })

            if actions.verify:
                outcome.verification = verifier.verify(record)
                outcome.completed.append("verify")
                if provenance is not None:
                    provenance.record_step("verify", {
                        "lrg_id": lrg_id,
                        "passed": outcome.verification.passed,
                        "messages": outcome.verification.messages,
                    })
        except LRGSyncError as e:
            outcome.error = str(e)
            logger.warning("record_failed", lrg_id=lrg_id, error=str(e), completed=outcome.completed)
            if provenance is not None:
                provenance.record_step("failure", {"lrg_id": lrg_id, "error": str(e)})

    logger.info(
        "batch_complete",
        records=len(report.outcomes),
        failures=len(report.failures),
        inconsistent=len(report.inconsistent),
    )
    return report
