"""Consistency checks between a source record and its imported rows.

Every check runs and reports on its own; a failed check never stops the
remaining ones. Verification only reads from the database.
"""

from dataclasses import dataclass, field

import structlog

from lrg_sync.persistence.core_store import CoreStore
from lrg_sync.record.models import LRGRecord
from lrg_sync.sync.annotation import transcript_stable_id
from lrg_sync.sync.sequence import (
    fetch_region_sequence,
    spliced_sequence,
    translation_sequence,
)

logger = structlog.get_logger()


@dataclass
class VerificationResult:
    """Result of verifying one record.

    Attributes:
        lrg_id: Verified record
        passed: Whether every check passed
        messages: One human-readable reason per failed check
        checks: Number of checks run
    """
    lrg_id: str
    passed: bool = True
    messages: list[str] = field(default_factory=list)
    checks: int = 0

    def fail(self, message: str) -> None:
        self.passed = False
        self.messages.append(message)
        logger.warning("verification_mismatch", lrg_id=self.lrg_id, reason=message)

    def summary(self) -> str:
        if self.passed:
            return f"{self.lrg_id} is consistent between XML file and core db"
        return f"{self.lrg_id} has inconsistencies between XML file and core db"


def _strip_stop(peptide: str) -> str:
    return peptide[:-1] if peptide.endswith("*") else peptide


class ConsistencyVerifier:
    """Compares a record's declared sequences with the database's view of them."""

    def __init__(
        self,
        store: CoreStore,
        coord_system_name: str = "lrg",
        analysis_logic_name: str = "LRG_import",
    ):
        self.store = store
        self.coord_system_name = coord_system_name
        self.analysis_logic_name = analysis_logic_name

    def _record_transcripts(self, seq_region_id: int, stable_id: str) -> list[int]:
        rows = self.store.fetch_all(
            """
            SELECT t.transcript_id
            FROM transcript t JOIN analysis a USING (analysis_id)
            WHERE t.seq_region_id = ? AND t.stable_id = ? AND a.logic_name = ?
            ORDER BY t.transcript_id
            """,
            [seq_region_id, stable_id, self.analysis_logic_name],
        )
        return [row[0] for row in rows]

    def verify(self, record: LRGRecord) -> VerificationResult:
        """
        Run every check for one record.

        Args:
            record: Source record

        Returns:
            VerificationResult; ``passed`` is True only if all checks passed
        """
        lrg_id = record.lrg_id
        result = VerificationResult(lrg_id=lrg_id)

        cs_id = self.store.get_coord_system_id(self.coord_system_name)
        region_id = self.store.get_seq_region_id(lrg_id, cs_id)
        result.checks += 1
        if region_id is None:
            result.fail(f"Could not fetch a region for {self.coord_system_name}:{lrg_id}")
            logger.info("verification_complete", lrg_id=lrg_id, passed=result.passed)
            return result

        if fetch_region_sequence(self.store, region_id) != record.sequence:
            result.fail(
                f"Genomic sequence from core db is different from genomic sequence "
                f"in XML file for {lrg_id}"
            )

        for transcript in record.transcripts():
            stable_id = transcript_stable_id(lrg_id, transcript.name)
            result.checks += 1
            matches = self._record_transcripts(region_id, stable_id)
            if len(matches) != 1:
                result.fail(
                    f"Could not unambiguously get the transcript corresponding to "
                    f"{lrg_id} {transcript.name} ({len(matches)} found)"
                )
                continue
            transcript_id = matches[0]

            result.checks += 1
            if spliced_sequence(self.store, transcript_id) != transcript.cdna:
                result.fail(
                    f"cDNA sequence from core db is different from cDNA sequence in "
                    f"XML file for {lrg_id} transcript {transcript.name}"
                )

            if not transcript.peptide and not transcript.is_coding:
                continue
            result.checks += 1
            peptide_db = translation_sequence(self.store, transcript_id)
            if peptide_db is None:
                result.fail(
                    f"No translation in core db for {lrg_id} transcript {transcript.name}"
                )
            elif _strip_stop(peptide_db) != _strip_stop(transcript.peptide):
                result.fail(
                    f"Peptide sequence from core db is different from peptide sequence in "
                    f"XML file for {lrg_id} transcript {transcript.name}"
                )

        logger.info(
            "verification_complete",
            lrg_id=lrg_id,
            passed=result.passed,
            checks=result.checks,
            failures=len(result.messages),
        )
        return result


def verify_record(store: CoreStore, record: LRGRecord, **kwargs) -> VerificationResult:
    """Convenience wrapper around :class:`ConsistencyVerifier`."""
    return ConsistencyVerifier(store, **kwargs).verify(record)
