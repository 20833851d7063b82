"""Provenance tracking for synchronization runs."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

FAILURE_STEP = "failure"


class ProvenanceTracker:
    """
    Tracks what a batch of LRG actions did to a core database.

    Each action taken on a record is one step carrying the record's
    identifier in its details. The sidecar written at the end lists the
    steps together with the tool version, config hash, target database
    and LRG server locations, plus which records were touched and which
    failed.
    """

    def __init__(self, tool_version: str, config: "SyncConfig"):
        self.tool_version = tool_version
        self.config_hash = config.config_hash()
        self.database = str(config.database.path)
        self.remote_sources = list(config.remote.base_urls)
        self.processing_steps: list[dict] = []
        self.created_at = datetime.now(timezone.utc)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """
        Append a step.

        Args:
            step_name: Action name ("clean", "import", "overlap", "verify",
                "failure", ...)
            details: Step details; ``lrg_id`` ties the step to a record
        """
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def get_steps(self) -> list[dict]:
        return self.processing_steps

    def steps_for(self, lrg_id: str) -> list[dict]:
        return [
            s for s in self.processing_steps
            if s.get("details", {}).get("lrg_id") == lrg_id
        ]

    def records(self) -> list[str]:
        """Identifiers of every record a step was recorded for, in first-seen order."""
        seen: dict[str, None] = {}
        for step in self.processing_steps:
            lrg_id = step.get("details", {}).get("lrg_id")
            if lrg_id:
                seen.setdefault(lrg_id, None)
        return list(seen)

    def failed_records(self) -> list[str]:
        return [
            lrg_id for lrg_id in self.records()
            if any(s["step_name"] == FAILURE_STEP for s in self.steps_for(lrg_id))
        ]

    def create_metadata(self) -> dict:
        return {
            "tool_version": self.tool_version,
            "config_hash": self.config_hash,
            "database": self.database,
            "remote_sources": self.remote_sources,
            "created_at": self.created_at.isoformat(),
            "records": self.records(),
            "failed_records": self.failed_records(),
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write the metadata as JSON next to ``output_path``.

        The sidecar is ``output_path`` with its suffix replaced by
        ``.provenance.json``; parent directories are created.

        Returns:
            Path of the written sidecar
        """
        sidecar_path = Path(output_path).with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)

        with open(sidecar_path, "w") as f:
            json.dump(self.create_metadata(), f, indent=2, default=str)
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "SyncConfig",
        version: Optional[str] = None
    ) -> "ProvenanceTracker":
        """Create a tracker; ``version`` defaults to ``lrg_sync.__version__``."""
        if version is None:
            from lrg_sync import __version__
            version = __version__

        return cls(version, config)
