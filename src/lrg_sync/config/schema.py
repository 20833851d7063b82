"""Pydantic models for lrg-sync configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

LRG_PUBLIC_URL = "https://ftp.ebi.ac.uk/pub/databases/lrgex/"
LRG_PENDING_URL = "https://ftp.ebi.ac.uk/pub/databases/lrgex/pending/"

LRG_ANALYSIS_WEB_DATA = (
    "{'colour_key' => 'rna_[status]','caption' => 'LRG gene',"
    "'label_key' => '[text_label] [display_label]','name' => 'LRG Genes',"
    "'default' => {'MultiTop' => 'gene_label','contigviewbottom' => 'transcript_label',"
    "'MultiBottom' => 'collapsed_label','contigviewtop' => 'gene_label',"
    "'alignsliceviewbottom' => 'as_collapsed_label','cytoview' => 'gene_label'},"
    "'multi_caption' => 'LRG genes','key' => 'ensembl'}"
)


class DatabaseConfig(BaseModel):
    """Target core database."""

    path: Path = Field(
        ...,
        description="Path to the DuckDB file holding the core annotation database",
    )
    transactional: bool = Field(
        default=True,
        description="Wrap each record import in a transaction (False = legacy, clean repairs partial imports)",
    )


class RemoteConfig(BaseModel):
    """Where LRG records are published."""

    listing_url: str = Field(
        default=LRG_PUBLIC_URL,
        description="Directory listing of published LRG XML files",
    )
    base_urls: list[str] = Field(
        default_factory=lambda: [LRG_PUBLIC_URL, LRG_PENDING_URL],
        min_length=1,
        description="Directories searched in order for <LRG id>.xml",
    )

    @field_validator("listing_url", "base_urls")
    @classmethod
    def ensure_trailing_slash(cls, v):
        """Normalise directory URLs so file names can be appended."""
        if isinstance(v, list):
            return [u if u.endswith("/") else u + "/" for u in v]
        return v if v.endswith("/") else v + "/"


class APIConfig(BaseModel):
    """Configuration for the remote client."""

    rate_limit_per_second: int = Field(
        default=5,
        ge=1,
        description="Maximum API requests per second",
    )
    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum retry attempts for failed requests",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="Cache time-to-live in seconds (0 = infinite)",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Request timeout in seconds",
    )


class LRGConfig(BaseModel):
    """Names the import writes into the core database."""

    coord_system_name: str = Field(default="lrg")
    biotype: str = Field(default="LRG_gene")
    analysis_logic_name: str = Field(default="LRG_import")
    analysis_description: str = Field(default="Data from LRG database")
    analysis_display_label: str = Field(default="LRG Genes")
    analysis_web_data: str = Field(default=LRG_ANALYSIS_WEB_DATA)
    xrefs_enabled: bool = Field(
        default=False,
        description="Allow the historical xref linking path (superseded by the xref pipeline)",
    )


class SyncConfig(BaseModel):
    """Main lrg-sync configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for downloaded LRG records and provenance sidecars",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory for HTTP response caching",
    )
    database: DatabaseConfig = Field(
        ...,
        description="Core database target",
    )
    remote: RemoteConfig = Field(
        default_factory=RemoteConfig,
        description="LRG server locations",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="Remote client configuration",
    )
    lrg: LRGConfig = Field(
        default_factory=LRGConfig,
        description="Coordinate system, biotype and analysis names",
    )

    @field_validator("data_dir", "cache_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking which settings a batch ran with.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
