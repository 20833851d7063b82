"""Configuration loading with YAML parsing and validation."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import SyncConfig


def load_config(config_path: Path | str) -> SyncConfig:
    """
    Load and validate lrg-sync configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated SyncConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        yaml_content = f.read()

    return pydantic_yaml.parse_yaml_raw_as(SyncConfig, yaml_content)


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> SyncConfig:
    """
    Load config from YAML and apply dictionary overrides.

    Used for CLI flags that override config file values, e.g.
    ``{"database.path": "/data/core.duckdb"}``. ``None`` values are skipped
    so unset flags leave the file's value alone.

    Args:
        config_path: Path to YAML configuration file
        overrides: Dictionary of values to override (dotted keys for nesting)

    Returns:
        Validated SyncConfig with overrides applied

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If final config is invalid
    """
    config = load_config(config_path)
    config_dict = config.model_dump()

    for key, value in overrides.items():
        if value is None:
            continue
        if "." in key:
            parts = key.split(".")
            target = config_dict
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
        else:
            config_dict[key] = value

    return SyncConfig.model_validate(config_dict)
