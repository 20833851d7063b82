from .loader import load_config, load_config_with_overrides
from .schema import SyncConfig, DatabaseConfig, RemoteConfig, APIConfig, LRGConfig

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "SyncConfig",
    "DatabaseConfig",
    "RemoteConfig",
    "APIConfig",
    "LRGConfig",
]
