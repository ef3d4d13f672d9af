"""Configuration package for surql-sync.

Usage:
    from surql_sync.config import load_sync_config, SyncConfig
"""

from surql_sync.config.loader import load_sync_config
from surql_sync.config.models import CodegenSettings, ConnectionProfile, SyncConfig

__all__ = [
    "load_sync_config",
    "CodegenSettings",
    "ConnectionProfile",
    "SyncConfig",
]
