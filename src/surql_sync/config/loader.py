"""Configuration loading for surql-sync."""

import tomllib
from pathlib import Path

from surql_sync.config.models import CodegenSettings, ConnectionProfile, SyncConfig

DEFAULT_CONFIG_NAME = "surql-sync.toml"


def load_sync_config(config_path: Path | None = None) -> SyncConfig:
    """Load profiles and codegen settings from a TOML file.

    Args:
        config_path: Path to the config file (default: ./surql-sync.toml)

    Returns:
        SyncConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Sync config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_NAME} with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = ConnectionProfile(**profile_data)

    return SyncConfig(
        profiles=profiles,
        default_profile=data.get("default_profile"),
        codegen=CodegenSettings(**data.get("codegen", {})),
    )
