"""Database client factory.

Resolves a connection profile from surql-sync.toml and builds the
matching adapter.

Profile resolution order:
1. Explicit profile name (``--profile``)
2. ``{prefix}SURQL_PROFILE`` env var (for CI/CD)
3. ``default_profile`` key in the config file
"""

import os
from pathlib import Path

from surql_sync.adapters.http import AsyncSurrealHttpAdapter
from surql_sync.config.loader import load_sync_config
from surql_sync.config.models import ConnectionProfile, SyncConfig


class ProfileNotFoundError(Exception):
    """Raised when no connection profile is configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(
    config: SyncConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> str:
    """Get the profile name to connect with.

    Args:
        config: Loaded configuration.
        profile_name: Explicit profile name; wins over everything else.
        env_prefix: Prefix for environment variable names (e.g. ``"APP_"``
            reads ``APP_SURQL_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If nothing selects a profile, or the selected
            profile is not defined in the config.
    """
    name = profile_name or os.environ.get(f"{env_prefix}SURQL_PROFILE") or config.default_profile
    if not name:
        raise ProfileNotFoundError(
            "No connection profile selected.\n"
            f"Pass --profile, set {env_prefix}SURQL_PROFILE, or set default_profile in the config.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in config.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )
    return name


def resolve_password(profile: ConnectionProfile, env_prefix: str = "") -> str | None:
    """Password from ``{prefix}SURQL_PASSWORD``, falling back to the profile."""
    return os.environ.get(f"{env_prefix}SURQL_PASSWORD") or profile.password


# ============================================================================
# Adapter Factory
# ============================================================================


def create_adapter(profile: ConnectionProfile, env_prefix: str = "") -> AsyncSurrealHttpAdapter:
    return AsyncSurrealHttpAdapter(
        profile.url,
        namespace=profile.namespace,
        database=profile.database,
        username=profile.username,
        password=resolve_password(profile, env_prefix),
    )


def get_adapter(
    profile_name: str | None = None,
    config_path: Path | None = None,
    env_prefix: str = "",
) -> tuple[str, AsyncSurrealHttpAdapter]:
    """Build an adapter for the active profile.

    Returns:
        Tuple of (profile_name, adapter). The caller owns the adapter and
        must ``await adapter.close()``.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ProfileNotFoundError: If no usable profile is configured.

    Example:
        name, adapter = get_adapter("local")
        try:
            result = await SchemaIntrospector(adapter).introspect()
        finally:
            await adapter.close()
    """
    config = load_sync_config(config_path)
    name = get_active_profile_name(config, profile_name, env_prefix)
    return name, create_adapter(config.profiles[name], env_prefix)
