"""Tests for profile resolution and adapter construction."""

import textwrap

import pytest

from surql_sync.adapters.http import AsyncSurrealHttpAdapter
from surql_sync.config.models import ConnectionProfile, SyncConfig
from surql_sync.factory import (
    ProfileNotFoundError,
    create_adapter,
    get_active_profile_name,
    get_adapter,
    resolve_password,
)

LOCAL = ConnectionProfile(url="http://localhost:8000", namespace="app", database="dev", username="root", password="root")
PROD = ConnectionProfile(url="wss://db.example.com/rpc", namespace="app", database="main")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep profile and password env vars out of every test."""
    for name in ("SURQL_PROFILE", "SURQL_PASSWORD", "APP_SURQL_PROFILE", "APP_SURQL_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return SyncConfig(profiles={"local": LOCAL, "prod": PROD}, default_profile="local")


# ============================================================================
# Test: Profile Resolution
# ============================================================================


class TestGetActiveProfileName:
    """Verify explicit > env > default_profile precedence."""

    def test_default_profile(self, config):
        """Falls back to default_profile."""
        assert get_active_profile_name(config) == "local"

    def test_env_overrides_default(self, config, monkeypatch):
        """SURQL_PROFILE wins over the config default."""
        monkeypatch.setenv("SURQL_PROFILE", "prod")
        assert get_active_profile_name(config) == "prod"

    def test_explicit_overrides_env(self, config, monkeypatch):
        """An explicit name wins over everything."""
        monkeypatch.setenv("SURQL_PROFILE", "prod")
        assert get_active_profile_name(config, "local") == "local"

    def test_env_prefix(self, config, monkeypatch):
        """The prefix is applied to the env var name."""
        monkeypatch.setenv("SURQL_PROFILE", "local")
        monkeypatch.setenv("APP_SURQL_PROFILE", "prod")
        assert get_active_profile_name(config, env_prefix="APP_") == "prod"

    def test_nothing_selected(self):
        """No explicit name, env var or default raises."""
        config = SyncConfig(profiles={"local": LOCAL})
        with pytest.raises(ProfileNotFoundError, match="No connection profile selected"):
            get_active_profile_name(config)

    def test_unknown_profile(self, config):
        """Unknown names list the available profiles."""
        with pytest.raises(ProfileNotFoundError, match="Profile 'staging' not found") as exc_info:
            get_active_profile_name(config, "staging")
        assert "local, prod" in str(exc_info.value)


class TestResolvePassword:
    """Verify env var password override."""

    def test_profile_password(self):
        """Falls back to the profile's password."""
        assert resolve_password(LOCAL) == "root"
        assert resolve_password(PROD) is None

    def test_env_password(self, monkeypatch):
        """SURQL_PASSWORD wins over the profile."""
        monkeypatch.setenv("APP_SURQL_PASSWORD", "secret")
        assert resolve_password(LOCAL, "APP_") == "secret"
        assert resolve_password(LOCAL) == "root"


# ============================================================================
# Test: Adapter Factory
# ============================================================================


class TestCreateAdapter:
    """Verify adapters are built from profiles."""

    @pytest.mark.asyncio
    async def test_adapter_settings(self):
        """URL, namespace and database reach the HTTP client."""
        adapter = create_adapter(PROD)
        try:
            assert isinstance(adapter, AsyncSurrealHttpAdapter)
            assert adapter._client.base_url.scheme == "https"
            assert adapter._client.base_url.host == "db.example.com"
            assert adapter._client.headers["Surreal-NS"] == "app"
            assert adapter._client.headers["Surreal-DB"] == "main"
        finally:
            await adapter.close()

    @pytest.mark.asyncio
    async def test_get_adapter_from_file(self, tmp_path):
        """get_adapter loads the config and returns the profile name."""
        path = tmp_path / "surql-sync.toml"
        path.write_text(
            textwrap.dedent(
                """\
                default_profile = "local"

                [profiles.local]
                url = "http://localhost:8000"
                namespace = "app"
                database = "dev"
                """
            )
        )
        name, adapter = get_adapter(config_path=path)
        try:
            assert name == "local"
            assert isinstance(adapter, AsyncSurrealHttpAdapter)
        finally:
            await adapter.close()

    def test_get_adapter_missing_config(self, tmp_path):
        """A missing config file is not swallowed."""
        with pytest.raises(FileNotFoundError):
            get_adapter(config_path=tmp_path / "missing.toml")
