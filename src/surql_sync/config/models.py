"""Pydantic models for connection profiles and sync settings."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ConnectionProfile(BaseModel):
    """Database connection profile from surql-sync.toml."""

    url: str
    namespace: str
    database: str
    username: str | None = None
    password: str | None = None
    description: str = ""


class CodegenSettings(BaseModel):
    """Where model modules live."""

    models_dir: str = "models"


class SyncConfig(BaseModel):
    """Complete configuration from surql-sync.toml."""

    profiles: dict[str, ConnectionProfile] = Field(default_factory=dict)
    default_profile: str | None = None
    codegen: CodegenSettings = Field(default_factory=CodegenSettings)
