"""Pydantic schemas for dxt data files.

This module defines the data models for:
- manifest.json (extension manifest inside a .dxt archive)
- the resolved launch configuration handed to the tool runtime
- config.yaml (installer settings)
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Launch Configuration Models
# =============================================================================


def stringify_env(value: Any) -> Any:
    """Render scalar env values as text; other shapes are left for validation."""
    if not isinstance(value, dict):
        return value
    rendered = {}
    for key, item in value.items():
        if isinstance(item, bool):
            item = "true" if item else "false"
        elif isinstance(item, (int, float)):
            item = str(item)
        rendered[key] = item
    return rendered


class PlatformOverride(BaseModel):
    """Partial launch configuration for one host platform.

    ``command`` and ``args`` replace the base values; ``env`` is merged into
    the base environment key by key.
    """

    command: str | None = None
    args: list[str] | None = None
    env: dict[str, str] | None = None

    @field_validator("env", mode="before")
    @classmethod
    def stringify_env_values(cls, v: Any) -> Any:
        return stringify_env(v)


class LaunchConfig(BaseModel):
    """Platform-neutral launch configuration (``server.mcp_config``)."""

    command: str
    args: list[str]
    env: dict[str, str] | None = None
    platform_overrides: dict[str, PlatformOverride] = Field(default_factory=dict)

    @field_validator("env", mode="before")
    @classmethod
    def stringify_env_values(cls, v: Any) -> Any:
        return stringify_env(v)


class ResolvedLaunchConfig(BaseModel):
    """Launch configuration after overrides, substitution and validation."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None


# =============================================================================
# Manifest Metadata Models
# =============================================================================


class AuthorInfo(BaseModel):
    """Extension author."""

    name: str | None = None
    email: str | None = None
    url: str | None = None


class RepositoryInfo(BaseModel):
    """Source repository of the extension."""

    type: str | None = None
    url: str | None = None


class ToolDeclaration(BaseModel):
    """A tool the extension's server declares up front."""

    name: str
    description: str = ""


class Compatibility(BaseModel):
    """Host and runtime constraints declared by the extension."""

    claude_desktop: str | None = None
    platforms: list[str] | None = None
    runtimes: dict[str, str] | None = None


class ServerConfig(BaseModel):
    """Server section of the manifest."""

    type: str = ""
    entry_point: str = ""
    mcp_config: LaunchConfig


# =============================================================================
# Extension Manifest (manifest.json)
# =============================================================================


class ExtensionManifest(BaseModel):
    """Extension manifest (manifest.json) schema.

    Unknown keys are ignored so newer manifests still load.
    """

    model_config = ConfigDict(extra="ignore")

    dxt_version: str
    name: str
    version: str
    server: ServerConfig

    display_name: str | None = None
    description: str | None = None
    long_description: str | None = None
    author: AuthorInfo | None = None
    repository: RepositoryInfo | None = None
    homepage: str | None = None
    documentation: str | None = None
    support: str | None = None
    icon: str | None = None
    tools: list[ToolDeclaration] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    license: str | None = None
    user_config: dict[str, Any] = Field(default_factory=dict)
    compatibility: Compatibility | None = None

    @property
    def launch_config(self) -> LaunchConfig:
        """Shortcut for ``server.mcp_config``."""
        return self.server.mcp_config


# =============================================================================
# Installer Settings (config.yaml)
# =============================================================================


class InstallerSettings(BaseModel):
    """Filesystem roots and limits for an installer instance."""

    extensions_dir: Path
    temp_root: Path
    max_extracted_bytes: int = Field(default=512 * 1024 * 1024, gt=0)

    @property
    def uploads_dir(self) -> Path:
        """Directory holding scratch extraction directories."""
        return self.temp_root / "dxt_uploads"
