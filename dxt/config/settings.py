"""Installer settings loading.

Settings come from, in increasing priority: built-in defaults, a YAML config
file, and the ``DXT_EXTENSIONS_DIR`` / ``DXT_TEMP_ROOT`` environment variables.
"""

import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dxt.config.parser import load_yaml, save_yaml
from dxt.config.schemas import InstallerSettings
from dxt.errors import ConfigError
from dxt.utils.platform import get_default_data_directory, get_env

CONFIG_FILE = "config.yaml"
ENV_EXTENSIONS_DIR = "DXT_EXTENSIONS_DIR"
ENV_TEMP_ROOT = "DXT_TEMP_ROOT"


def default_config_path() -> Path:
    """Get the path of the user-level config file (~/.dxt/config.yaml)."""
    return get_default_data_directory() / CONFIG_FILE


def default_settings_data() -> dict[str, Any]:
    """Get the built-in default settings as plain data."""
    return {
        "extensions_dir": get_default_data_directory() / "mcp",
        "temp_root": Path(tempfile.gettempdir()),
    }


def load_settings(config_path: Path | None = None) -> InstallerSettings:
    """Load installer settings.

    Args:
        config_path: Explicit YAML config file, or None to use
            ~/.dxt/config.yaml when it exists

    Returns:
        Parsed InstallerSettings

    Raises:
        ConfigError: If the config file is missing, unreadable or invalid
    """
    data = default_settings_data()

    if config_path is not None:
        data.update(load_yaml(config_path))
    else:
        config_path = default_config_path()
        if config_path.exists():
            data.update(load_yaml(config_path))

    extensions_dir = get_env(ENV_EXTENSIONS_DIR)
    if extensions_dir:
        data["extensions_dir"] = extensions_dir
    temp_root = get_env(ENV_TEMP_ROOT)
    if temp_root:
        data["temp_root"] = temp_root

    try:
        settings = InstallerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer config: {e}", config_path) from e

    return settings.model_copy(
        update={
            "extensions_dir": settings.extensions_dir.expanduser(),
            "temp_root": settings.temp_root.expanduser(),
        }
    )


def save_settings(config_path: Path, settings: InstallerSettings) -> None:
    """Write installer settings to a YAML config file.

    Args:
        config_path: Path to write to
        settings: Settings to save
    """
    save_yaml(config_path, settings.model_dump(mode="json"))
