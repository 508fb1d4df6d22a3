"""Platform and OS detection utilities."""

import os
import platform
import sys
from pathlib import Path
from typing import Literal

PlatformOS = Literal["windows", "linux", "macos"]


def get_os() -> PlatformOS:
    """Get the current operating system.

    Returns:
        One of: "windows", "linux", "macos"
    """
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    else:
        return "linux"


def get_platform_key() -> str:
    """Get the key used for platform overrides in extension manifests.

    macOS and Windows map to "darwin" and "win32"; any other host uses its own
    lowercased system name (for example "linux" or "freebsd").
    """
    os_name = get_os()
    if os_name == "macos":
        return "darwin"
    elif os_name == "windows":
        return "win32"
    return platform.system().lower() or sys.platform


def get_home_directory() -> str:
    """Get the user's home directory.

    Returns:
        Path to the home directory
    """
    return os.path.expanduser("~")


def get_user_directory(name: str) -> str:
    """Get a well-known folder inside the home directory.

    Args:
        name: Folder name (e.g., "Desktop", "Documents", "Downloads")

    Returns:
        Path to the folder (it may not exist)
    """
    return os.path.join(get_home_directory(), name)


def get_path_separator() -> str:
    """Get the host path separator."""
    return os.sep


def get_default_data_directory() -> Path:
    """Get the directory holding dxt's persistent data (~/.dxt)."""
    return Path(get_home_directory()) / ".dxt"


def get_env(name: str, default: str | None = None) -> str | None:
    """Get an environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(name, default)
