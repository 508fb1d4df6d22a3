"""dxt - safe installer for desktop extension (.dxt) packages."""

from dxt.config.schemas import ExtensionManifest, InstallerSettings, ResolvedLaunchConfig
from dxt.core.installer import CleanupResult, ExtensionInstaller, InstalledExtension, InstallResult
from dxt.errors import DxtError

__version__ = "0.1.0"

__all__ = [
    "CleanupResult",
    "DxtError",
    "ExtensionInstaller",
    "ExtensionManifest",
    "InstallResult",
    "InstalledExtension",
    "InstallerSettings",
    "ResolvedLaunchConfig",
    "__version__",
]
