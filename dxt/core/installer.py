"""Extension installation orchestrator.

This module contains the ExtensionInstaller which owns the extensions root:
it is the only component that creates or deletes entries under it.

An install moves through extracting, manifest_checking and placing to done;
a failure in any of those states ends in rolled_back.

The scratch extraction directory is removed on every exit path. Once placing
has started the previous install is already gone, so a crash mid-move can
leave the install directory missing or partially written.
"""

import logging
import threading
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from dxt.config.schemas import ExtensionManifest, InstallerSettings, ResolvedLaunchConfig
from dxt.core.extractor import extract_archive
from dxt.core.manifest import load_manifest
from dxt.core.resolver import resolve_launch_config
from dxt.errors import DxtError, FilesystemError, PathTraversal
from dxt.utils.filesystem import ensure_directory, move_directory, remove_directory, remove_file
from dxt.utils.pathguard import confine, has_parent_segment, has_separator

logger = logging.getLogger("dxt.installer")

InstallState = Literal["extracting", "manifest_checking", "placing", "done", "rolled_back"]

INSTALL_DIR_PREFIX = "server-"
SCRATCH_DIR_PREFIX = "dxt_"


@dataclass
class InstallResult:
    """Result of an extension installation."""

    success: bool
    state: InstallState
    manifest: ExtensionManifest | None = None
    install_dir: Path | None = None
    error: DxtError | None = None
    failed_state: InstallState | None = None

    @property
    def message(self) -> str:
        """Human-readable error message, empty on success."""
        return str(self.error) if self.error else ""


@dataclass
class CleanupResult:
    """Outcome of a best-effort cleanup. Logged, never raised."""

    path: Path
    removed: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _NameLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


@dataclass
class InstalledExtension:
    """An extension present under the extensions root."""

    name: str
    install_dir: Path
    manifest: ExtensionManifest

    @property
    def version(self) -> str:
        return self.manifest.version


class ExtensionInstaller:
    """Installs, resolves and removes extension packages.

    Installs of different extensions may run concurrently; the delete-then-move
    step for a given name is serialized with a per-name lock.
    """

    def __init__(self, settings: InstallerSettings):
        """Initialize the installer.

        Args:
            settings: Filesystem roots and limits
        """
        self.settings = settings
        self.extensions_dir = settings.extensions_dir
        self.uploads_dir = settings.uploads_dir
        self._name_locks: dict[str, _NameLock] = {}
        self._name_locks_guard = threading.Lock()
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for directory in (self.uploads_dir, self.extensions_dir):
            try:
                ensure_directory(directory)
            except OSError as e:
                logger.error("Failed to create directory %s: %s", directory, e)

    @contextmanager
    def _locked(self, name: str) -> Iterator[None]:
        """Hold the lock for an extension name.

        Entries are dropped once no thread holds or waits on them.
        """
        with self._name_locks_guard:
            entry = self._name_locks.setdefault(name, _NameLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._name_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._name_locks[name]

    def get_install_dir(self, name: str) -> Path:
        """Get the install directory for an extension name.

        Raises:
            PathTraversal: If the name is not a single path segment or would
                place the directory anywhere other than directly under the
                extensions root
        """
        if has_separator(name) or has_parent_segment(name):
            raise PathTraversal(f"Path traversal detected in extension name: {name!r}")
        return confine(self.extensions_dir, self.extensions_dir / f"{INSTALL_DIR_PREFIX}{name}")

    # -------------------------------------------------------------------------
    # Install
    # -------------------------------------------------------------------------

    def install(self, archive_path: Path | str) -> InstallResult:
        """Install an extension package.

        A previous install with the same name is replaced entirely.

        Args:
            archive_path: Path to the .dxt archive

        Returns:
            InstallResult; on failure ``error`` holds the cause and nothing
            under the extensions root has been touched unless the failure
            happened while placing
        """
        archive_path = Path(archive_path)
        scratch_dir = self.uploads_dir / f"{SCRATCH_DIR_PREFIX}{uuid.uuid4().hex}"
        state: InstallState = "extracting"

        try:
            extract_archive(archive_path, scratch_dir, self.settings.max_extracted_bytes)

            state = "manifest_checking"
            manifest = load_manifest(scratch_dir)

            state = "placing"
            install_dir = self._place(scratch_dir, manifest)
        except DxtError as e:
            return self._rolled_back(state, e)
        except OSError as e:
            return self._rolled_back(state, FilesystemError(f"Failed to install DXT file: {e}"))
        finally:
            if scratch_dir.exists():
                self._cleanup(scratch_dir)

        self._discard_uploaded_archive(archive_path)
        logger.info("Installed %s %s to %s", manifest.name, manifest.version, install_dir)
        return InstallResult(
            success=True,
            state="done",
            manifest=manifest,
            install_dir=install_dir,
        )

    def _place(self, scratch_dir: Path, manifest: ExtensionManifest) -> Path:
        install_dir = self.get_install_dir(manifest.name)

        with self._locked(manifest.name):
            try:
                if install_dir.exists():
                    logger.debug("Removing existing server directory: %s", install_dir)
                    remove_directory(install_dir)
                move_directory(scratch_dir, install_dir)
            except OSError as e:
                raise FilesystemError(
                    f"Failed to move extension into {install_dir}: {e}", install_dir
                ) from e

        logger.debug("DXT server extracted to: %s", install_dir)
        return install_dir

    def _rolled_back(self, state: InstallState, error: DxtError) -> InstallResult:
        logger.error("DXT install failed during %s: %s", state, error)
        return InstallResult(success=False, state="rolled_back", error=error, failed_state=state)

    def _discard_uploaded_archive(self, archive_path: Path) -> CleanupResult | None:
        resolved = archive_path.resolve()
        if not resolved.is_relative_to(self.uploads_dir.resolve()):
            return None
        try:
            return CleanupResult(resolved, remove_file(resolved))
        except OSError as e:
            logger.warning("Failed to remove uploaded archive %s: %s", resolved, e)
            return CleanupResult(resolved, False, str(e))

    def _cleanup(self, path: Path) -> CleanupResult:
        try:
            return CleanupResult(path, remove_directory(path))
        except OSError as e:
            logger.warning("Cleanup of %s failed: %s", path, e)
            return CleanupResult(path, False, str(e))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def resolve_config(
        self,
        install_dir: Path | str,
        user_config: Mapping[str, Any] | None = None,
    ) -> ResolvedLaunchConfig | None:
        """Resolve the launch configuration of an installed extension.

        Args:
            install_dir: Directory of the installed extension
            user_config: Values entered by the user for ``${user_config.*}``

        Returns:
            The resolved configuration, or None if the manifest cannot be
            loaded or the resolved command/args are unsafe
        """
        install_dir = Path(install_dir)
        try:
            manifest = load_manifest(install_dir)
            resolved = resolve_launch_config(manifest.launch_config, install_dir, user_config)
        except DxtError as e:
            logger.error("Failed to resolve MCP config for %s: %s", install_dir, e)
            return None

        logger.debug(
            "Resolved MCP config: command=%s args=%s env=%s",
            resolved.command,
            resolved.args,
            sorted(resolved.env) if resolved.env else None,
        )
        return resolved

    def resolve_installed(
        self,
        name: str,
        user_config: Mapping[str, Any] | None = None,
    ) -> ResolvedLaunchConfig | None:
        """Resolve the launch configuration of an installed extension by name."""
        try:
            install_dir = self.get_install_dir(name)
        except DxtError as e:
            logger.error("Invalid extension name %r: %s", name, e)
            return None
        return self.resolve_config(install_dir, user_config)

    def list_installed(self) -> list[InstalledExtension]:
        """List extensions installed under the extensions root.

        Directories without a loadable manifest are skipped.
        """
        if not self.extensions_dir.is_dir():
            return []

        installed: list[InstalledExtension] = []
        for entry in sorted(self.extensions_dir.iterdir()):
            if not entry.is_dir() or not entry.name.startswith(INSTALL_DIR_PREFIX):
                continue
            try:
                manifest = load_manifest(entry)
            except DxtError as e:
                logger.warning("Skipping %s: %s", entry, e)
                continue
            installed.append(InstalledExtension(manifest.name, entry, manifest))
        return installed

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    def uninstall(self, name: str) -> bool:
        """Remove an installed extension.

        Args:
            name: Extension name from its manifest

        Returns:
            True if a directory was removed, False if there was nothing to
            remove or removal failed
        """
        try:
            install_dir = self.get_install_dir(name)
            with self._locked(name):
                if not install_dir.exists():
                    logger.warning("Server directory not found: %s", install_dir)
                    return False
                logger.debug("Removing DXT server directory: %s", install_dir)
                remove_directory(install_dir)
        except (DxtError, OSError) as e:
            logger.error("Failed to uninstall %s: %s", name, e)
            return False

        logger.info("Uninstalled %s", name)
        return True

    def purge_temp(self) -> CleanupResult:
        """Delete the uploads directory and every scratch directory in it."""
        result = self._cleanup(self.uploads_dir)
        if result.removed:
            logger.debug("Removed upload directory %s", self.uploads_dir)
        return result
