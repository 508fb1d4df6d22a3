"""Exception hierarchy for the dxt installer.

Every failure raised by this package derives from :class:`DxtError`, so callers
can catch a single type. Validation errors carry the offending field name or
argument index so the message can be shown to a user as-is.
"""

from pathlib import Path


class DxtError(Exception):
    """Base class for all dxt errors."""


# =============================================================================
# Archive errors
# =============================================================================


class ArchiveError(DxtError):
    """Error reading or unpacking an extension archive."""

    def __init__(self, message: str, archive_path: Path | None = None):
        self.archive_path = archive_path
        super().__init__(message)


class ArchiveNotFound(ArchiveError):
    """The archive file does not exist."""


class ExtractionFailed(ArchiveError):
    """The archive could not be decompressed."""


# =============================================================================
# Manifest errors
# =============================================================================


class ManifestError(DxtError):
    """Error loading or validating manifest.json."""


class ManifestParseError(ManifestError):
    """manifest.json is missing or is not a JSON object."""


class ManifestMissingField(ManifestError):
    """A required manifest field is absent or has the wrong shape."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Invalid manifest: missing {field}")


class InvalidManifestField(ManifestError):
    """A manifest field is present but holds an unusable value."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid manifest: {field} {reason}")


# =============================================================================
# Unsafe input errors
# =============================================================================


class UnsafeInputError(DxtError, ValueError):
    """Input rejected because it could escape its intended location."""


class PathTraversal(UnsafeInputError):
    """A path or path-shaped value escapes its permitted directory."""


class NullByteInjection(UnsafeInputError):
    """A value contains an embedded null character."""


class EmptyCommand(UnsafeInputError):
    """The launch command is empty or whitespace."""


class InvalidArgumentType(UnsafeInputError):
    """Launch arguments are not a list of strings."""

    def __init__(self, message: str, index: int | None = None):
        self.index = index
        super().__init__(message)


# =============================================================================
# Environment errors
# =============================================================================


class FilesystemError(DxtError):
    """An OS-level failure while moving, copying or deleting files."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class ConfigError(DxtError):
    """Error loading or parsing installer configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)
