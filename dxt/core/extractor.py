"""Archive extraction for extension packages.

A .dxt package is a zip archive with manifest.json at its root.
"""

import logging
import zipfile
import zlib
from pathlib import Path

from dxt.errors import ArchiveNotFound, DxtError, ExtractionFailed, ManifestParseError
from dxt.utils.filesystem import extract_zip

logger = logging.getLogger("dxt.extractor")

MANIFEST_FILE = "manifest.json"


def extract_archive(archive_path: Path, dest_dir: Path, max_bytes: int | None = None) -> Path:
    """Extract an extension archive into a directory.

    Args:
        archive_path: Path to the .dxt file
        dest_dir: Destination directory (created if missing)
        max_bytes: Upper bound on the total uncompressed size, or None

    Returns:
        The destination directory

    Raises:
        ArchiveNotFound: If the archive does not exist
        ExtractionFailed: If the archive is corrupt, not a zip file or too large
        PathTraversal: If a member would be written outside dest_dir
    """
    if not archive_path.is_file():
        raise ArchiveNotFound("DXT file not found", archive_path)

    logger.debug("Extracting DXT file: %s", archive_path)
    try:
        extract_zip(archive_path, dest_dir, max_bytes=max_bytes)
    except DxtError:
        raise
    except (
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
        OSError,
        NotImplementedError,  # unsupported compression method
        RuntimeError,  # encrypted member
        UnicodeDecodeError,  # member name flagged UTF-8 but not decodable
    ) as e:
        raise ExtractionFailed(f"Failed to extract DXT file: {e}", archive_path) from e

    logger.debug("Extracted %s to %s", archive_path.name, dest_dir)
    return dest_dir


def locate_manifest(extract_dir: Path) -> Path:
    """Find manifest.json at the root of an extracted package.

    Args:
        extract_dir: Directory the package was extracted to

    Returns:
        Path to manifest.json

    Raises:
        ManifestParseError: If there is no manifest.json
    """
    manifest_path = extract_dir / MANIFEST_FILE
    if not manifest_path.is_file():
        raise ManifestParseError(f"{MANIFEST_FILE} not found in DXT file")
    return manifest_path
