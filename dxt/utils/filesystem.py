"""Filesystem utilities for dxt."""

import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath, PureWindowsPath

from dxt.errors import ExtractionFailed, PathTraversal
from dxt.utils.pathguard import has_parent_segment

logger = logging.getLogger("dxt.filesystem")


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def copy_directory(src: Path, dest: Path) -> Path:
    """Copy a directory recursively.

    Args:
        src: Source directory path
        dest: Destination directory path

    Returns:
        Path to the copied directory
    """
    if dest.exists():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(src, dest)
    return dest


def move_directory(src: Path, dest: Path) -> Path:
    """Move a directory, falling back to copy + delete across filesystems.

    Args:
        src: Source directory path
        dest: Destination directory path (must not exist)

    Returns:
        Path to the moved directory
    """
    try:
        src.rename(dest)
    except OSError:
        logger.debug("Rename of %s failed, using copy + remove", src)
        copy_directory(src, dest)
        shutil.rmtree(src)
    return dest


def remove_directory(path: Path) -> bool:
    """Remove a directory and its contents.

    Args:
        path: Directory path to remove

    Returns:
        True if the directory was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def remove_file(path: Path) -> bool:
    """Remove a file.

    Args:
        path: File path to remove

    Returns:
        True if the file was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    path.unlink()
    return True


def is_unsafe_member(name: str) -> bool:
    """Check whether a zip member name could land outside the target directory.

    Args:
        name: Member name as stored in the archive

    Returns:
        True for absolute names, drive-qualified names and names with ``..`` segments
    """
    if PurePosixPath(name).is_absolute() or name.startswith("\\"):
        return True
    if PureWindowsPath(name).drive:
        return True
    return has_parent_segment(name)


def extract_zip(zip_path: Path, dest_dir: Path, max_bytes: int | None = None) -> Path:
    """Extract a zip archive into a destination directory.

    Every member is checked before anything is written: its name must not be
    absolute or contain ``..`` and its resolved destination must stay inside
    ``dest_dir``. zipfile's own name sanitizing still applies on top.

    Args:
        zip_path: Path to the archive
        dest_dir: Destination directory (created if missing)
        max_bytes: Upper bound on the total uncompressed size, or None

    Returns:
        The destination directory

    Raises:
        PathTraversal: If a member would escape the destination
        ExtractionFailed: If the archive exceeds max_bytes
        zipfile.BadZipFile: If the file is not a valid zip archive
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    resolved_dest = dest_dir.resolve()

    with zipfile.ZipFile(zip_path) as archive:
        members = archive.infolist()

        total = sum(member.file_size for member in members)
        if max_bytes is not None and total > max_bytes:
            raise ExtractionFailed(
                f"Archive too large: {total} bytes uncompressed (limit {max_bytes})",
                zip_path,
            )

        for member in members:
            target = (resolved_dest / member.filename).resolve()
            if is_unsafe_member(member.filename) or not target.is_relative_to(resolved_dest):
                raise PathTraversal(f"Unsafe path in archive: {member.filename}")

        archive.extractall(dest_dir, members=members)

    return dest_dir


def read_text_file(path: Path) -> str:
    """Read a text file.

    Args:
        path: Path to the file

    Returns:
        File contents as a string
    """
    return path.read_text(encoding="utf-8")
