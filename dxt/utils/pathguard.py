"""Validation primitives that keep untrusted values inside their sandbox.

Traversal checks work on path segments: a value is split on both ``/`` and
``\\`` and rejected when any segment is exactly ``..``. Containment checks
work on fully resolved paths, never on the input string.
"""

import re
from collections.abc import Sequence
from pathlib import Path

from dxt.errors import (
    EmptyCommand,
    InvalidArgumentType,
    InvalidManifestField,
    NullByteInjection,
    PathTraversal,
)

PARENT_SEGMENT = ".."

_SEPARATORS = re.compile(r"[/\\]")
_RESERVED_NAME_CHARS = set('<>:"|?*')


def split_segments(value: str) -> list[str]:
    """Split a path-like string on both POSIX and Windows separators.

    Args:
        value: String to split

    Returns:
        List of segments (empty segments are kept)
    """
    return _SEPARATORS.split(value)


def has_separator(value: str) -> bool:
    """Check whether a string contains a path separator."""
    return _SEPARATORS.search(value) is not None


def has_parent_segment(value: str) -> bool:
    """Check whether any segment of a path-like string is ``..``."""
    return PARENT_SEGMENT in split_segments(value)


def confine(base_dir: Path | str, target_path: Path | str) -> Path:
    """Ensure a target path is a direct child of a base directory.

    Both paths are resolved first, so ``..`` segments, symlinks and redundant
    separators are collapsed before the check.

    Args:
        base_dir: Directory the target must live in
        target_path: Path to validate

    Returns:
        The resolved target path

    Raises:
        PathTraversal: If the target is not exactly one level below the base
    """
    if "\0" in str(base_dir) or "\0" in str(target_path):
        raise PathTraversal("Path traversal detected: null byte in path")

    resolved_base = Path(base_dir).resolve()
    resolved_target = Path(target_path).resolve()

    if resolved_target == resolved_base or resolved_target.parent != resolved_base:
        raise PathTraversal(
            "Path traversal detected: target path must be direct child of base directory"
        )
    return resolved_target


def validate_command(command: str) -> str:
    """Validate a launch command.

    Accepted forms are bare executable names (looked up on PATH at run time),
    absolute paths and paths starting with ``./`` or ``.\\``.

    Args:
        command: The command to validate

    Returns:
        The trimmed command

    Raises:
        InvalidArgumentType: If the command is not a string
        EmptyCommand: If the command is empty or whitespace
        NullByteInjection: If the command contains a null byte
        PathTraversal: If any path segment is ``..``
    """
    if command is None:
        raise EmptyCommand("Invalid command: command must be a non-empty string")
    if not isinstance(command, str):
        raise InvalidArgumentType("Invalid command: command must be a string")

    trimmed = command.strip()
    if not trimmed:
        raise EmptyCommand("Invalid command: command cannot be empty")
    if "\0" in trimmed:
        raise NullByteInjection("Invalid command: null byte detected")
    if has_parent_segment(trimmed):
        raise PathTraversal(f'Invalid command: path traversal detected in "{trimmed}"')

    return trimmed


def validate_args(args: Sequence[str]) -> list[str]:
    """Validate launch arguments.

    Only arguments containing a path separator are checked for traversal,
    so option values such as ``..version`` pass through.

    Args:
        args: The arguments to validate

    Returns:
        A new list with the validated arguments

    Raises:
        InvalidArgumentType: If args is not a list/tuple or holds a non-string
        NullByteInjection: If an argument contains a null byte
        PathTraversal: If a path-shaped argument has a ``..`` segment
    """
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise InvalidArgumentType("Invalid args: must be an array")

    validated: list[str] = []
    for index, arg in enumerate(args):
        if not isinstance(arg, str):
            raise InvalidArgumentType(
                f"Invalid args: argument at index {index} must be a string", index
            )
        if "\0" in arg:
            raise NullByteInjection(
                f"Invalid args: null byte detected in argument at index {index}"
            )
        if has_separator(arg) and has_parent_segment(arg):
            raise PathTraversal(
                f"Invalid args: path traversal detected in argument at index {index}"
            )
        validated.append(arg)
    return validated


def validate_extension_name(name: str) -> str:
    """Validate an extension name before it becomes a directory name.

    Args:
        name: The manifest ``name`` value

    Returns:
        The name, unchanged

    Raises:
        InvalidManifestField: If the name cannot be used as a single path segment
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidManifestField("name", "must be a non-empty string")
    if "\0" in name:
        raise InvalidManifestField("name", "must not contain null bytes")
    if has_separator(name):
        raise InvalidManifestField("name", "must not contain path separators")
    if set(name) == {"."}:
        raise InvalidManifestField("name", "must not consist only of dots")
    if any(ch in _RESERVED_NAME_CHARS or ord(ch) < 32 for ch in name):
        raise InvalidManifestField("name", "contains characters not allowed in file names")
    return name
