"""Extension manifest loading and validation.

Required fields are checked explicitly, in a fixed order, before the data is
handed to pydantic, so a missing field is reported by its dotted path rather
than as a generic schema error.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dxt.config.schemas import ExtensionManifest
from dxt.core.extractor import MANIFEST_FILE, locate_manifest
from dxt.errors import InvalidManifestField, ManifestMissingField, ManifestParseError
from dxt.utils.filesystem import read_text_file
from dxt.utils.pathguard import validate_extension_name

logger = logging.getLogger("dxt.manifest")

REQUIRED_FIELDS = (
    ("dxt_version",),
    ("name",),
    ("version",),
    ("server",),
    ("server", "mcp_config"),
    ("server", "mcp_config", "command"),
)

# Descriptive fields; an unusable value is dropped instead of failing the install.
METADATA_FIELDS = frozenset(
    {
        "display_name",
        "description",
        "long_description",
        "author",
        "repository",
        "homepage",
        "documentation",
        "support",
        "icon",
        "tools",
        "keywords",
        "license",
        "user_config",
        "compatibility",
    }
)


def _lookup(data: dict[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def check_required_fields(data: dict[str, Any]) -> None:
    """Check that every required manifest field is present.

    Args:
        data: Parsed manifest JSON

    Raises:
        ManifestMissingField: For the first missing or empty required field
    """
    for path in REQUIRED_FIELDS:
        value = _lookup(data, path)
        if value is None or value == "" or value == {}:
            raise ManifestMissingField(".".join(path))

    if not isinstance(_lookup(data, ("server", "mcp_config", "args")), list):
        raise ManifestMissingField(
            "server.mcp_config.args",
            "Invalid manifest: server.mcp_config.args must be an array",
        )


def validate_manifest(raw: str | bytes) -> ExtensionManifest:
    """Parse and validate manifest JSON.

    Optional metadata fields with an unusable value are dropped with a
    warning; only the launch configuration and identity fields are strict.

    Args:
        raw: Contents of manifest.json

    Returns:
        The validated manifest

    Raises:
        ManifestParseError: If the JSON is malformed or not an object
        ManifestMissingField: If a required field is missing
        InvalidManifestField: If a field has an unusable value
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"Invalid manifest: malformed JSON ({e})") from e

    if not isinstance(data, dict):
        raise ManifestParseError("Invalid manifest: top level must be a JSON object")

    check_required_fields(data)
    validate_extension_name(data["name"])

    try:
        return ExtensionManifest.model_validate(data)
    except ValidationError as e:
        error = e

    errors = error.errors()
    blocking = [err for err in errors if not err["loc"] or err["loc"][0] not in METADATA_FIELDS]
    if blocking:
        first = blocking[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidManifestField(field, first["msg"].lower()) from error

    for field in sorted({str(err["loc"][0]) for err in errors}):
        logger.warning("Ignoring invalid manifest field %s: %r", field, data.pop(field, None))
    return ExtensionManifest.model_validate(data)


def load_manifest(directory: Path) -> ExtensionManifest:
    """Load and validate the manifest of an extracted or installed extension.

    Args:
        directory: Extension directory containing manifest.json

    Returns:
        The validated manifest

    Raises:
        ManifestParseError: If manifest.json is missing or unreadable
        ManifestMissingField: If a required field is missing
        InvalidManifestField: If a field has an unusable value
    """
    manifest_path = locate_manifest(directory)

    try:
        raw = read_text_file(manifest_path)
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"Cannot read {MANIFEST_FILE}: {e}") from e

    return validate_manifest(raw)
