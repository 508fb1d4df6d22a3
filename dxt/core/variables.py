"""Placeholder substitution for launch configuration strings.

Supported placeholders:

- ``${__dirname}``: directory the extension was extracted to
- ``${HOME}``, ``${DESKTOP}``, ``${DOCUMENTS}``, ``${DOWNLOADS}``: user folders
- ``${pathSeparator}`` and ``${/}``: host path separator
- ``${user_config.KEY}``: value supplied by the user for KEY

All placeholders are expanded in a single pass, so text inserted by a
replacement is never expanded again.
"""

import re
from collections.abc import Mapping
from typing import Any

from dxt.utils.platform import get_home_directory, get_path_separator, get_user_directory

PLACEHOLDER_PATTERN = re.compile(
    r"\$\{(__dirname|HOME|DESKTOP|DOCUMENTS|DOWNLOADS|pathSeparator|/|user_config\.[^}]+)\}"
)
USER_CONFIG_PREFIX = "user_config."


def builtin_variables(extract_dir: str) -> dict[str, str]:
    """Build the table of built-in placeholder values.

    Args:
        extract_dir: Directory the extension was extracted to

    Returns:
        Mapping of placeholder name to replacement
    """
    separator = get_path_separator()
    return {
        "__dirname": extract_dir,
        "HOME": get_home_directory(),
        "DESKTOP": get_user_directory("Desktop"),
        "DOCUMENTS": get_user_directory("Documents"),
        "DOWNLOADS": get_user_directory("Downloads"),
        "pathSeparator": separator,
        "/": separator,
    }


def format_user_value(value: Any) -> str:
    """Render a user config value as placeholder text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def substitute(
    value: str,
    extract_dir: str,
    user_config: Mapping[str, Any] | None = None,
) -> str:
    """Expand placeholders in a configuration string.

    ``${user_config.KEY}`` is left untouched when KEY is missing, is None, or
    no user config is given.

    Args:
        value: String to expand
        extract_dir: Directory the extension was extracted to
        user_config: Values entered by the user, keyed by option name

    Returns:
        The expanded string
    """
    variables = builtin_variables(str(extract_dir))

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name.startswith(USER_CONFIG_PREFIX):
            key = name[len(USER_CONFIG_PREFIX) :]
            if not user_config or user_config.get(key) is None:
                return match.group(0)
            return format_user_value(user_config[key])
        return variables[name]

    return PLACEHOLDER_PATTERN.sub(replace, value)
