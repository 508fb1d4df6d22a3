"""Launch configuration resolver.

Turns the launch configuration stored in a manifest into the command, args
and environment that are actually run on this host.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dxt.config.schemas import LaunchConfig, ResolvedLaunchConfig
from dxt.core.variables import substitute
from dxt.utils.pathguard import validate_args, validate_command
from dxt.utils.platform import get_platform_key

logger = logging.getLogger("dxt.resolver")


def apply_platform_override(config: LaunchConfig, platform: str) -> LaunchConfig:
    """Overlay the override for a platform onto a launch configuration.

    Args:
        config: Base launch configuration
        platform: Platform key ("darwin", "win32", "linux")

    Returns:
        A new LaunchConfig; the input is not modified
    """
    merged = config.model_copy(deep=True)
    override = config.platform_overrides.get(platform)
    if override is None:
        return merged

    logger.debug("Applying %s platform override", platform)
    if override.command:
        merged.command = override.command
    if override.args is not None:
        merged.args = list(override.args)
    if override.env:
        merged.env = {**(merged.env or {}), **override.env}
    return merged


def resolve_launch_config(
    config: LaunchConfig,
    extract_dir: Path | str,
    user_config: Mapping[str, Any] | None = None,
    platform: str | None = None,
) -> ResolvedLaunchConfig:
    """Resolve a launch configuration for this host.

    Overrides are applied first, then placeholders are expanded, then the
    command and args are validated. Validation always sees expanded values.

    Args:
        config: Launch configuration from the manifest
        extract_dir: Directory the extension lives in (``${__dirname}``)
        user_config: Values entered by the user
        platform: Platform key, defaults to the current host

    Returns:
        The resolved configuration

    Raises:
        EmptyCommand, NullByteInjection, PathTraversal, InvalidArgumentType:
            If the expanded command or args are unsafe
    """
    merged = apply_platform_override(config, platform or get_platform_key())
    base_dir = str(extract_dir)

    command = substitute(merged.command, base_dir, user_config)
    args = [substitute(arg, base_dir, user_config) for arg in merged.args]

    env: dict[str, str] | None = None
    if merged.env is not None:
        env = {key: substitute(value, base_dir, user_config) for key, value in merged.env.items()}

    return ResolvedLaunchConfig(
        command=validate_command(command),
        args=validate_args(args),
        env=env,
    )
