"""Main CLI application for dxt."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dxt import __version__
from dxt.config.settings import default_config_path, load_settings, save_settings
from dxt.core.installer import ExtensionInstaller
from dxt.errors import ConfigError

# Create the main Typer app
app = typer.Typer(
    name="dxt",
    help="Install and manage desktop extension (.dxt) packages",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the dxt package
logger = logging.getLogger("dxt")


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def get_installer(ctx: typer.Context) -> ExtensionInstaller:
    """Build an installer from the settings selected on the command line."""
    config_path: Path | None = ctx.obj.get("config") if ctx.obj else None
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    return ExtensionInstaller(settings)


def parse_user_config(values: list[str]) -> dict[str, str]:
    """Parse ``key=value`` pairs given with --config-value."""
    user_config: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'")
        user_config[key] = value
    return user_config


@app.callback()
def callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Installer config file (defaults to ~/.dxt/config.yaml)",
        ),
    ] = None,
) -> None:
    """dxt - install and manage desktop extension packages."""
    setup_logging(verbose)
    ctx.obj = {"config": config}


@app.command()
def version() -> None:
    """Show the dxt version."""
    console.print(f"dxt {__version__}")


@app.command()
def init(
    ctx: typer.Context,
    extensions_dir: Annotated[
        Path | None,
        typer.Option("--extensions-dir", "-e", help="Directory extensions are installed to"),
    ] = None,
    temp_root: Annotated[
        Path | None,
        typer.Option("--temp-root", "-t", help="Directory for scratch extraction"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file"),
    ] = False,
) -> None:
    """Write an installer config file with the current settings."""
    config_path: Path = ctx.obj.get("config") or default_config_path()
    if config_path.exists() and not force:
        print_error(f"Config file already exists: {config_path}")
        print_error("Use --force to overwrite it")
        raise typer.Exit(1)

    try:
        settings = load_settings(config_path if config_path.exists() else None)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    updates = {}
    if extensions_dir is not None:
        updates["extensions_dir"] = extensions_dir.resolve()
    if temp_root is not None:
        updates["temp_root"] = temp_root.resolve()
    settings = settings.model_copy(update=updates)

    save_settings(config_path, settings)
    print_success(f"Wrote {config_path}")
    console.print(f"  Extensions: {settings.extensions_dir}")
    console.print(f"  Temp root:  {settings.temp_root}")


@app.command()
def install(
    ctx: typer.Context,
    archives: Annotated[
        list[Path],
        typer.Argument(help="Extension archives (.dxt) to install"),
    ],
) -> None:
    """Install extension packages.

    An extension that is already installed is replaced.
    """
    installer = get_installer(ctx)
    failed = 0

    for archive in archives:
        result = installer.install(archive)
        if result.success and result.manifest is not None:
            print_success(
                f"Installed {result.manifest.name}@{result.manifest.version} "
                f"to {result.install_dir}"
            )
        else:
            print_error(f"Failed to install {archive}: {result.message}")
            failed += 1

    if failed:
        raise typer.Exit(1)


@app.command()
def uninstall(
    ctx: typer.Context,
    names: Annotated[
        list[str],
        typer.Argument(help="Extensions to uninstall"),
    ],
) -> None:
    """Uninstall extensions."""
    installer = get_installer(ctx)
    missing = 0

    for name in names:
        if installer.uninstall(name):
            print_success(f"Uninstalled {name}")
        else:
            print_warning(f"Extension not found: {name}")
            missing += 1

    if missing:
        raise typer.Exit(1)


@app.command()
def resolve(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Installed extension name")],
    config_values: Annotated[
        list[str] | None,
        typer.Option(
            "--config-value",
            "-c",
            help="User config value as key=value (repeatable)",
        ),
    ] = None,
) -> None:
    """Print the launch configuration of an installed extension as JSON."""
    user_config = parse_user_config(config_values or [])
    installer = get_installer(ctx)

    resolved = installer.resolve_installed(name, user_config)
    if resolved is None:
        print_error(f"Could not resolve launch configuration for {name}")
        raise typer.Exit(1)

    console.print_json(json.dumps(resolved.model_dump(exclude_none=True)))


@app.command("list")
def list_extensions(ctx: typer.Context) -> None:
    """List installed extensions."""
    installer = get_installer(ctx)
    installed = installer.list_installed()

    if not installed:
        console.print("No extensions installed")
        return

    table = Table(title="Installed Extensions")
    table.add_column("Extension", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Location", style="dim")

    for extension in installed:
        table.add_row(extension.name, extension.version, str(extension.install_dir))

    console.print(table)


@app.command()
def info(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Installed extension name")],
) -> None:
    """Show details about an installed extension."""
    installer = get_installer(ctx)

    extension = next((e for e in installer.list_installed() if e.name == name), None)
    if extension is None:
        print_error(f"Extension not installed: {name}")
        raise typer.Exit(1)

    manifest = extension.manifest
    launch = manifest.launch_config

    console.print(f"[bold]{manifest.display_name or manifest.name}[/bold] {manifest.version}")
    if manifest.description:
        console.print(f"  {manifest.description}")
    if manifest.author and manifest.author.name:
        console.print(f"  Author: {manifest.author.name}")
    console.print(f"  Location: {extension.install_dir}")
    console.print(f"  Server: {manifest.server.type or 'unknown'} ({manifest.server.entry_point})")
    console.print(f"  Command: {launch.command} {' '.join(launch.args)}")
    if launch.platform_overrides:
        console.print(f"  Platform overrides: {', '.join(sorted(launch.platform_overrides))}")
    if manifest.tools:
        console.print("  Tools:")
        for tool in manifest.tools:
            console.print(f"    - {tool.name}: {tool.description}")
    if manifest.user_config:
        console.print(f"  User config keys: {', '.join(sorted(manifest.user_config))}")


@app.command()
def purge(ctx: typer.Context) -> None:
    """Delete leftover scratch extraction directories."""
    installer = get_installer(ctx)
    result = installer.purge_temp()
    if not result.ok:
        print_warning(f"Could not fully remove {result.path}: {result.error}")
        return
    print_success(f"Removed {result.path}" if result.removed else "Nothing to remove")


if __name__ == "__main__":
    app()
