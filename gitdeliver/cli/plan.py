"""CLI command for previewing a change set without touching the remote."""

from pathlib import Path
from typing import Optional

import typer

from gitdeliver import global_config
from gitdeliver.changeset import (
    ProtectionConfig,
    ProtectionPolicy,
    build_change_set,
    validate_modules,
)
from gitdeliver.cli.utils import format_change_set, load_modules, setup_logging
from gitdeliver.exceptions import GitDeliveryError
from gitdeliver.ignore import IgnoreManager


def plan_command(
    modules_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file with a list of {path, code} modules",
    ),
    ignore_file: Optional[Path] = typer.Option(
        None,
        "--ignore-file",
        "-i",
        exists=True,
        dir_okay=False,
        help="Local copy of the repository's .amplicationignore",
    ),
    server_root: Optional[str] = typer.Option(
        None,
        "--server-root",
        help="Server source root used by the protection rules (default from config)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Show what a delivery would do with each path."""
    setup_logging(verbose)

    try:
        modules = load_modules(modules_file)
        validate_modules(modules)
        server_root = server_root or global_config.get_server_root()
    except (GitDeliveryError, global_config.GlobalConfigError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    ignore_manager = IgnoreManager()
    if ignore_file is not None:
        ignore_manager = IgnoreManager.from_content(ignore_file.read_text(encoding="utf-8"))

    policy = ProtectionPolicy.for_config(ProtectionConfig(server_root=server_root))
    change_set = build_change_set(modules, ignore_manager.is_ignored, policy)

    lines = format_change_set(change_set)
    if not lines:
        typer.echo("Nothing to deliver.")
        return

    for line in lines:
        typer.echo(line)
    typer.echo()
    typer.echo(f"Total: {len(change_set)} path(s) from {len(modules)} module(s)")
