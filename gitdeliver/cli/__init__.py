"""CLI entry point for gitdeliver.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from gitdeliver.cli.config import config_app
from gitdeliver.cli.deliver import deliver_command
from gitdeliver.cli.plan import plan_command

# Main application
app = typer.Typer(
    name="gitdeliver",
    help="gitdeliver: deliver generated code to GitHub without clobbering customizations",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(config_app, name="config")

# Add individual commands
app.command("deliver")(deliver_command)
app.command("plan")(plan_command)


__all__ = [
    "app",
    "config_app",
    "deliver_command",
    "plan_command",
]
