"""CLI commands for global configuration management."""

import typer

from gitdeliver import global_config
from gitdeliver.config import GITHUB_TOKEN_ENV_VAR

# Subcommand group for configuration management
config_app = typer.Typer(
    name="config",
    help="Manage global gitdeliver configuration in ~/.gitdeliver/",
    add_completion=False,
)


def _mask(secret: str) -> str:
    return secret[:4] + "..." + secret[-4:] if len(secret) > 12 else "***"


@config_app.command("show")
def config_show() -> None:
    """Show current global configuration."""
    try:
        config = global_config.load_global_config()

        typer.echo("Current gitdeliver configuration (~/.gitdeliver/config.yaml):")
        typer.echo()
        typer.echo(f"  Server root: {global_config.get_server_root()}")
        typer.echo(f"  Head branch: {global_config.get_head_branch()}")
        typer.echo(f"  API URL: {global_config.get_api_url()}")
        if not config:
            typer.echo("  (defaults, no config.yaml found)")
        typer.echo()

        token = global_config.get_github_token()
        if token:
            typer.echo(f"  Token ({GITHUB_TOKEN_ENV_VAR}): {_mask(token)}")
        else:
            typer.echo(f"  Token ({GITHUB_TOKEN_ENV_VAR}): not set")

    except global_config.GlobalConfigError as e:
        typer.echo(f"Error reading configuration: {e}", err=True)
        raise typer.Exit(1)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name (server_root, head_branch, api_url)"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set a configuration value."""
    try:
        global_config.set_config_value(key, value)
    except global_config.GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Set {key} = {value}")


@config_app.command("set-token")
def config_set_token() -> None:
    """Store a GitHub token in ~/.gitdeliver/credentials."""
    token = typer.prompt("GitHub token", hide_input=True).strip()
    if not token:
        typer.echo("Error: Token cannot be empty.", err=True)
        raise typer.Exit(1)

    try:
        global_config.save_credential(GITHUB_TOKEN_ENV_VAR, token)
    except global_config.GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Token saved to ~/.gitdeliver/credentials")
