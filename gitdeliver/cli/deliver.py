"""CLI command for delivering generated modules."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from gitdeliver import global_config
from gitdeliver.cli.utils import load_modules, run_with_retries, setup_logging
from gitdeliver.delivery import commit_modules, deliver_modules
from gitdeliver.exceptions import GitDeliveryError
from gitdeliver.github.factory import GitHubGatewayFactory


def deliver_command(
    modules_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file with a list of {path, code} modules",
    ),
    owner: str = typer.Option(..., "--owner", "-o", help="Repository owner"),
    repo: str = typer.Option(..., "--repo", "-r", help="Repository name"),
    message: str = typer.Option(
        "Update generated code",
        "--message",
        "-m",
        help="Commit message",
    ),
    title: str = typer.Option(
        "Update generated code",
        "--title",
        "-t",
        help="Pull request title",
    ),
    body: str = typer.Option("", "--body", "-b", help="Pull request body"),
    head: Optional[str] = typer.Option(
        None,
        "--head",
        help="Branch holding the generated code (default from config)",
    ),
    base: Optional[str] = typer.Option(
        None,
        "--base",
        help="Target branch of the pull request (default: repository default branch)",
    ),
    server_root: Optional[str] = typer.Option(
        None,
        "--server-root",
        help="Server source root used by the protection rules (default from config)",
    ),
    direct: bool = typer.Option(
        False,
        "--direct",
        help="Commit straight to the head branch instead of going through a pull request",
    ),
    retries: int = typer.Option(
        0,
        "--retries",
        min=0,
        help="Retry the whole delivery on conflicts and transient errors",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Deliver generated modules to a GitHub repository."""
    setup_logging(verbose)

    token = global_config.get_github_token()
    if not token:
        typer.echo(
            "Error: No GitHub token found. Set GITHUB_TOKEN or run 'gitdeliver config set-token'.",
            err=True,
        )
        raise typer.Exit(1)

    head = head or global_config.get_head_branch()
    server_root = server_root or global_config.get_server_root()

    try:
        modules = load_modules(modules_file)
        factory = GitHubGatewayFactory(api_url=global_config.get_api_url())

        async def run_once():
            async with factory.from_token(token) as gateway:
                if direct:
                    return await commit_modules(
                        gateway, owner, repo, modules, message, head, server_root=server_root
                    )
                return await deliver_modules(
                    gateway,
                    owner,
                    repo,
                    modules,
                    message,
                    title,
                    body,
                    head_branch=head,
                    base_branch=base,
                    server_root=server_root,
                )

        result = asyncio.run(run_with_retries(run_once, retries=retries))

    except (GitDeliveryError, global_config.GlobalConfigError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if direct:
        typer.echo(f"Committed {result.sha} to {head}")
    else:
        typer.echo(result)
