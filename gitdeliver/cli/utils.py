"""Utility functions for CLI commands."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import typer
from pydantic import TypeAdapter, ValidationError

from gitdeliver.changeset import ChangeSet, Module, describe_directive
from gitdeliver.exceptions import ConflictError, MalformedInputError, TransientTransportError


logger = logging.getLogger(__name__)

T = TypeVar("T")

_MODULE_LIST = TypeAdapter(list[Module])


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_modules(modules_file: Path) -> list[Module]:
    """Load generated modules from a JSON file.

    The file holds a list of {"path": ..., "code": ...} objects; a null code
    deletes the path.

    Raises:
        MalformedInputError: If the file cannot be read or parsed.
    """
    try:
        data = json.loads(modules_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise MalformedInputError(f"Cannot read modules from {modules_file}: {e}")

    try:
        return _MODULE_LIST.validate_python(data)
    except ValidationError as e:
        raise MalformedInputError(f"Invalid modules in {modules_file}: {e}")


async def run_with_retries(
    operation: Callable[[], Awaitable[T]],
    retries: int = 0,
    base_delay: float = 1.0,
) -> T:
    """Run a whole delivery, retrying on conflicts and transient failures.

    Each attempt starts over from scratch so remote state is re-read.

    Args:
        operation: Zero-argument coroutine factory running one delivery.
        retries: Number of retries after the first attempt.
        base_delay: Delay before the first retry; doubles on each retry.

    Returns:
        The result of the first successful attempt.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except (ConflictError, TransientTransportError) as e:
            if attempt >= retries:
                raise
            delay = base_delay * (2 ** attempt)
            attempt += 1
            typer.echo(f"Retrying in {delay:g}s ({attempt}/{retries}): {e}", err=True)
            await asyncio.sleep(delay)


def format_change_set(change_set: ChangeSet) -> list[str]:
    """Format a change set as one "<action>  <path>" line per path."""
    if not change_set:
        return []
    width = max(len(describe_directive(d)) for _, d in change_set.items())
    return [
        f"{describe_directive(directive).ljust(width)}  {path}"
        for path, directive in change_set.items()
    ]
