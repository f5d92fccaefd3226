"""Validation of module paths.

Contains:
- validate_module_path: Check a single path
- validate_modules: Check every module before any remote call is made
"""

from typing import Iterable

from gitdeliver.changeset.models import Module
from gitdeliver.exceptions import MalformedInputError


def validate_module_path(path: str) -> None:
    """Check that a path is a clean, relative, POSIX-style repository path.

    Args:
        path: The module path to check.

    Raises:
        MalformedInputError: If the path is empty, absolute or not normalized.
    """
    if not path or not path.strip():
        raise MalformedInputError("Module path is empty")
    if path.startswith("/"):
        raise MalformedInputError(f"Module path must be relative: {path}")
    if "\\" in path:
        raise MalformedInputError(f"Module path must use forward slashes: {path}")
    if "\x00" in path:
        raise MalformedInputError(f"Module path contains a NUL byte: {path!r}")

    for segment in path.split("/"):
        if segment == "":
            raise MalformedInputError(f"Module path has an empty segment: {path}")
        if segment in (".", ".."):
            raise MalformedInputError(f"Module path has a relative segment: {path}")


def validate_modules(modules: Iterable[Module]) -> None:
    """Validate every module path.

    Raises:
        MalformedInputError: On the first invalid path.
    """
    for module in modules:
        validate_module_path(module.path)
