"""Ignore-file handling for target repositories.

Reads the .amplicationignore declaration from the root of the target
repository. Matching paths are not delivered to their real location but
quarantined instead.

Pattern syntax follows .gitignore conventions:
- blank lines and lines starting with '#' are skipped
- a leading '!' re-includes paths excluded by an earlier pattern
- a trailing '/' only matches directories
- a pattern containing '/' is anchored to the repository root
- other patterns match a file or directory name at any depth
"""

import fnmatch
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from gitdeliver.config import IGNORE_FILE_NAME
from gitdeliver.exceptions import GitDeliveryError


logger = logging.getLogger(__name__)

IgnoreFileFetcher = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class IgnorePattern:
    """A single parsed line of an ignore file."""

    pattern: str
    negated: bool = False
    directory_only: bool = False
    anchored: bool = False

    def matches(self, path: str) -> bool:
        """Check whether the pattern matches the path or one of its parent directories."""
        parts = path.split("/")
        for i in range(1, len(parts) + 1):
            is_directory = i < len(parts)
            if self.directory_only and not is_directory:
                continue
            target = "/".join(parts[:i]) if self.anchored else parts[i - 1]
            if fnmatch.fnmatchcase(target, self.pattern):
                return True
        return False


def parse_ignore_pattern(line: str) -> Optional[IgnorePattern]:
    """Parse one ignore-file line.

    Returns:
        The IgnorePattern, or None for blank lines and comments.
    """
    line = line.rstrip("\r\n").rstrip()
    if not line or line.startswith("#"):
        return None

    negated = line.startswith("!")
    if negated:
        line = line[1:]
    if line.startswith("\\"):
        # Escaped leading '#' or '!'
        line = line[1:]

    directory_only = line.endswith("/")
    line = line.rstrip("/")

    if line.startswith("**/"):
        line = line[3:]
        anchored = "/" in line
    else:
        anchored = "/" in line
        line = line.lstrip("/")

    if not line:
        return None

    return IgnorePattern(
        pattern=line,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
    )


def parse_ignore_file(content: str) -> list[IgnorePattern]:
    """Parse the full content of an ignore file."""
    patterns = []
    for line in content.splitlines():
        pattern = parse_ignore_pattern(line)
        if pattern is not None:
            patterns.append(pattern)
    return patterns


class IgnoreManager:
    """Answers whether a path is declared ignored by the target repository."""

    def __init__(self, patterns: Optional[list[IgnorePattern]] = None):
        self.patterns: list[IgnorePattern] = list(patterns or [])

    @classmethod
    def from_content(cls, content: str) -> "IgnoreManager":
        return cls(parse_ignore_file(content))

    async def init(self, fetcher: IgnoreFileFetcher) -> None:
        """Load the ignore file through the fetcher.

        A repository without an ignore file must not block delivery, so any
        delivery error raised by the fetcher leaves the manager with no rules.

        Args:
            fetcher: Async callable returning the content of a repository file.
        """
        try:
            content = await fetcher(IGNORE_FILE_NAME)
        except GitDeliveryError as e:
            logger.info("Repository does not have a %s file (%s)", IGNORE_FILE_NAME, e)
            content = ""

        self.patterns = parse_ignore_file(content or "")
        logger.debug("Loaded %d ignore pattern(s)", len(self.patterns))

    def is_ignored(self, path: str) -> bool:
        """Check if a path is ignored. The last matching pattern decides."""
        ignored = False
        for pattern in self.patterns:
            if pattern.negated == ignored and pattern.matches(path):
                ignored = not pattern.negated
        return ignored
