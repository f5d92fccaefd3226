"""Remote repository entities.

Contains:
- Branch: A named branch and the commit at its tip
- TreeEntry: A single change applied on top of a base tree
- Commit: A commit object with its tree and parents
- PullRequest: An open pull request between two branches
"""

from dataclasses import dataclass, field
from typing import Optional

from gitdeliver.config import FILE_MODE


@dataclass
class Branch:
    """A named branch and the commit at its tip."""

    name: str
    head_commit_sha: str


@dataclass
class TreeEntry:
    """A single change applied on top of a base tree.

    A content of None removes the path from the resulting tree.
    """

    path: str
    content: Optional[str]
    mode: str = FILE_MODE

    @property
    def is_deletion(self) -> bool:
        return self.content is None


@dataclass
class Commit:
    """A commit object with its tree and parents."""

    sha: str
    tree_sha: str
    parent_shas: list[str] = field(default_factory=list)


@dataclass
class PullRequest:
    """A pull request between a head and a base branch."""

    head_branch: str
    base_branch: str
    url: str
    exists: bool = True
    number: Optional[int] = None
