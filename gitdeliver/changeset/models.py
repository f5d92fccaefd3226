"""Data models for the change set.

Contains:
- Module: A generated file handed to the engine
- Literal, Tombstone, WriteIfAbsent: Directive variants for a single path
- Directive: Union of the directive variants
- ChangeSet: Ordered mapping from resolved path to directive
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict


class Module(BaseModel):
    """A generated file. A code of None means the path should be deleted.

    The code field is required; deletion must be spelled out as null.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    code: Optional[str]

    @property
    def is_deleted(self) -> bool:
        return self.code is None


@dataclass(frozen=True)
class Literal:
    """Write exactly this content."""

    content: str


@dataclass(frozen=True)
class Tombstone:
    """Delete the path."""

    pass


@dataclass(frozen=True)
class WriteIfAbsent:
    """Write the content only if the path does not exist in the target tree."""

    content: str


Directive = Union[Literal, Tombstone, WriteIfAbsent]


def describe_directive(directive: Directive) -> str:
    """Get a short human-readable label for a directive."""
    if isinstance(directive, Tombstone):
        return "delete"
    if isinstance(directive, WriteIfAbsent):
        return "write-if-absent"
    return "write"


class ChangeSet:
    """Ordered mapping from final path to directive.

    Setting a path that is already present replaces its directive but keeps
    its original position, matching plain dict insertion semantics.
    """

    def __init__(self, directives: Optional[dict[str, Directive]] = None):
        self._directives: dict[str, Directive] = dict(directives or {})

    def set(self, path: str, directive: Directive) -> None:
        self._directives[path] = directive

    def get(self, path: str) -> Optional[Directive]:
        return self._directives.get(path)

    def items(self):
        return self._directives.items()

    def paths(self) -> list[str]:
        return list(self._directives)

    def __getitem__(self, path: str) -> Directive:
        return self._directives[path]

    def __contains__(self, path: object) -> bool:
        return path in self._directives

    def __iter__(self) -> Iterator[str]:
        return iter(self._directives)

    def __len__(self) -> int:
        return len(self._directives)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChangeSet):
            return NotImplemented
        return list(self._directives.items()) == list(other._directives.items())

    def __repr__(self) -> str:
        return f"ChangeSet({self._directives!r})"
