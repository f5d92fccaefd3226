"""Protection policy for generated files.

Decides, for a single path, whether it is quarantined, deleted, written only
when absent, or written unconditionally.

Contains:
- Classification: Outcome of classifying a path
- ProtectionConfig: Configurable inputs of the default rule set
- ProtectionRule: A "do not override" pattern with an exempt subtree
- ProtectionPolicy: A set of protection rules
- build_protection_rules: Default rules for a server source root
- classify: Classify a path
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, field_validator

from gitdeliver.config import DEFAULT_SERVER_ROOT


logger = logging.getLogger(__name__)

IgnorePredicate = Callable[[str], bool]


class Classification(str, Enum):
    """Outcome of classifying a path."""

    IGNORED = "ignored"
    DELETE = "delete"
    CONDITIONAL_WRITE = "conditional_write"
    WRITE = "write"


class ProtectionConfig(BaseModel):
    """Inputs of the default protection rule set."""

    server_root: str = DEFAULT_SERVER_ROOT

    @field_validator("server_root", mode="before")
    @classmethod
    def default_when_empty(cls, value: Optional[str]) -> str:
        if not value:
            return DEFAULT_SERVER_ROOT
        return str(value).strip("/") or DEFAULT_SERVER_ROOT


@dataclass(frozen=True)
class ProtectionRule:
    """A path pattern that must not override existing files.

    The rule matches when the pattern matches and the path is outside the
    exempt subtree.
    """

    pattern: re.Pattern
    exempt_prefix: str = ""

    def matches(self, path: str) -> bool:
        if self.exempt_prefix and path.startswith(self.exempt_prefix):
            return False
        return self.pattern.search(path) is not None


# Generated files one level under <root>/src/<entity>/ plus the seed script
_PROTECTED_TEMPLATES = [
    r"^{root}/src/[^/]+/.+\.controller\.ts$",
    r"^{root}/src/[^/]+/.+\.resolver\.ts$",
    r"^{root}/src/[^/]+/.+\.service\.ts$",
    r"^{root}/src/[^/]+/.+\.module\.ts$",
    r"^{root}/scripts/customSeed\.ts$",
]

# Plain string prefix: {root}/src/authors is exempt as well
_EXEMPT_TEMPLATE = "{root}/src/auth"


def build_protection_rules(config: Optional[ProtectionConfig] = None) -> list[ProtectionRule]:
    """Build the default protection rules for a server source root.

    Args:
        config: Protection settings. Defaults to the "server" root.

    Returns:
        List of protection rules, all exempting the auth subtree.
    """
    config = config or ProtectionConfig()
    root = re.escape(config.server_root)
    exempt_prefix = _EXEMPT_TEMPLATE.format(root=config.server_root)
    return [
        ProtectionRule(pattern=re.compile(template.format(root=root)), exempt_prefix=exempt_prefix)
        for template in _PROTECTED_TEMPLATES
    ]


@dataclass
class ProtectionPolicy:
    """A set of protection rules."""

    rules: Sequence[ProtectionRule] = field(default_factory=list)

    @classmethod
    def for_config(cls, config: Optional[ProtectionConfig] = None) -> "ProtectionPolicy":
        return cls(rules=build_protection_rules(config))

    def is_protected(self, path: str) -> bool:
        return any(rule.matches(path) for rule in self.rules)

    def classify(self, path: str, is_ignored: IgnorePredicate, is_deleted: bool) -> Classification:
        return classify(path, is_ignored, is_deleted, self.rules)


def classify(
    path: str,
    is_ignored: IgnorePredicate,
    is_deleted: bool,
    rules: Sequence[ProtectionRule] = (),
) -> Classification:
    """Classify a path.

    The order is fixed: ignore declarations win over everything, an explicit
    deletion wins over protection, and protection wins over a plain write.

    Args:
        path: Repository-relative path of the module.
        is_ignored: Predicate backed by the repository's ignore file.
        is_deleted: Whether the module deletes the path.
        rules: Protection rules to check.

    Returns:
        The classification of the path.
    """
    if is_ignored(path):
        return Classification.IGNORED
    if is_deleted:
        return Classification.DELETE
    if any(rule.matches(path) for rule in rules):
        logger.debug("Protected path: %s", path)
        return Classification.CONDITIONAL_WRITE
    return Classification.WRITE
