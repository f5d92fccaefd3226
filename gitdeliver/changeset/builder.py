"""Change-set builder.

Turns the raw module list into a path -> directive mapping using the
protection policy.
"""

import logging
import posixpath
from typing import Iterable, Optional

from gitdeliver.changeset.models import (
    ChangeSet,
    Directive,
    Literal,
    Module,
    Tombstone,
    WriteIfAbsent,
)
from gitdeliver.changeset.policy import (
    Classification,
    IgnorePredicate,
    ProtectionPolicy,
)
from gitdeliver.config import QUARANTINE_FOLDER


logger = logging.getLogger(__name__)


def quarantine_path(path: str) -> str:
    """Get the quarantine location of an ignored path."""
    return posixpath.join(QUARANTINE_FOLDER, path)


def _never_ignored(path: str) -> bool:
    return False


def build_change_set(
    modules: Iterable[Module],
    is_ignored: Optional[IgnorePredicate] = None,
    policy: Optional[ProtectionPolicy] = None,
) -> ChangeSet:
    """Build the change set for a delivery.

    Args:
        modules: Generated modules, in delivery order.
        is_ignored: Predicate backed by the repository's ignore file.
        policy: Protection policy. Defaults to the rules for the "server" root.

    Returns:
        ChangeSet keyed by final path. When two modules resolve to the same
        path the later one wins.
    """
    is_ignored = is_ignored or _never_ignored
    policy = policy or ProtectionPolicy.for_config()

    change_set = ChangeSet()
    for module in modules:
        classification = policy.classify(module.path, is_ignored, module.is_deleted)

        path = module.path
        directive: Directive
        if classification is Classification.IGNORED:
            path = quarantine_path(module.path)
            # A deleted ignored file removes its quarantined copy
            directive = Tombstone() if module.is_deleted else Literal(module.code)
            logger.debug("Quarantined %s -> %s", module.path, path)
        elif classification is Classification.DELETE:
            directive = Tombstone()
        elif classification is Classification.CONDITIONAL_WRITE:
            directive = WriteIfAbsent(module.code)
        else:
            directive = Literal(module.code)

        change_set.set(path, directive)

    return change_set
