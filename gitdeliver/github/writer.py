"""Git object writer.

Applies a change set to a branch using primitive Git objects: a tree layered
on the branch's current tree, a commit whose sole parent is the branch tip,
and a fast-forward update of the branch ref.

Contains:
- resolve_tree_entries: Turn directives into tree entries against a base commit
- build_commit: Create the tree and commit objects on top of a parent commit
- commit_change_set: Commit a change set directly to an existing branch
"""

import logging
from typing import TYPE_CHECKING

from gitdeliver.changeset.models import ChangeSet, Literal, Tombstone, WriteIfAbsent
from gitdeliver.github.models import Commit, TreeEntry

if TYPE_CHECKING:
    from gitdeliver.github.gateway import RepositoryGateway


logger = logging.getLogger(__name__)


async def resolve_tree_entries(
    gateway: "RepositoryGateway",
    owner: str,
    repo: str,
    base_commit_sha: str,
    change_set: ChangeSet,
) -> list[TreeEntry]:
    """Resolve every directive into the tree entries to apply.

    WriteIfAbsent directives are checked against the base commit on the
    remote host, never against other entries of the same change set.

    Args:
        gateway: Remote repository gateway.
        owner: Repository owner.
        repo: Repository name.
        base_commit_sha: Commit whose tree the entries are layered on.
        change_set: Directives to resolve.

    Returns:
        Tree entries in change-set order. Protected paths that already exist
        are left out.
    """
    entries = []
    for path, directive in change_set.items():
        if isinstance(directive, Tombstone):
            entries.append(TreeEntry(path=path, content=None))
        elif isinstance(directive, WriteIfAbsent):
            if await gateway.path_exists(owner, repo, path, base_commit_sha):
                logger.info("Keeping existing file %s", path)
                continue
            entries.append(TreeEntry(path=path, content=directive.content))
        elif isinstance(directive, Literal):
            entries.append(TreeEntry(path=path, content=directive.content))
        else:
            raise TypeError(f"Unknown directive for {path}: {directive!r}")
    return entries


async def build_commit(
    gateway: "RepositoryGateway",
    owner: str,
    repo: str,
    parent: Commit,
    change_set: ChangeSet,
    message: str,
) -> Commit:
    """Create the tree and commit objects for a change set on top of a parent.

    Nothing is referenced yet; objects created here are inert until a ref
    points at them.

    Returns:
        The new commit, with the parent as its only parent.
    """
    entries = await resolve_tree_entries(gateway, owner, repo, parent.sha, change_set)

    if entries:
        tree_sha = await gateway.create_tree(owner, repo, parent.tree_sha, entries)
    else:
        # Nothing to change, commit the base tree as is
        tree_sha = parent.tree_sha

    commit = await gateway.create_commit(owner, repo, message, tree_sha, [parent.sha])
    logger.debug("Created commit %s (tree %s, %d entries)", commit.sha, tree_sha, len(entries))
    return commit


async def commit_change_set(
    gateway: "RepositoryGateway",
    owner: str,
    repo: str,
    branch_name: str,
    change_set: ChangeSet,
    message: str,
) -> Commit:
    """Commit a change set directly to an existing branch.

    The ref update is a fast-forward only. If the branch moved since its tip
    was read, the update is rejected and ConflictError propagates; the caller
    decides whether to retry the whole delivery.

    Args:
        gateway: Remote repository gateway.
        owner: Repository owner.
        repo: Repository name.
        branch_name: Branch to commit to.
        change_set: Directives to apply.
        message: Commit message.

    Returns:
        The commit the branch now points to.

    Raises:
        NotFoundError: If the branch does not exist.
        ConflictError: If the branch moved concurrently.
    """
    parent = await gateway.get_last_commit(owner, repo, branch_name)
    commit = await build_commit(gateway, owner, repo, parent, change_set, message)
    await gateway.update_ref(owner, repo, branch_name, commit.sha)
    logger.info("Advanced %s/%s@%s to %s", owner, repo, branch_name, commit.sha)
    return commit
