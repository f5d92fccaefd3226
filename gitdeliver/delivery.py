"""Pull request reconciliation and end-to-end delivery.

Contains:
- deliver_change_set: Open a pull request or append to the open one
- prepare_change_set: Validate modules, load the ignore file and build the change set
- deliver_modules: Full delivery of generated modules through a pull request
- commit_modules: Full delivery of generated modules straight to a branch
"""

import logging
from typing import Iterable, Optional

from gitdeliver.changeset import (
    ChangeSet,
    Module,
    ProtectionConfig,
    ProtectionPolicy,
    build_change_set,
    validate_modules,
)
from gitdeliver.config import DEFAULT_HEAD_BRANCH
from gitdeliver.exceptions import PolicyAmbiguityError
from gitdeliver.github.gateway import RepositoryGateway
from gitdeliver.github.models import Commit
from gitdeliver.github.writer import commit_change_set
from gitdeliver.ignore import IgnoreManager


logger = logging.getLogger(__name__)


async def deliver_change_set(
    gateway: RepositoryGateway,
    owner: str,
    repo: str,
    change_set: ChangeSet,
    commit_message: str,
    pr_title: str,
    pr_body: str,
    head_branch: str = DEFAULT_HEAD_BRANCH,
    base_branch: Optional[str] = None,
) -> str:
    """Deliver a change set through a pull request.

    With no open pull request from head into base, the change set is
    committed to the head branch and a pull request is opened. With exactly
    one, the change set is committed on top of its head branch and the
    existing pull request is returned unchanged.

    Args:
        gateway: Remote repository gateway.
        owner: Repository owner.
        repo: Repository name.
        change_set: Directives to deliver.
        commit_message: Message of the delivered commit.
        pr_title: Title used when a pull request is opened.
        pr_body: Body used when a pull request is opened.
        head_branch: Branch holding the generated code.
        base_branch: Target branch. Defaults to the repository default branch.

    Returns:
        URL of the pull request.

    Raises:
        PolicyAmbiguityError: If more than one open pull request matches.
        ConflictError: If the head branch moved during the delivery.
    """
    existing = await gateway.list_pull_requests(owner, repo, base_branch, head_branch)

    if len(existing) > 1:
        urls = ", ".join(pr.url for pr in existing)
        raise PolicyAmbiguityError(
            f"Found {len(existing)} open pull requests from {head_branch} "
            f"into {base_branch or 'the default branch'}: {urls}"
        )

    if not existing:
        logger.info("No open pull request from %s, creating one", head_branch)
        pull_request = await gateway.create_or_update_pull_request(
            owner,
            repo,
            pr_title,
            pr_body,
            base_branch,
            head_branch,
            change_set,
            commit_message,
        )
        return pull_request.url

    pull_request = existing[0]
    logger.info("Appending commit to %s", pull_request.url)
    await commit_change_set(
        gateway,
        owner,
        repo,
        pull_request.head_branch,
        change_set,
        commit_message,
    )
    return pull_request.url


async def prepare_change_set(
    gateway: RepositoryGateway,
    owner: str,
    repo: str,
    modules: Iterable[Module],
    ref: Optional[str] = None,
    server_root: Optional[str] = None,
) -> ChangeSet:
    """Validate modules and build their change set.

    Module paths are validated before any remote call. The ignore file is
    then read from ref; a missing or unreadable ignore file means no rules.

    Args:
        gateway: Remote repository gateway.
        owner: Repository owner.
        repo: Repository name.
        modules: Generated modules.
        ref: Branch to read the ignore file from. Defaults to the default branch.
        server_root: Server source root used by the protection rules.

    Returns:
        The change set.

    Raises:
        MalformedInputError: If a module path is invalid.
    """
    modules = list(modules)
    validate_modules(modules)

    ignore_manager = IgnoreManager()

    async def fetch(file_name: str) -> str:
        return await gateway.get_file(owner, repo, file_name, ref) or ""

    await ignore_manager.init(fetch)

    policy = ProtectionPolicy.for_config(ProtectionConfig(server_root=server_root))
    change_set = build_change_set(modules, ignore_manager.is_ignored, policy)
    logger.info("Built change set with %d path(s) from %d module(s)", len(change_set), len(modules))
    return change_set


async def deliver_modules(
    gateway: RepositoryGateway,
    owner: str,
    repo: str,
    modules: Iterable[Module],
    commit_message: str,
    pr_title: str,
    pr_body: str,
    head_branch: str = DEFAULT_HEAD_BRANCH,
    base_branch: Optional[str] = None,
    server_root: Optional[str] = None,
) -> str:
    """Deliver generated modules through a pull request.

    Returns:
        URL of the new or existing pull request.
    """
    change_set = await prepare_change_set(gateway, owner, repo, modules, base_branch, server_root)
    return await deliver_change_set(
        gateway,
        owner,
        repo,
        change_set,
        commit_message,
        pr_title,
        pr_body,
        head_branch=head_branch,
        base_branch=base_branch,
    )


async def commit_modules(
    gateway: RepositoryGateway,
    owner: str,
    repo: str,
    modules: Iterable[Module],
    commit_message: str,
    branch_name: str,
    server_root: Optional[str] = None,
) -> Commit:
    """Deliver generated modules as a commit directly on an existing branch.

    Returns:
        The commit the branch now points to.

    Raises:
        NotFoundError: If the branch does not exist.
        ConflictError: If the branch moved during the delivery.
    """
    change_set = await prepare_change_set(gateway, owner, repo, modules, branch_name, server_root)
    return await commit_change_set(gateway, owner, repo, branch_name, change_set, commit_message)
