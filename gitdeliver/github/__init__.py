"""GitHub access for gitdeliver.

This package provides the remote side of a delivery:
- models: Branch, TreeEntry, Commit, PullRequest
- gateway: RepositoryGateway, GitHubGateway
- factory: GitHubGatewayFactory, TokenProvider
- writer: resolve_tree_entries, build_commit, commit_change_set
"""

# Models
from gitdeliver.github.models import (
    Branch,
    Commit,
    PullRequest,
    TreeEntry,
)

# Object writer
from gitdeliver.github.writer import (
    build_commit,
    commit_change_set,
    resolve_tree_entries,
)

# Gateways
from gitdeliver.github.gateway import (
    GitHubGateway,
    RepositoryGateway,
)

# Factory
from gitdeliver.github.factory import (
    GitHubGatewayFactory,
    TokenProvider,
)


__all__ = [
    # Models
    "Branch",
    "Commit",
    "PullRequest",
    "TreeEntry",
    # Writer
    "build_commit",
    "commit_change_set",
    "resolve_tree_entries",
    # Gateways
    "GitHubGateway",
    "RepositoryGateway",
    # Factory
    "GitHubGatewayFactory",
    "TokenProvider",
]
