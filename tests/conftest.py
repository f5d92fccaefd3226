"""Shared test fixtures and configuration."""

import asyncio
import tempfile
from pathlib import Path
from typing import Optional

import pytest

from gitdeliver.exceptions import ConflictError, NotFoundError
from gitdeliver.github.gateway import RepositoryGateway
from gitdeliver.github.models import Branch, Commit, PullRequest, TreeEntry


class FakeGateway(RepositoryGateway):
    """In-memory repository with Git-like trees, commits and refs.

    Every call yields to the event loop once so concurrent deliveries
    interleave the way they would against a real host. Calls are recorded
    in `calls` as (method name, args...) tuples.
    """

    def __init__(self, files: Optional[dict] = None, default_branch: str = "main"):
        self.default_branch = default_branch
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, Commit] = {}
        self.branches: dict[str, str] = {}
        self.pull_requests: list[PullRequest] = []
        self.calls: list[tuple] = []
        self._counter = 0

        tree_sha = self._store_tree(dict(files or {}))
        root = self._store_commit(tree_sha, [])
        self.branches[default_branch] = root.sha

    # Helpers

    def _next_sha(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter:04d}"

    def _store_tree(self, files: dict) -> str:
        sha = self._next_sha("tree")
        self.trees[sha] = files
        return sha

    def _store_commit(self, tree_sha: str, parents: list[str]) -> Commit:
        commit = Commit(sha=self._next_sha("commit"), tree_sha=tree_sha, parent_shas=list(parents))
        self.commits[commit.sha] = commit
        return commit

    async def _record(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        await asyncio.sleep(0)

    def _resolve(self, ref: Optional[str]) -> str:
        ref = ref or self.default_branch
        if ref in self.branches:
            return self.branches[ref]
        if ref in self.commits:
            return ref
        raise NotFoundError(f"No such ref: {ref}")

    def files(self, ref: Optional[str] = None) -> dict:
        """Files at a branch tip or commit."""
        return self.trees[self.commits[self._resolve(ref)].tree_sha]

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def add_branch(self, name: str, files: dict, base: Optional[str] = None) -> str:
        """Create a branch with one commit on top of base holding exactly `files`."""
        parent = self._resolve(base)
        commit = self._store_commit(self._store_tree(dict(files)), [parent])
        self.branches[name] = commit.sha
        return commit.sha

    def open_pull_request(self, head: str, base: str) -> PullRequest:
        number = len(self.pull_requests) + 1
        pull_request = PullRequest(
            head_branch=head,
            base_branch=base,
            url=f"https://github.com/acme/app/pull/{number}",
            number=number,
        )
        self.pull_requests.append(pull_request)
        return pull_request

    # RepositoryGateway

    async def get_branch_ref(self, owner, repo, branch):
        await self._record("get_branch_ref", branch)
        if branch not in self.branches:
            raise NotFoundError(f"Branch not found: {branch}")
        return Branch(name=branch, head_commit_sha=self.branches[branch])

    async def create_branch_ref(self, owner, repo, new_name, from_sha):
        await self._record("create_branch_ref", new_name, from_sha)
        if new_name in self.branches:
            raise ConflictError(f"Reference already exists: {new_name}")
        self.branches[new_name] = from_sha
        return Branch(name=new_name, head_commit_sha=from_sha)

    async def get_commit(self, owner, repo, sha):
        await self._record("get_commit", sha)
        if sha not in self.commits:
            raise NotFoundError(f"Commit not found: {sha}")
        return self.commits[sha]

    async def path_exists(self, owner, repo, path, ref):
        await self._record("path_exists", path, ref)
        return path in self.files(ref)

    async def get_file(self, owner, repo, path, ref=None):
        await self._record("get_file", path, ref)
        files = self.files(ref)
        if path not in files:
            raise NotFoundError(f"File not found: {path}")
        return files[path]

    async def get_default_branch(self, owner, repo):
        await self._record("get_default_branch")
        return self.default_branch

    async def create_tree(self, owner, repo, base_tree_sha, entries: list[TreeEntry]):
        await self._record("create_tree", base_tree_sha, list(entries))
        files = dict(self.trees[base_tree_sha])
        for entry in entries:
            if entry.is_deletion:
                files.pop(entry.path, None)
            else:
                files[entry.path] = entry.content
        return self._store_tree(files)

    async def create_commit(self, owner, repo, message, tree_sha, parent_shas):
        await self._record("create_commit", message, tree_sha, list(parent_shas))
        return self._store_commit(tree_sha, parent_shas)

    async def update_ref(self, owner, repo, branch, new_sha):
        await self._record("update_ref", branch, new_sha)
        if branch not in self.branches:
            raise NotFoundError(f"Branch not found: {branch}")
        if self.branches[branch] not in self.commits[new_sha].parent_shas:
            raise ConflictError(f"Update is not a fast forward: {branch}")
        self.branches[branch] = new_sha

    async def list_pull_requests(self, owner, repo, base, head):
        await self._record("list_pull_requests", base, head)
        return [
            pr for pr in self.pull_requests
            if pr.head_branch == head and (base is None or pr.base_branch == base)
        ]

    async def create_pull_request(self, owner, repo, title, body, base, head):
        await self._record("create_pull_request", title, body, base, head)
        return self.open_pull_request(head, base)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_files():
    """Files on the default branch of the fake repository."""
    return {
        "README.md": "# app\n",
        "server/src/customer/customer.service.ts": "// customized service\n",
        "server/src/auth/auth.service.ts": "// old auth\n",
        "server/scripts/customSeed.ts": "// custom seed\n",
    }


@pytest.fixture
def gateway(sample_files):
    """Fake gateway holding a repository with sample files on main."""
    return FakeGateway(files=sample_files)
