"""Remote repository gateway.

All calls to the Git hosting service go through a RepositoryGateway. The
delivery engine is written against the abstract interface; GitHubGateway
implements it over the GitHub REST API.

Contains:
- RepositoryGateway: Abstract gateway with the composed pull-request capability
- GitHubGateway: GitHub REST API implementation on httpx
"""

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import quote

import httpx

from gitdeliver.changeset.models import ChangeSet
from gitdeliver.config import DEFAULT_API_URL, GITHUB_API_VERSION, REQUEST_TIMEOUT
from gitdeliver.exceptions import (
    ConflictError,
    NotFoundError,
    RemoteError,
    TransientTransportError,
)
from gitdeliver.github.models import Branch, Commit, PullRequest, TreeEntry
from gitdeliver.github.writer import build_commit


logger = logging.getLogger(__name__)


class RepositoryGateway(ABC):
    """Narrow interface over the Git hosting service."""

    @abstractmethod
    async def get_branch_ref(self, owner: str, repo: str, branch: str) -> Branch:
        """Get a branch and its tip.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        pass

    @abstractmethod
    async def create_branch_ref(self, owner: str, repo: str, new_name: str, from_sha: str) -> Branch:
        """Create a branch pointing at a commit."""
        pass

    @abstractmethod
    async def get_commit(self, owner: str, repo: str, sha: str) -> Commit:
        """Get a commit object."""
        pass

    @abstractmethod
    async def path_exists(self, owner: str, repo: str, path: str, ref: str) -> bool:
        """Check whether a file exists at a ref."""
        pass

    @abstractmethod
    async def get_file(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
        """Get the decoded content of a file, or None if the path is not a file.

        Raises:
            NotFoundError: If the path does not exist.
        """
        pass

    @abstractmethod
    async def get_default_branch(self, owner: str, repo: str) -> str:
        """Get the repository's default branch name."""
        pass

    @abstractmethod
    async def create_tree(self, owner: str, repo: str, base_tree_sha: str, entries: list[TreeEntry]) -> str:
        """Create a tree from a base tree plus changes and return its sha."""
        pass

    @abstractmethod
    async def create_commit(
        self, owner: str, repo: str, message: str, tree_sha: str, parent_shas: list[str]
    ) -> Commit:
        """Create a commit object."""
        pass

    @abstractmethod
    async def update_ref(self, owner: str, repo: str, branch: str, new_sha: str) -> None:
        """Fast-forward a branch to a new commit.

        Raises:
            ConflictError: If the update is not a fast-forward.
        """
        pass

    @abstractmethod
    async def list_pull_requests(
        self, owner: str, repo: str, base: Optional[str], head: str
    ) -> list[PullRequest]:
        """List open pull requests from head into base."""
        pass

    @abstractmethod
    async def create_pull_request(
        self, owner: str, repo: str, title: str, body: str, base: str, head: str
    ) -> PullRequest:
        """Open a pull request."""
        pass

    async def get_last_commit(self, owner: str, repo: str, branch: str) -> Commit:
        """Get the commit at the tip of a branch.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        ref = await self.get_branch_ref(owner, repo, branch)
        return await self.get_commit(owner, repo, ref.head_commit_sha)

    async def create_or_update_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        base: Optional[str],
        head: str,
        change_set: ChangeSet,
        commit_message: str,
    ) -> PullRequest:
        """Commit a change set to the head branch and open a pull request.

        If the head branch already exists the commit is layered on its tip and
        the branch is fast-forwarded. Otherwise the commit is layered on the
        base branch tip and the head branch is created pointing at it.

        Args:
            owner: Repository owner.
            repo: Repository name.
            title: Pull request title.
            body: Pull request body.
            base: Base branch. Defaults to the repository's default branch.
            head: Head branch.
            change_set: Directives to commit.
            commit_message: Message of the single commit.

        Returns:
            The opened pull request.
        """
        if not base:
            base = await self.get_default_branch(owner, repo)

        try:
            head_ref = await self.get_branch_ref(owner, repo, head)
        except NotFoundError:
            head_ref = None

        if head_ref is not None:
            parent = await self.get_commit(owner, repo, head_ref.head_commit_sha)
            commit = await build_commit(self, owner, repo, parent, change_set, commit_message)
            await self.update_ref(owner, repo, head, commit.sha)
        else:
            parent = await self.get_last_commit(owner, repo, base)
            commit = await build_commit(self, owner, repo, parent, change_set, commit_message)
            await self.create_branch_ref(owner, repo, head, commit.sha)

        pull_request = await self.create_pull_request(owner, repo, title, body, base, head)
        logger.info("Opened pull request %s", pull_request.url)
        return pull_request


def _tree_entry_payload(entry: TreeEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {"path": entry.path, "mode": entry.mode, "type": "blob"}
    if entry.is_deletion:
        payload["sha"] = None
    else:
        payload["content"] = entry.content
    return payload


def _commit_from_payload(data: dict[str, Any]) -> Commit:
    return Commit(
        sha=data["sha"],
        tree_sha=data["tree"]["sha"],
        parent_shas=[parent["sha"] for parent in data.get("parents", [])],
    )


def _pull_request_from_payload(data: dict[str, Any]) -> PullRequest:
    return PullRequest(
        head_branch=data["head"]["ref"],
        base_branch=data["base"]["ref"],
        url=data["html_url"],
        number=data.get("number"),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _is_rate_limited(response: httpx.Response) -> bool:
    return response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"


class GitHubGateway(RepositoryGateway):
    """RepositoryGateway over the GitHub REST API.

    Each instance owns one authenticated httpx.AsyncClient. Use it as an
    async context manager, or call aclose() when done.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the gateway.

        Args:
            token: Installation or personal access token.
            api_url: Base URL of the GitHub REST API.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
        )

    async def __aenter__(self) -> "GitHubGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        conflict_statuses: tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send a request and map failures onto the delivery error taxonomy.

        Raises:
            TransientTransportError: On timeouts, network errors, 5xx and rate limits.
            ConflictError: If the status is one of conflict_statuses.
            NotFoundError: On 404.
            RemoteError: On any other error status.
        """
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransientTransportError(f"GitHub request timed out: {method} {url}") from e
        except httpx.RequestError as e:
            raise TransientTransportError(f"GitHub network error: {method} {url}: {e}") from e

        status = response.status_code
        if status < 400:
            return response

        message = f"GitHub API error ({status}) on {method} {url}: {_error_message(response)}"
        if status in conflict_statuses:
            raise ConflictError(message)
        if status == 404:
            raise NotFoundError(message)
        if status == 429 or status >= 500 or _is_rate_limited(response):
            raise TransientTransportError(message)
        raise RemoteError(message, status_code=status)

    @staticmethod
    def _repo_url(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    async def get_branch_ref(self, owner: str, repo: str, branch: str) -> Branch:
        url = f"{self._repo_url(owner, repo)}/git/ref/heads/{quote(branch)}"
        data = (await self._request("GET", url)).json()
        return Branch(name=branch, head_commit_sha=data["object"]["sha"])

    async def create_branch_ref(self, owner: str, repo: str, new_name: str, from_sha: str) -> Branch:
        url = f"{self._repo_url(owner, repo)}/git/refs"
        payload = {"ref": f"refs/heads/{new_name}", "sha": from_sha}
        # 422 means the reference already exists
        data = (await self._request("POST", url, json=payload, conflict_statuses=(422,))).json()
        return Branch(name=new_name, head_commit_sha=data["object"]["sha"])

    async def get_commit(self, owner: str, repo: str, sha: str) -> Commit:
        url = f"{self._repo_url(owner, repo)}/git/commits/{sha}"
        return _commit_from_payload((await self._request("GET", url)).json())

    async def _get_contents(self, owner: str, repo: str, path: str, ref: Optional[str]) -> Any:
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path)}"
        params = {"ref": ref} if ref else None
        return (await self._request("GET", url, params=params)).json()

    async def path_exists(self, owner: str, repo: str, path: str, ref: str) -> bool:
        try:
            await self._get_contents(owner, repo, path, ref)
        except NotFoundError:
            return False
        return True

    async def get_file(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
        data = await self._get_contents(owner, repo, path, ref)

        # Directories come back as a list of entries
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        if data.get("encoding") != "base64":
            return data.get("content")
        try:
            return base64.b64decode(data.get("content", "")).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise RemoteError(f"Cannot decode {path} as UTF-8 text: {e}") from e

    async def get_default_branch(self, owner: str, repo: str) -> str:
        data = (await self._request("GET", self._repo_url(owner, repo))).json()
        return data["default_branch"]

    async def create_tree(self, owner: str, repo: str, base_tree_sha: str, entries: list[TreeEntry]) -> str:
        url = f"{self._repo_url(owner, repo)}/git/trees"
        payload = {
            "base_tree": base_tree_sha,
            "tree": [_tree_entry_payload(entry) for entry in entries],
        }
        return (await self._request("POST", url, json=payload)).json()["sha"]

    async def create_commit(
        self, owner: str, repo: str, message: str, tree_sha: str, parent_shas: list[str]
    ) -> Commit:
        url = f"{self._repo_url(owner, repo)}/git/commits"
        payload = {"message": message, "tree": tree_sha, "parents": list(parent_shas)}
        return _commit_from_payload((await self._request("POST", url, json=payload)).json())

    async def update_ref(self, owner: str, repo: str, branch: str, new_sha: str) -> None:
        url = f"{self._repo_url(owner, repo)}/git/refs/heads/{quote(branch)}"
        payload = {"sha": new_sha, "force": False}
        await self._request("PATCH", url, json=payload, conflict_statuses=(409, 422))

    async def list_pull_requests(
        self, owner: str, repo: str, base: Optional[str], head: str
    ) -> list[PullRequest]:
        url = f"{self._repo_url(owner, repo)}/pulls"
        # GitHub filters head branches by "owner:branch"
        params: dict[str, Any] = {
            "state": "open",
            "head": head if ":" in head else f"{owner}:{head}",
            "per_page": 100,
        }
        if base:
            params["base"] = base
        data = (await self._request("GET", url, params=params)).json()
        return [_pull_request_from_payload(item) for item in data]

    async def create_pull_request(
        self, owner: str, repo: str, title: str, body: str, base: str, head: str
    ) -> PullRequest:
        url = f"{self._repo_url(owner, repo)}/pulls"
        payload = {"title": title, "body": body, "base": base, "head": head}
        return _pull_request_from_payload((await self._request("POST", url, json=payload)).json())
