"""Factory for authenticated gateways.

A fresh GitHubGateway is built per installation on demand from explicitly
supplied credentials; there is no process-wide client.
"""

import logging
from typing import Awaitable, Callable, Optional

import httpx

from gitdeliver.config import DEFAULT_API_URL, REQUEST_TIMEOUT
from gitdeliver.github.gateway import GitHubGateway


logger = logging.getLogger(__name__)

# Returns an access token for an installation id
TokenProvider = Callable[[str], Awaitable[str]]


class GitHubGatewayFactory:
    """Builds authenticated GitHub gateways."""

    def __init__(
        self,
        token_provider: Optional[TokenProvider] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the factory.

        Args:
            token_provider: Async callable issuing installation tokens.
                Required only for for_installation().
            api_url: Base URL of the GitHub REST API.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport passed to every gateway.
        """
        self.token_provider = token_provider
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    def from_token(self, token: str) -> GitHubGateway:
        """Build a gateway authenticated with a token."""
        return GitHubGateway(
            token,
            api_url=self.api_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def for_installation(self, installation_id: str) -> GitHubGateway:
        """Build a gateway for an app installation.

        Raises:
            ValueError: If the factory has no token provider.
        """
        if self.token_provider is None:
            raise ValueError("A token provider is required to authenticate installations.")
        token = await self.token_provider(installation_id)
        logger.debug("Issued gateway for installation %s", installation_id)
        return self.from_token(token)
