"""Delivery-related exception classes.

Contains all exception classes raised by the delivery engine:
- GitDeliveryError: Base exception for delivery errors
- NotFoundError: A branch, ref or path does not exist remotely
- ConflictError: A ref update was not a fast-forward
- TransientTransportError: Network, timeout or 5xx failure (retryable)
- PolicyAmbiguityError: More than one open pull request matches head/base
- MalformedInputError: A module path is invalid
- RemoteError: Any other rejected request to the remote host
"""

from typing import Optional


class GitDeliveryError(Exception):
    """Base exception for delivery errors."""

    pass


class NotFoundError(GitDeliveryError):
    """Raised when a referenced branch, ref or path does not exist remotely."""

    pass


class ConflictError(GitDeliveryError):
    """Raised when a ref update is rejected because the branch moved."""

    pass


class TransientTransportError(GitDeliveryError):
    """Raised on network errors, timeouts and server-side failures.

    The engine never retries these itself; callers may retry the whole
    delivery with backoff.
    """

    pass


class PolicyAmbiguityError(GitDeliveryError):
    """Raised when more than one open pull request matches the same head/base pair."""

    pass


class MalformedInputError(GitDeliveryError):
    """Raised when a module path is empty, absolute or otherwise invalid."""

    pass


class RemoteError(GitDeliveryError):
    """Raised when the remote host rejects a request for any other reason."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
