"""
Message vault errors.

Domain exceptions raised by the lifecycle, the store and the limiter.
They are independent of the HTTP layer; routes map them to status codes.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base exception for vault operations."""

    pass


class ValidationError(VaultError):
    """Malformed handle, empty payload or unusable client identity."""

    pass


class ConflictError(VaultError):
    """A message with this handle already exists."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Message handle already in use: {handle}")


class NotFoundError(VaultError):
    """No message for the handle: never created, already read, or expired."""

    pass


class UnauthorizedError(VaultError):
    """The supplied access secret does not match. The message is kept."""

    pass


class BackendUnavailableError(VaultError):
    """The persistence backend failed or is unreachable."""

    pass


class RateLimitedError(VaultError):
    """The client exhausted its request budget."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Too many requests from {client_id}")
