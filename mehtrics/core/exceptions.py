"""mehtrics.core.exceptions

Errors are part of the interface.
"""

from __future__ import annotations


class MehtricsError(Exception):
    """Base exception for mehtrics."""


class ConfigError(MehtricsError):
    """Configuration is missing, invalid, or inconsistent."""


class EventSchemaError(MehtricsError):
    """Event payload does not match the shape bound to its type tag."""


class QueueStoreError(MehtricsError):
    """Durable queue storage failed after it was opened."""


class MessagingError(MehtricsError):
    """Message queue contract violations."""


class RemoteError(MehtricsError):
    """A call to the remote API did not succeed."""

    permanent: bool = False


class RemoteUnavailableError(RemoteError):
    """The remote API could not be reached (network error or timeout)."""


class RemoteRejectedError(RemoteError):
    """The remote API answered with a non-2xx status."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"remote rejected request with status {status}")
        self.status = int(status)

    @property
    def permanent(self) -> bool:  # type: ignore[override]
        # Retrying will not change a 4xx verdict, except timeouts and throttling.
        return 400 <= self.status < 500 and self.status not in (408, 429)
