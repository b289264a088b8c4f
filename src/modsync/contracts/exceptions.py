"""Exception hierarchy for modsync.

All modsync exceptions inherit from :class:`ModSyncError`, making it easy
to catch any library error with a single ``except`` clause while still allowing
callers to handle specific failure modes.
"""

from __future__ import annotations


class ModSyncError(Exception):
    """Base exception for all modsync errors."""


class ConfigError(ModSyncError):
    """Configuration loading or validation failure."""


class PersistenceError(ModSyncError):
    """Local state or cache file could not be read or written."""


class GatewayError(ModSyncError):
    """A remote catalog call failed.

    Attributes:
        status_code: HTTP-like status code; ``0`` when no response was received.
        error_ref: Service-specific error reference, if one was returned.
        limited_until: Unix timestamp until which requests are rate limited.
        server_unreachable: The transport itself appears to be down.
        unresolvable: Retrying the same request can never succeed.
        display_message: Human readable text suitable for the user.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        error_ref: int | None = None,
        limited_until: float | None = None,
        server_unreachable: bool = False,
        unresolvable: bool = False,
        display_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_ref = error_ref
        self.limited_until = limited_until
        self.server_unreachable = server_unreachable
        self.unresolvable = unresolvable
        self.display_message = display_message or message


class AuthenticationError(GatewayError):
    """The stored credential was rejected or is missing."""

    def __init__(self, message: str, *, status_code: int = 401, display_message: str | None = None) -> None:
        super().__init__(message, status_code=status_code, display_message=display_message)


class SyncError(ModSyncError):
    """Engine-level synchronization failure."""


class SyncHalted(SyncError):
    """A wait or polling loop was interrupted because its owner stopped."""
