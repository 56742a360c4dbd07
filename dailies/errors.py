"""Exception hierarchy for Dailies.

Local timer operations never raise except :class:`ValidationError` from
``TimerEngine.add``.  Everything remote raises a :class:`SyncError`
subclass so callers can show a message without inspecting transport
details.
"""

from __future__ import annotations


class DailiesError(Exception):
    """Base class for all Dailies errors."""


class ValidationError(DailiesError):
    """Rejected user input (e.g. an empty timer name)."""


class SyncError(DailiesError):
    """Base class for remote synchronisation failures."""


class NotConfigured(SyncError):
    def __init__(self, message: str = "Google Sheets is not configured") -> None:
        super().__init__(message)


class AuthFailure(SyncError):
    """Could not obtain an access token."""


class InvalidKeyMaterial(AuthFailure):
    def __init__(self, message: str = "Invalid private key format") -> None:
        super().__init__(message)


class ExchangeRejected(AuthFailure):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"Token exchange rejected ({status}): {message}")
        self.status = status


class WriteNotPermitted(SyncError):
    def __init__(self) -> None:
        super().__init__(
            "API keys only support reading data. "
            "Use a service account to write/sync data"
        )


class NetworkFailure(SyncError):
    """Transport-level failure (DNS, refused connection, timeout)."""


class HttpError(SyncError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class DecodeFailure(SyncError):
    """The remote returned something that is not the expected shape."""
