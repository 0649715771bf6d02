"""
Tracker exceptions.

Network and backend failures surface as typed errors so the CLI can report
them and let the operator re-run the command. Malformed records never raise;
they are excluded or defaulted where they are read.
"""

from typing import Optional


class TrackerError(Exception):
    """Root exception for all VulnTrack errors."""


class BackendUnavailable(TrackerError):
    """The backend could not be reached (DNS, refused connection, timeout)."""


class BackendError(TrackerError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationRequired(BackendError):
    """No token, or the backend rejected the stored token (HTTP 401)."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class AuthenticationFailed(TrackerError):
    """The login endpoint refused the supplied credentials."""


class ExportError(TrackerError):
    """An export could not be written."""


class InvalidUpdate(TrackerError):
    """A requested change is not valid for the finding's source."""
