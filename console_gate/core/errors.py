"""Failure taxonomy for the bootstrap pass.

None of these are fatal: the worst outcome of any of them is that the user
lands on the default view, or sees an interstitial they already dismissed.
"""

from typing import Optional


class BootstrapError(Exception):
    """Base class for every error raised by the bootstrap subsystem."""


class SnapshotUnavailable(BootstrapError):
    """A decision input could not be fetched or was malformed.

    Recovered by falling back to ``none`` for the current pass.
    """


class InvalidTimestamp(BootstrapError):
    """A date field could not be parsed; no expiration window applies."""


class DismissalPersistFailure(BootstrapError):
    """The durable dismissal write did not reach the settings endpoint."""


class StaleBootstrapPass(BootstrapError):
    """The session logged out or changed token while the pass was in flight."""


class UpstreamError(BootstrapError):
    """Transport failure or non-2xx answer from an upstream API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionExpired(UpstreamError):
    """Upstream rejected the bearer token (401/403)."""
