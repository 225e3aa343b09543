"""Failure taxonomy shared by the status proxy and the rotation client."""

from __future__ import annotations


class ChannelCycleError(Exception):
    """Base class for status and credential failures."""

    def __init__(self, message: str, *, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthFailure(ChannelCycleError):
    """The credential exchange or an authenticated call was rejected."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: str | None = None,
    ):
        super().__init__(message, details=details)
        self.status_code = status_code


class UpstreamError(ChannelCycleError):
    """Non-auth, non-2xx response from the upstream status query."""

    def __init__(self, status_code: int, details: str | None = None):
        super().__init__(f"Upstream returned HTTP {status_code}", details=details)
        self.status_code = status_code


class BadRequest(ChannelCycleError):
    """Malformed call to the proxy; never retried."""


class ConfigError(ChannelCycleError):
    """Server-side secrets are missing."""


class NetworkFailure(ChannelCycleError):
    """Transport-level failure reaching the upstream or the proxy."""


class CredentialRejected(AuthFailure):
    """The upstream refused a call made with the cached credential."""
