"""Exception types raised by the gateway."""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for every error the gateway raises on purpose."""


class ConfigError(GatewayError):
    """The configuration file exists but cannot be used."""


class UpstreamError(GatewayError):
    """A call to the upstream threads API did not succeed.

    ``kind`` lets callers branch without inspecting status codes.
    """

    kind = "failure"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UpstreamNotFound(UpstreamError):
    """The referenced thread does not exist upstream."""

    kind = "not_found"


class UpstreamFailure(UpstreamError):
    """Any other upstream error: auth, rate limit, network, server."""

    kind = "failure"
