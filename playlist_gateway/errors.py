"""
Error types raised by the gateway services.
"""
from typing import Optional


class GatewayError(Exception):
    """Base class for gateway errors."""


class ValidationError(GatewayError):
    """Inbound request parameters are missing or invalid."""


class UpstreamError(GatewayError):
    """The upstream metadata API returned a failure for a catalog request."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{message}: HTTP {status_code} {body}".rstrip()
        super().__init__(message)


class ChannelFetchError(GatewayError):
    """A single attempt to fetch channel metadata failed."""


class BuildFailure(GatewayError):
    """No playlist could be produced for a request."""
