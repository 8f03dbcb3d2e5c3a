"""
Transport failure types.

Raised by the lookup gateway (and mirrored by the mock backend) so that callers
can tell a dead backend from a failing one without parsing error strings.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base class for every failure raised by a lookup call."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class HTTPStatusFailure(GatewayError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", *, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status_code}: {body}", url=url)
        self.status_code = status_code
        self.body = body

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class LookupTimeout(GatewayError):
    def __init__(self, timeout_seconds: float, *, url: Optional[str] = None) -> None:
        super().__init__(f"No response within {timeout_seconds:g}s ({url})", url=url)
        self.timeout_seconds = timeout_seconds


class NetworkUnavailable(GatewayError):
    """The backend could not be reached at all."""


class ResponseDecodeError(GatewayError):
    """The response body was not valid JSON."""
