"""
Error taxonomy for a single dispatch: construction, transport, timeout, decode.
"""
from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    DECODE = "decode"


class HttpDispatchError(Exception):
    """Base class for every error raised by httpdispatch."""


class ConstructionError(HttpDispatchError, ValueError):
    """Malformed URL, header, duration or body; raised before any network activity."""


class DispatchError(HttpDispatchError):
    """A request was built but did not produce a decoded value."""

    kind: FailureKind

    def __init__(self, message: str, request=None):
        super().__init__(message)
        self.request = request


class TransportError(DispatchError):
    """The underlying HTTP call failed (connection refused, protocol error, ...)."""

    kind = FailureKind.TRANSPORT


class DispatchTimeout(DispatchError, TimeoutError):
    """The timeout timer fired before the HTTP call resolved."""

    kind = FailureKind.TIMEOUT

    def __init__(self, message: str, timeout: float, request=None):
        super().__init__(message, request=request)
        self.timeout = timeout


class DecodeError(DispatchError):
    """The call succeeded but its body could not be converted to the requested type."""

    kind = FailureKind.DECODE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        content_type: Optional[str] = None,
        request=None,
    ):
        super().__init__(message, request=request)
        self.status_code = status_code
        self.content_type = content_type

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (status={self.status_code}, content_type={self.content_type or 'unknown'})"
