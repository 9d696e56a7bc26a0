"""
Request/response values and the explicit conversions that build them.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Generic, Optional, Tuple, TypeVar, Union

import httpx

from .errors import ConstructionError, DispatchError, FailureKind

T = TypeVar("T")

Duration = Union[int, float, timedelta]


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True)
class HeaderEntry:
    name: str
    value: str

    def as_tuple(self) -> Tuple[str, str]:
        return (self.name, self.value)


@dataclass(frozen=True)
class Request:
    method: HttpMethod
    url: httpx.URL
    headers: Tuple[HeaderEntry, ...] = ()
    body: bytes = b""


@dataclass(frozen=True)
class RawResponse:
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""
    url: Optional[httpx.URL] = None

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters, lower-cased, or None if not declared."""
        raw = self.headers.get("content-type")
        if not raw:
            return None
        return raw.split(";", 1)[0].strip().lower() or None

    @property
    def charset(self) -> Optional[str]:
        raw = self.headers.get("content-type", "")
        for param in raw.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset":
                return value.strip().strip('"\'') or None
        return None


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Terminal result of one dispatch: a decoded value or one classified failure."""

    value: Optional[T] = None
    error: Optional[DispatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[FailureKind]:
        return None if self.error is None else self.error.kind

    def unwrap(self) -> T:
        """Return the value, or raise the failure this outcome carries."""
        if self.error is not None:
            raise self.error
        return self.value


def parse_url(url: Union[str, httpx.URL]) -> httpx.URL:
    """Convert a string to an absolute http(s) URL, raising ConstructionError otherwise."""
    try:
        parsed = url if isinstance(url, httpx.URL) else httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConstructionError(f"Invalid URL {url!r}: {e}") from e

    if parsed.scheme not in ("http", "https"):
        raise ConstructionError(f"Invalid URL {url!r}: scheme must be http or https")
    if not parsed.host:
        raise ConstructionError(f"Invalid URL {url!r}: missing host")
    return parsed


def as_seconds(duration: Duration, name: str = "duration") -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise ConstructionError(f"{name} must be a number of seconds or a timedelta, got {duration!r}")
    return float(duration)
