"""
Header validation: turn a string-keyed mapping into HeaderEntry values.

A malformed pair in a mapping is dropped with a warning; it never aborts the
rest of the mapping. Sequences of entries are expected to be validated
already, so a malformed entry there is a ConstructionError.
"""
import re
from typing import Iterable, List, Mapping, Tuple, Union

import structlog

from .errors import ConstructionError
from .models import HeaderEntry

logger = structlog.get_logger(__name__)

# RFC 7230 section 3.2.6
TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
# RFC 7230 section 3.2, restricted to ASCII since httpx encodes values as ASCII
FIELD_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*$")

HeadersInput = Union[
    Mapping[str, str],
    Iterable[Union[HeaderEntry, Tuple[str, str]]],
    None,
]


def validate_header(name: str, value: str) -> HeaderEntry:
    """Validate one header pair against the RFC 7230 grammar."""
    if not isinstance(name, str) or not isinstance(value, str):
        raise ConstructionError(f"Header name and value must be strings, got {name!r}: {value!r}")
    if not TOKEN_RE.match(name):
        raise ConstructionError(f"Invalid header name {name!r}")
    value = value.strip(" \t")
    if not FIELD_VALUE_RE.match(value):
        raise ConstructionError(f"Invalid value for header {name!r}")
    return HeaderEntry(name=name, value=value)


def parse_headers(header_map: Mapping[str, str]) -> List[HeaderEntry]:
    """Parse a header mapping, omitting and logging any pair that fails validation."""
    entries = []
    for name, value in header_map.items():
        try:
            entries.append(validate_header(name, value))
        except ConstructionError as e:
            logger.warning("header_parse_failed", header=name, error=str(e))
    return entries


def to_header_entries(headers: HeadersInput) -> Tuple[HeaderEntry, ...]:
    """Explicit conversion of a mapping or a sequence of pairs into header entries."""
    if headers is None:
        return ()
    if isinstance(headers, Mapping):
        return tuple(parse_headers(headers))

    entries = []
    for item in headers:
        if isinstance(item, HeaderEntry):
            entries.append(validate_header(item.name, item.value))
        else:
            try:
                name, value = item
            except (TypeError, ValueError) as e:
                raise ConstructionError(f"Header entries must be (name, value) pairs, got {item!r}") from e
            entries.append(validate_header(name, value))
    return tuple(entries)
