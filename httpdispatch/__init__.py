"""
Async HTTP request helper: pause, race against a timeout, decode.
"""
from .decoders import Decoder, JsonDecoder, as_bytes, as_json, as_text, decoder_for
from .dispatcher import (
    DEFAULT_PAUSE,
    DEFAULT_TIMEOUT,
    RequestDispatcher,
    build_request,
    delete,
    dispatch,
    get,
    post,
    put,
)
from .errors import (
    ConstructionError,
    DecodeError,
    DispatchError,
    DispatchTimeout,
    FailureKind,
    HttpDispatchError,
    TransportError,
)
from .headers import parse_headers, to_header_entries, validate_header
from .models import HeaderEntry, HttpMethod, Outcome, RawResponse, Request, as_seconds, parse_url
from .transport import HttpxTransport, Transport

__version__ = "0.1.0"
