"""
Response decoders. A decoder is any callable taking a RawResponse and
returning the decoded value, raising DecodeError when the body does not fit.
"""
import codecs
import json
from typing import Any, Callable, Optional, Type, TypeVar, Union, get_origin

from pydantic import TypeAdapter, ValidationError

from .errors import DecodeError
from .models import RawResponse

T = TypeVar("T")

Decoder = Callable[[RawResponse], T]

JSON_CONTENT_TYPES = ("application/json", "text/json")


def _decode_error(response: RawResponse, message: str) -> DecodeError:
    return DecodeError(message, status_code=response.status_code, content_type=response.content_type)


def _is_json_content_type(content_type: Optional[str]) -> bool:
    if content_type is None:
        return True
    return content_type in JSON_CONTENT_TYPES or content_type.endswith("+json")


def as_bytes(response: RawResponse) -> bytes:
    return response.content


def as_text(response: RawResponse) -> str:
    """Decode the body using the declared charset, falling back to utf-8."""
    encoding = response.charset or "utf-8"
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise _decode_error(response, f"Unknown charset {encoding!r}")
    try:
        return response.content.decode(encoding)
    except UnicodeDecodeError as e:
        raise _decode_error(response, f"Body is not valid {encoding}: {e}") from e


def as_json(response: RawResponse) -> Any:
    """Parse the body as untyped JSON."""
    if not _is_json_content_type(response.content_type):
        raise _decode_error(response, "Expected a JSON content type")
    try:
        return json.loads(response.content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise _decode_error(response, f"Body is not valid JSON: {e}") from e


class JsonDecoder:
    """Validate a JSON body against a target type using pydantic."""

    def __init__(self, target: Any):
        self.target = target
        self._adapter = TypeAdapter(target)

    def __call__(self, response: RawResponse):
        if not _is_json_content_type(response.content_type):
            raise _decode_error(response, f"Expected a JSON content type for {self._target_name()}")
        try:
            return self._adapter.validate_json(response.content)
        except ValidationError as e:
            raise _decode_error(
                response,
                f"Body does not match {self._target_name()}: {e.error_count()} validation error(s)",
            ) from e

    def _target_name(self) -> str:
        return getattr(self.target, "__name__", repr(self.target))

    def __repr__(self) -> str:
        return f"JsonDecoder({self._target_name()})"


def decoder_for(target: Union[Decoder, Type, None]) -> Decoder:
    """Resolve a decoder argument: None means text, str and bytes map to raw
    decoders, a callable decoder is used as-is, any other type is validated as JSON."""
    if target is None or target is str:
        return as_text
    if target is bytes:
        return as_bytes
    if isinstance(target, type) or get_origin(target) is not None or not callable(target):
        return JsonDecoder(target)
    return target
