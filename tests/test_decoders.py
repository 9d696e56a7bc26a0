from typing import List

import httpx
import pytest
from pydantic import BaseModel

from httpdispatch.decoders import JsonDecoder, as_bytes, as_json, as_text, decoder_for
from httpdispatch.errors import DecodeError, FailureKind
from httpdispatch.models import RawResponse


class Item(BaseModel):
    id: int
    name: str


def response(content: bytes, content_type: str = None, status_code: int = 200) -> RawResponse:
    headers = httpx.Headers({"content-type": content_type} if content_type else {})
    return RawResponse(status_code=status_code, headers=headers, content=content)


class TestTextAndBytes:
    """Tests for as_text and as_bytes."""

    def test_text_defaults_to_utf8(self):
        assert as_text(response("héllo".encode("utf-8"), "text/plain")) == "héllo"

    def test_text_uses_declared_charset(self):
        raw = response("héllo".encode("latin-1"), "text/plain; charset=ISO-8859-1")
        assert as_text(raw) == "héllo"

    def test_text_with_invalid_bytes_is_a_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            as_text(response(b"\xff\xfe\xfa", "text/plain", status_code=201))
        assert exc_info.value.status_code == 201
        assert exc_info.value.content_type == "text/plain"

    def test_unknown_charset(self):
        with pytest.raises(DecodeError):
            as_text(response(b"abc", "text/plain; charset=not-a-charset"))

    def test_bytes_passthrough(self):
        assert as_bytes(response(b"\x00\x01")) == b"\x00\x01"


class TestJson:
    """Tests for untyped and typed JSON decoding."""

    def test_as_json(self):
        assert as_json(response(b'{"a": [1, 2]}', "application/json")) == {"a": [1, 2]}

    def test_as_json_rejects_html(self):
        with pytest.raises(DecodeError) as exc_info:
            as_json(response(b"<html></html>", "text/html; charset=utf-8", status_code=502))
        assert exc_info.value.kind is FailureKind.DECODE
        assert exc_info.value.status_code == 502
        assert exc_info.value.content_type == "text/html"
        assert "status=502" in str(exc_info.value)

    def test_as_json_invalid_body(self):
        with pytest.raises(DecodeError):
            as_json(response(b"{not json", "application/json"))

    def test_model_decoding(self):
        item = JsonDecoder(Item)(response(b'{"id": 1, "name": "a"}', "application/json"))
        assert item == Item(id=1, name="a")

    def test_shape_mismatch_is_a_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            JsonDecoder(Item)(response(b'{"id": "x"}', "application/json"))
        assert "Item" in str(exc_info.value)

    def test_vendor_json_content_type(self):
        decoded = JsonDecoder(Item)(response(b'{"id": 2, "name": "b"}', "application/vnd.api+json"))
        assert decoded.id == 2

    def test_missing_content_type_is_accepted(self):
        assert JsonDecoder(int)(response(b"42")) == 42

    def test_generic_target(self):
        decoded = JsonDecoder(List[Item])(response(b'[{"id": 1, "name": "a"}]', "application/json"))
        assert decoded == [Item(id=1, name="a")]


class TestDecoderFor:
    """Tests for decoder resolution."""

    def test_none_and_str_mean_text(self):
        assert decoder_for(None) is as_text
        assert decoder_for(str) is as_text

    def test_bytes(self):
        assert decoder_for(bytes) is as_bytes

    def test_callable_is_used_as_is(self):
        def first_line(raw):
            return raw.content.splitlines()[0]

        assert decoder_for(first_line) is first_line

    def test_types_become_json_decoders(self):
        assert isinstance(decoder_for(Item), JsonDecoder)
        assert isinstance(decoder_for(List[Item]), JsonDecoder)
        assert isinstance(decoder_for(dict), JsonDecoder)
