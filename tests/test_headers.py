import pytest
from structlog.testing import capture_logs

from httpdispatch.errors import ConstructionError
from httpdispatch.headers import parse_headers, to_header_entries, validate_header
from httpdispatch.models import HeaderEntry


class TestParseHeaders:
    """Tests for parse_headers."""

    def test_drops_malformed_entry_and_keeps_the_rest(self):
        with capture_logs() as logs:
            entries = parse_headers({"X-Ok": "1", "": "bad"})

        assert entries == [HeaderEntry("X-Ok", "1")]
        assert len(logs) == 1
        assert logs[0]["event"] == "header_parse_failed"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["header"] == ""

    def test_preserves_insertion_order(self):
        entries = parse_headers({"B": "2", "A": "1", "C": "3"})
        assert [e.name for e in entries] == ["B", "A", "C"]

    def test_invalid_value_is_dropped(self):
        with capture_logs() as logs:
            entries = parse_headers({"X-Injected": "a\r\nSet-Cookie: x", "Accept": "text/html"})

        assert entries == [HeaderEntry("Accept", "text/html")]
        assert logs[0]["header"] == "X-Injected"

    def test_name_with_separator_is_dropped(self):
        with capture_logs():
            entries = parse_headers({"Bad Name": "v", "Bad:Name": "v", "Good-Name": "v"})
        assert entries == [HeaderEntry("Good-Name", "v")]

    def test_empty_mapping(self):
        assert parse_headers({}) == []


class TestValidateHeader:
    """Tests for validate_header."""

    def test_strips_optional_whitespace(self):
        assert validate_header("X-Trace", "  abc\t") == HeaderEntry("X-Trace", "abc")

    def test_allows_empty_value(self):
        assert validate_header("X-Empty", "") == HeaderEntry("X-Empty", "")

    def test_rejects_non_ascii_value(self):
        with pytest.raises(ConstructionError):
            validate_header("X-Name", "café")

    def test_rejects_non_string(self):
        with pytest.raises(ConstructionError):
            validate_header("X-Count", 3)


class TestToHeaderEntries:
    """Tests for the explicit mapping-or-sequence conversion."""

    def test_none(self):
        assert to_header_entries(None) == ()

    def test_mapping_goes_through_parse_headers(self):
        with capture_logs() as logs:
            entries = to_header_entries({"X-Ok": "1", "": "bad"})
        assert entries == (HeaderEntry("X-Ok", "1"),)
        assert logs[0]["event"] == "header_parse_failed"

    def test_sequence_of_pairs_and_entries(self):
        entries = to_header_entries([("Accept", "application/json"), HeaderEntry("X-Id", "7")])
        assert entries == (HeaderEntry("Accept", "application/json"), HeaderEntry("X-Id", "7"))

    def test_duplicate_names_are_kept(self):
        entries = to_header_entries([("Cookie", "a=1"), ("Cookie", "b=2")])
        assert len(entries) == 2

    def test_invalid_sequence_entry_is_a_construction_error(self):
        with pytest.raises(ConstructionError):
            to_header_entries([("", "bad")])

    def test_non_pair_item(self):
        with pytest.raises(ConstructionError):
            to_header_entries([("only-name",)])
