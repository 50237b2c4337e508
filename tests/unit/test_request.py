"""
Unit tests for request-line and header-line parsing.
"""

import pytest

from minihttpd.http.errors import MalformedHeaderLine, MalformedRequestLine
from minihttpd.http.request import (
    RequestData,
    parse_header_line,
    parse_query,
    parse_request_line,
)


class TestParseRequestLine:
    """Tests for parse_request_line()."""

    def test_splits_three_tokens(self):
        """A plain request line yields method, path, empty query, protocol."""
        method, path, query, protocol = parse_request_line(b"GET /index.html HTTP/1.1")

        assert method == "GET"
        assert path == "/index.html"
        assert query == {}
        assert protocol == "HTTP/1.1"

    def test_method_uppercased(self):
        """Lowercase methods are normalized."""
        method, _, _, _ = parse_request_line(b"post /form HTTP/1.0")
        assert method == "POST"

    def test_protocol_kept_verbatim(self):
        """The protocol token is not validated or rewritten."""
        _, _, _, protocol = parse_request_line(b"GET / HTTP/1.0")
        assert protocol == "HTTP/1.0"

    def test_query_split_from_path(self):
        """Target splits on the first '?'."""
        _, path, query, _ = parse_request_line(b"GET /search?q=a&lang=en HTTP/1.1")

        assert path == "/search"
        assert query == {"q": "a", "lang": "en"}

    @pytest.mark.parametrize("line", [
        b"",
        b"GET",
        b"GET /",
        b"GET / HTTP/1.1 extra",
        b"GET  / HTTP/1.1",
        b" GET / HTTP/1.1",
        b"GET / HTTP/1.1 ",
    ])
    def test_wrong_token_count_rejected(self, line: bytes):
        """Anything but exactly three non-empty tokens is malformed."""
        with pytest.raises(MalformedRequestLine):
            parse_request_line(line)

    def test_path_must_start_with_slash(self):
        """Absolute-form and bare targets are rejected."""
        with pytest.raises(MalformedRequestLine):
            parse_request_line(b"GET index.html HTTP/1.1")

    def test_non_ascii_bytes_survive(self):
        """Latin-1 decoding keeps every byte of the path."""
        _, path, _, _ = parse_request_line(b"GET /caf\xc3\xa9 HTTP/1.1")
        assert path.encode("iso-8859-1") == b"/caf\xc3\xa9"

    def test_malformed_error_is_400(self):
        """Malformed request lines map to 400."""
        with pytest.raises(MalformedRequestLine) as exc_info:
            parse_request_line(b"GET")
        assert exc_info.value.status_code == 400


class TestParseQuery:
    """Tests for parse_query()."""

    def test_missing_equals_gives_empty_value(self):
        """A bare key maps to an empty string."""
        assert parse_query("flag&q=a") == {"flag": "", "q": "a"}

    def test_last_occurrence_wins(self):
        """Repeated keys keep the last value."""
        assert parse_query("q=1&q=2") == {"q": "2"}

    def test_split_on_first_equals(self):
        """Values may contain '='."""
        assert parse_query("expr=a=b") == {"expr": "a=b"}

    def test_empty_pairs_skipped(self):
        """'&&' and a trailing '&' do not create entries."""
        assert parse_query("a=1&&b=2&") == {"a": "1", "b": "2"}

    def test_no_percent_decoding(self):
        """Escapes are passed through untouched."""
        assert parse_query("q=hello%20world") == {"q": "hello%20world"}

    def test_empty(self):
        """An empty query is an empty dict."""
        assert parse_query("") == {}


class TestParseHeaderLine:
    """Tests for parse_header_line()."""

    def test_name_lowercased_value_trimmed(self):
        """Names are lowercased, values trimmed."""
        assert parse_header_line(b"Content-Type:   text/html  ") == ("content-type", "text/html")

    def test_name_trimmed(self):
        """Whitespace around the name is dropped."""
        assert parse_header_line(b"  X-Padded : spaced") == ("x-padded", "spaced")

    def test_splits_on_first_separator(self):
        """Later ': ' sequences belong to the value."""
        assert parse_header_line(b"X-Time: 12: 30") == ("x-time", "12: 30")

    def test_colon_without_space_in_value(self):
        """A value like host:port is kept whole."""
        assert parse_header_line(b"Host: localhost:8080") == ("host", "localhost:8080")

    @pytest.mark.parametrize("line", [
        b"NoSeparatorHere",
        b"Host:localhost",
        b": value-without-name",
    ])
    def test_malformed(self, line: bytes):
        """Missing separator or empty name is malformed."""
        with pytest.raises(MalformedHeaderLine):
            parse_header_line(line)


class TestRequestData:
    """Tests for RequestData helpers."""

    def test_get_header_case_insensitive(self):
        """Lookups ignore case."""
        request = RequestData("GET", "/", "HTTP/1.1", headers={"host": "example.com"})

        assert request.get_header("Host") == "example.com"
        assert request.get_header("HOST") == "example.com"
        assert request.get_header("missing", "none") == "none"

    def test_get_query(self):
        """Query helper returns default for missing keys."""
        request = RequestData("GET", "/", "HTTP/1.1", query={"page": "2"})

        assert request.get_query("page") == "2"
        assert request.get_query("limit") is None
        assert request.get_query("limit", "10") == "10"

    def test_content_length(self):
        """content_length reads the header, 0 when absent."""
        assert RequestData("GET", "/", "HTTP/1.1").content_length == 0
        assert RequestData("POST", "/", "HTTP/1.1", headers={"content-length": "5"}).content_length == 5
