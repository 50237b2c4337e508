"""
Unit tests for response serialization.
"""

from datetime import datetime, timezone

from minihttpd.http.response import (
    Reply,
    ResponseData,
    build_response,
    error_response,
    format_http_date,
)
from minihttpd.http.status_codes import HTTPStatus


def split_response(raw: bytes):
    """Return (status line, header dict, body) of serialized bytes."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


class TestToBytes:
    """Tests for ResponseData.to_bytes()."""

    def test_status_line(self):
        """Status line is protocol, code and reason."""
        response = ResponseData(protocol="HTTP/1.0", status_code=404, reason="Not Found")
        status_line, _, _ = split_response(response.to_bytes())
        assert status_line == "HTTP/1.0 404 Not Found"

    def test_caller_supplied_reason(self):
        """Any code and reason pass through unchanged."""
        response = ResponseData(status_code=299, reason="Mostly Fine")
        assert response.to_bytes().startswith(b"HTTP/1.1 299 Mostly Fine\r\n")

    def test_content_length_matches_body(self):
        """Content-Length equals the body length and the body follows verbatim."""
        body = b"\x00\x01binary\xff"
        response = ResponseData(body=body)
        _, headers, raw_body = split_response(response.to_bytes())

        assert headers["Content-Length"] == str(len(body))
        assert raw_body == body

    def test_empty_body(self):
        """An empty body serializes as Content-Length: 0 and nothing after."""
        raw = ResponseData().to_bytes()
        _, headers, body = split_response(raw)

        assert headers["Content-Length"] == "0"
        assert raw.endswith(b"\r\n\r\n")
        assert body == b""

    def test_caller_content_length_and_server_replaced(self):
        """Caller values for owned headers are dropped, whatever the case."""
        response = ResponseData(
            headers={
                "content-length": "999",
                "CONTENT-LENGTH": "1",
                "sErVeR": "spoofed",
                "X-Custom": "kept",
            },
            body=b"abc",
        )
        raw = response.to_bytes(server_name="test-server")
        head = raw.partition(b"\r\n\r\n")[0].decode().lower()

        assert head.count("content-length:") == 1
        assert head.count("server:") == 1
        assert "content-length: 3" in head
        assert "server: test-server" in head
        assert "x-custom: kept" in head

    def test_original_headers_untouched(self):
        """Serialization does not mutate the response."""
        headers = {"Content-Length": "999"}
        ResponseData(headers=headers).to_bytes()
        assert headers == {"Content-Length": "999"}

    def test_default_headers(self):
        """Date and Connection: close are added."""
        _, headers, _ = split_response(ResponseData().to_bytes())

        assert headers["Date"].endswith(" GMT")
        assert headers["Connection"] == "close"
        assert headers["Server"] == "minihttpd/1.0"

    def test_caller_date_kept(self):
        """A caller Date header wins over the default."""
        response = ResponseData(headers={"date": "Thu, 01 Jan 1970 00:00:00 GMT"})
        head = response.to_bytes().partition(b"\r\n\r\n")[0].decode()

        assert "date: Thu, 01 Jan 1970 00:00:00 GMT" in head
        assert head.lower().count("date:") == 1

    def test_build_response_function(self):
        """build_response() is the same as to_bytes()."""
        response = ResponseData(
            headers={"Date": "Thu, 01 Jan 1970 00:00:00 GMT"},
            body=b"same",
        )
        assert build_response(response, "s") == response.to_bytes("s")


class TestFromReply:
    """Tests for turning responder replies into responses."""

    def test_echoes_protocol_and_content_type(self):
        """Protocol comes from the request, Content-Type from the reply."""
        reply = Reply(status_code=200, reason="OK", body=b"hi", content_type="text/plain")
        response = ResponseData.from_reply(reply, protocol="HTTP/1.0")

        assert response.protocol == "HTTP/1.0"
        assert response.headers == {"Content-Type": "text/plain"}
        assert response.body == b"hi"


class TestErrorResponse:
    """Tests for canned error responses."""

    def test_canned_body(self):
        """Body and reason come from the status."""
        response = error_response(HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)

        assert response.status_code == 431
        assert response.reason == "Request Header Fields Too Large"
        assert response.body == b"431 Request Header Fields Too Large"
        assert response.protocol == "HTTP/1.1"

    def test_custom_message(self):
        """A message replaces the default body."""
        response = error_response(HTTPStatus.SERVICE_UNAVAILABLE, message="busy")
        assert response.body == b"busy"


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_format(self):
        """RFC 7231 IMF-fixdate."""
        dt = datetime(2026, 1, 7, 9, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Wed, 07 Jan 2026 09:05:03 GMT"


class TestHTTPStatus:
    """Tests for HTTPStatus."""

    def test_phrases(self):
        """Every member has a phrase."""
        for status in HTTPStatus:
            assert status.phrase
