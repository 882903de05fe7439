"""Parsing and serialising HTTP/1.x requests and responses."""

from __future__ import annotations

import io
import re

from ginx.entity import HTTPRequest, HTTPResponse

HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_HEAD = "HEAD"
HTTP_METHOD_OPTIONS = "OPTIONS"
HTTP_METHOD_PATCH = "PATCH"

HTTP_PROTOCOL_HTTP11 = "HTTP/1.1"

HTTP_STATUS_OK = 200
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_METHOD_NOT_ALLOWED = 405
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

_STATUS_TEXT = {
    HTTP_STATUS_OK: "OK",
    HTTP_STATUS_NOT_FOUND: "Not Found",
    HTTP_STATUS_METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTP_STATUS_INTERNAL_SERVER_ERROR: "Internal Server Error",
}

# Header bytes are decoded as Latin-1 so that any byte sequence survives a round trip.
_ENCODING = "latin-1"
_LEADING_INT = re.compile(r"[+-]?\d+")
_WHOLE_INT = re.compile(r"[+-]?\d+")


class HTTPParseError(ValueError):
    """Raised when bytes do not form a usable HTTP message."""


def status_text(status_code: int) -> str:
    """Return the reason phrase used for a status code."""
    return _STATUS_TEXT.get(status_code, f"Unknown status code: {status_code}")


def _chomp(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


def _split_header(line: str) -> tuple[str, str] | None:
    key, sep, value = line.partition(":")
    if not sep:
        return None
    return key.strip(), value.strip()


def _serialise(start_line: str, headers: dict[str, str], body: bytes) -> bytes:
    head = "".join(f"{key}: {value}\r\n" for key, value in headers.items())
    return f"{start_line}\r\n{head}\r\n".encode(_ENCODING) + (body or b"")


class HTTPParser:
    """Stateless parser for HTTP messages held fully in memory."""

    def parse_request(self, data: bytes) -> HTTPRequest:
        """Parse a request; headers without a colon are skipped."""
        stream = io.BytesIO(data)
        first = stream.readline()
        if not first:
            raise HTTPParseError("unexpected end of request")
        parts = _chomp(first).decode(_ENCODING).split(" ", 2)
        if len(parts) < 3:
            raise HTTPParseError("malformed HTTP request")

        request = HTTPRequest(
            method=parts[0],
            path=parts[1],
            protocol=parts[2],
            headers={},
            raw=bytes(data),
        )

        for raw_line in iter(stream.readline, b""):
            line = _chomp(raw_line).decode(_ENCODING)
            if not line:
                break
            header = _split_header(line)
            if header is not None:
                request.headers[header[0]] = header[1]

        length_text = request.headers.get("Content-Length")
        if length_text is not None:
            match = _LEADING_INT.match(length_text)
            length = int(match.group()) if match else 0
            if length > 0:
                body = stream.read(length)
                if len(body) < length:
                    raise HTTPParseError("unexpected EOF while reading request body")
                request.body = body
        return request

    def parse_response(self, data: bytes) -> HTTPResponse:
        """Parse a response; without Content-Length the body runs to the end."""
        stream = io.BytesIO(data)
        first = stream.readline()
        if not first.endswith(b"\n"):
            raise HTTPParseError("failed to read status line: EOF")
        status_line = first.decode(_ENCODING).strip()
        parts = status_line.split(" ", 2)
        if len(parts) < 3:
            raise HTTPParseError(f"malformed status line: {status_line}")
        if not _WHOLE_INT.fullmatch(parts[1]):
            raise HTTPParseError(f"invalid status code: {parts[1]!r}")

        response = HTTPResponse(status_code=int(parts[1]), headers={}, raw=bytes(data))

        while True:
            line = stream.readline().decode(_ENCODING).strip()
            if not line:
                break
            header = _split_header(line)
            if header is not None:
                response.headers[header[0]] = header[1]

        length_text = response.headers.get("Content-Length")
        if length_text is not None:
            if _WHOLE_INT.fullmatch(length_text):
                length = int(length_text)
                if length > 0:
                    response.body = stream.read(length)
        else:
            response.body = stream.read()
        return response

    def rebuild_request(self, request: HTTPRequest) -> bytes:
        """Serialise a request back to wire bytes."""
        start = f"{request.method} {request.path} {request.protocol}"
        return _serialise(start, request.headers, request.body)

    def rebuild_response(self, response: HTTPResponse) -> bytes:
        """Serialise a response as HTTP/1.1."""
        start = f"{HTTP_PROTOCOL_HTTP11} {response.status_code} {status_text(response.status_code)}"
        return _serialise(start, response.headers, response.body)