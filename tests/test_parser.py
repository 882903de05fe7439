import pytest

from ginx.entity import HTTPRequest, HTTPResponse
from ginx.parser import HTTPParseError, HTTPParser, status_text


@pytest.fixture
def parser():
    return HTTPParser()


def test_parse_simple_request(parser):
    data = b"GET /index.html HTTP/1.1\r\nHost: example.com\r\nAccept: */*\r\n\r\n"
    req = parser.parse_request(data)
    assert req.method == "GET"
    assert req.path == "/index.html"
    assert req.protocol == "HTTP/1.1"
    assert req.headers == {"Host": "example.com", "Accept": "*/*"}
    assert req.body == b""
    assert req.raw == data


def test_parse_request_with_body(parser):
    data = b"POST /submit HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
    req = parser.parse_request(data)
    assert req.method == "POST"
    assert req.body == b"hello"


def test_parse_request_body_limited_by_content_length(parser):
    data = b"POST / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello world"
    assert parser.parse_request(data).body == b"hello"


def test_parse_request_short_body_raises(parser):
    data = b"POST / HTTP/1.1\r\nContent-Length: 50\r\n\r\nhello"
    with pytest.raises(HTTPParseError):
        parser.parse_request(data)


def test_parse_request_invalid_content_length_ignored(parser):
    data = b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\nhello"
    req = parser.parse_request(data)
    assert req.body == b""
    assert req.headers["Content-Length"] == "abc"


def test_parse_request_malformed_line(parser):
    with pytest.raises(HTTPParseError):
        parser.parse_request(b"GET /\r\n\r\n")


def test_parse_request_empty(parser):
    with pytest.raises(HTTPParseError):
        parser.parse_request(b"")


def test_parse_request_skips_header_without_colon(parser):
    data = b"GET / HTTP/1.1\r\nbogus line\r\nHost: a\r\n\r\n"
    assert parser.parse_request(data).headers == {"Host": "a"}


def test_parse_request_header_value_keeps_colons(parser):
    data = b"GET / HTTP/1.1\r\nHost:   localhost:8080  \r\n\r\n"
    assert parser.parse_request(data).headers["Host"] == "localhost:8080"


def test_parse_request_protocol_keeps_remaining_text(parser):
    req = parser.parse_request(b"GET / HTTP/1.1 extra\r\n\r\n")
    assert req.protocol == "HTTP/1.1 extra"


def test_parse_request_lf_line_endings(parser):
    req = parser.parse_request(b"GET /x HTTP/1.0\nHost: h\n\n")
    assert req.path == "/x"
    assert req.protocol == "HTTP/1.0"
    assert req.headers == {"Host": "h"}


def test_parse_response_with_content_length(parser):
    data = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 5\r\n\r\nhello"
    resp = parser.parse_response(data)
    assert resp.status_code == 200
    assert resp.headers == {"Content-Type": "text/plain", "Content-Length": "5"}
    assert resp.body == b"hello"
    assert resp.raw == data


def test_parse_response_without_content_length_reads_rest(parser):
    data = b"HTTP/1.1 404 Not Found\r\nConnection: close\r\n\r\nmissing page"
    resp = parser.parse_response(data)
    assert resp.status_code == 404
    assert resp.body == b"missing page"


def test_parse_response_truncated_body(parser):
    data = b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\nabc"
    assert parser.parse_response(data).body == b"abc"


def test_parse_response_status_line_needs_newline(parser):
    with pytest.raises(HTTPParseError):
        parser.parse_response(b"HTTP/1.1 200 OK")


def test_parse_response_malformed_status_line(parser):
    with pytest.raises(HTTPParseError):
        parser.parse_response(b"HTTP/1.1 200\r\n\r\n")


def test_parse_response_invalid_status_code(parser):
    with pytest.raises(HTTPParseError):
        parser.parse_response(b"HTTP/1.1 abc OK\r\n\r\n")


def test_rebuild_request_bytes(parser):
    req = HTTPRequest(
        method="POST",
        path="/submit",
        protocol="HTTP/1.1",
        headers={"Host": "a", "Content-Length": "3"},
        body=b"abc",
    )
    assert parser.rebuild_request(req) == (
        b"POST /submit HTTP/1.1\r\nHost: a\r\nContent-Length: 3\r\n\r\nabc"
    )


def test_rebuild_request_round_trip(parser):
    req = HTTPRequest(
        method="PUT",
        path="/items/7",
        protocol="HTTP/1.1",
        headers={"Host": "example.com", "Content-Length": "4"},
        body=b"data",
    )
    parsed = parser.parse_request(parser.rebuild_request(req))
    assert (parsed.method, parsed.path, parsed.protocol) == ("PUT", "/items/7", "HTTP/1.1")
    assert parsed.headers == req.headers
    assert parsed.body == req.body


def test_rebuild_response_status_line(parser):
    resp = HTTPResponse(status_code=404, headers={"Server": "ginx"}, body=b"")
    assert parser.rebuild_response(resp) == b"HTTP/1.1 404 Not Found\r\nServer: ginx\r\n\r\n"


def test_rebuild_response_round_trip(parser):
    resp = HTTPResponse(status_code=500, headers={"Content-Length": "2"}, body=b"no")
    parsed = parser.parse_response(parser.rebuild_response(resp))
    assert parsed.status_code == 500
    assert parsed.headers == resp.headers
    assert parsed.body == b"no"


@pytest.mark.parametrize(
    "code, text",
    [
        (200, "OK"),
        (404, "Not Found"),
        (405, "Method Not Allowed"),
        (500, "Internal Server Error"),
    ],
)
def test_status_text_known(code, text):
    assert status_text(code) == text


def test_status_text_unknown():
    assert status_text(418) == "Unknown status code: 418"