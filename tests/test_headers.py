# tests/test_headers.py
from gateway.services.headers import sanitize_response_headers


def test_blocking_headers_are_removed_case_insensitively():
    upstream = [
        ("Content-Security-Policy", "default-src 'self'"),
        ("X-Frame-Options", "DENY"),
        ("access-control-allow-origin", "https://example.com"),
        ("Access-Control-Allow-Headers", "x-token"),
        ("Content-Type", "text/html; charset=utf-8"),
    ]
    assert sanitize_response_headers(upstream) == [("Content-Type", "text/html; charset=utf-8")]


def test_set_cookie_and_content_type_pass_through_unchanged():
    upstream = [
        ("content-type", "application/json"),
        ("set-cookie", "a=1; Path=/; HttpOnly"),
        ("set-cookie", "b=2; Domain=example.com"),
        ("cache-control", "no-store"),
    ]
    assert sanitize_response_headers(upstream) == upstream


def test_transport_headers_are_dropped():
    upstream = [
        ("content-length", "123"),
        ("content-encoding", "gzip"),
        ("transfer-encoding", "chunked"),
        ("connection", "keep-alive"),
        ("etag", '"abc"'),
    ]
    assert sanitize_response_headers(upstream) == [("etag", '"abc"')]
