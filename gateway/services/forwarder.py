"""Outbound side of the gateway.

Mirrors an inbound request against the decoded target URL and buffers the
origin's answer into a tagged :data:`FetchResult`. Redirects are never followed
here; a 3xx with a Location comes back as :class:`FetchRedirect` whichever way
the transport reported it.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from gateway.metrics.prometheus import UPSTREAM_LATENCY
from gateway.models.schemas import (
    FetchFailure,
    FetchRedirect,
    FetchResult,
    FetchSuccess,
    Headers,
    InboundRequest,
    UpstreamResponse,
)

log = logging.getLogger("Gateway.Forwarder")

# RFC 9110 hop-by-hop headers (must not be forwarded)
HOP_BY_HOP = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade",
}

# Recomputed by the outbound transport
CONNECTION_SPECIFIC = {"host", "content-length"}

# Asked of the origin; it may still answer with something else
OUTBOUND_ACCEPT_ENCODING = "gzip, deflate"

# Content codings httpx undoes while reading (br and zstd through the httpx extras)
DECODED_ENCODINGS = {"identity", "gzip", "deflate", "br", "zstd"}


class BodyTooLarge(Exception):
    pass


def build_outbound_headers(inbound: Headers) -> Headers:
    """Copy inbound headers minus Host, Content-Length and hop-by-hop ones.

    Cookie headers are joined into a single value and forwarded verbatim.
    Names and values are latin-1 text, so they map back to the exact bytes.
    """
    headers: Headers = []
    cookies: list[str] = []
    for name, value in inbound:
        lname = name.lower()
        if lname in CONNECTION_SPECIFIC or lname in HOP_BY_HOP:
            continue
        if lname == "cookie":
            cookies.append(value)
            continue
        if lname == "accept-encoding":
            continue
        headers.append((name, value))
    if cookies:
        headers.append(("cookie", "; ".join(cookies)))
    headers.append(("accept-encoding", OUTBOUND_ACCEPT_ENCODING))
    return headers


def append_query(target: str, query_string: str) -> str:
    """Append the inbound raw query string to the target's own query."""
    if not query_string:
        return target
    base, hash_mark, fragment = target.partition("#")
    if "?" not in base:
        sep = "?"
    elif base.endswith(("?", "&")):
        sep = ""
    else:
        sep = "&"
    return f"{base}{sep}{query_string}{hash_mark}{fragment}"


async def _read_body(response: httpx.Response, limit: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        total += len(chunk)
        if total > limit:
            raise BodyTooLarge(f"Upstream response exceeded {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def _as_bytes(headers: Headers) -> list[tuple[bytes, bytes]]:
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers]


def _undecoded_encodings(response: httpx.Response) -> Optional[str]:
    """Content codings still applied to the body after httpx read it."""
    codings = [c.strip() for c in response.headers.get("content-encoding", "").split(",") if c.strip()]
    remaining = [c for c in codings if c.lower() not in DECODED_ENCODINGS]
    return ", ".join(remaining) or None


def _buffered(response: httpx.Response, body: bytes) -> UpstreamResponse:
    headers = [(name.decode("latin-1"), value.decode("latin-1")) for name, value in response.headers.raw]
    upstream = UpstreamResponse(
        url=str(response.url),
        status_code=response.status_code,
        headers=headers,
        body=body,
        charset=response.charset_encoding,
        content_encoding=_undecoded_encodings(response),
    )
    upstream.content_type = upstream.header("content-type") or ""
    return upstream


def _location_text(value: str) -> str:
    # Header text is latin-1; a Location sent as UTF-8 bytes reads back as UTF-8
    try:
        return value.encode("latin-1").decode("utf-8")
    except UnicodeDecodeError:
        return value


def classify(upstream: UpstreamResponse) -> FetchResult:
    """Sort a buffered response into success, redirect or failure."""
    status = upstream.status_code
    location = upstream.header("location")
    if 300 <= status < 400 and location:
        return FetchRedirect(
            status_code=status,
            location=_location_text(location),
            set_cookies=upstream.header_values("set-cookie"),
        )
    if status >= 400:
        return FetchFailure(message=f"Request failed with status code {status}", response=upstream)
    return FetchSuccess(response=upstream)


async def fetch(
    inbound: InboundRequest,
    target_url: str,
    *,
    timeout_s: float = 30.0,
    max_body_bytes: int = 10 * 1024 * 1024,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchResult:
    """Issue one outbound request mirroring ``inbound`` against ``target_url``.

    ``target_url`` must already carry the inbound query string (see
    :func:`append_query`). A fresh client is used per call so that no cookie
    jar or other state leaks between requests.
    """
    headers = _as_bytes(build_outbound_headers(inbound.headers))
    log.debug("forwarding %s %s", inbound.method, target_url)

    try:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s), follow_redirects=False, transport=transport
        ) as client:
            upstream_request = client.build_request(
                inbound.method, target_url, headers=headers, content=inbound.body or None
            )
            with UPSTREAM_LATENCY.time():
                response = await client.send(upstream_request, stream=True)
                try:
                    body = await _read_body(response, max_body_bytes)
                finally:
                    await response.aclose()
            upstream = _buffered(response, body)
            # Non-2xx, 3xx included, is reported through HTTPStatusError
            response.raise_for_status()
            return FetchSuccess(response=upstream)
    except httpx.HTTPStatusError:
        return classify(upstream)
    except BodyTooLarge as e:
        log.warning("upstream %s: %s", target_url, e)
        return FetchFailure(message=str(e))
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        log.warning("upstream %s failed: %r", target_url, e)
        return FetchFailure(message=str(e) or type(e).__name__)
