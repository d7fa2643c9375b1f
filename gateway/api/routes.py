"""API routes for the gateway.

Serves the landing page and the proxy route: every method under the namespace
is decoded, forwarded to the origin, and the answer is turned back into a
redirect or a (possibly rewritten) response for the client.
"""
from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import Optional

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse

from gateway.core.config import Settings
from gateway.metrics.prometheus import (
    INVALID_TARGETS,
    REQUESTS,
    REWRITE_FAILURES,
    REWRITTEN_ATTRIBUTES,
    UPSTREAM_FAILURES,
    UPSTREAM_REDIRECTS,
    snapshot,
)
from gateway.models.schemas import FetchFailure, FetchRedirect, InboundRequest, UpstreamResponse
from gateway.services.forwarder import append_query, fetch
from gateway.services.headers import sanitize_response_headers
from gateway.services.html_rewriter import rewrite_html
from gateway.services.redirects import redirect_response
from gateway.services.url_codec import InvalidTarget, UrlCodec

log = getLogger("Gateway.API")

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
LANDING_PAGE = Path(__file__).resolve().parent.parent / "static" / "index.html"


def _get_app_state(request: Request) -> tuple[UrlCodec, Settings, Optional[httpx.AsyncBaseTransport]]:
    """Return the app-scoped codec, settings and upstream transport."""
    state = request.app.state
    return state.codec, state.settings, getattr(state, "transport", None)


def _landing_page(namespace: str) -> str:
    page = LANDING_PAGE.read_text(encoding="utf-8")
    return page.replace("__NAMESPACE__", namespace)


def build_client_response(upstream: UpstreamResponse, fetched_url: str, codec: UrlCodec) -> Response:
    """Mirror a successful upstream response, rewriting HTML bodies."""
    body = upstream.body
    if upstream.is_html and body and not upstream.content_encoding:
        result = rewrite_html(body, fetched_url, codec, charset=upstream.charset)
        REWRITTEN_ATTRIBUTES.inc(result.rewritten)
        REWRITE_FAILURES.inc(len(result.diagnostics))
        body = result.body

    response = Response(content=body, status_code=upstream.status_code)
    for name, value in sanitize_response_headers(upstream.headers):
        response.headers.append(name, value)
    if upstream.content_encoding:
        response.headers["content-encoding"] = upstream.content_encoding
    return response


def build_router(namespace: str) -> APIRouter:
    """Create the router with the proxy route mounted under ``namespace``."""
    router = APIRouter()

    @router.get("/", response_class=HTMLResponse)
    async def landing():
        """Static landing page; nothing here is rewritten."""
        return HTMLResponse(_landing_page(namespace))

    @router.api_route(namespace + "{target:path}", methods=PROXY_METHODS)
    async def proxy_site(request: Request, target: str):
        """
        Fetch the target named by the path on the client's behalf:
          - decode the target URL (400 when missing or not absolute http(s))
          - forward method, headers, body and query string upstream
          - 3xx -> redirect back into the namespace; errors -> 500
          - otherwise mirror the response, rewriting HTML
        """
        REQUESTS.inc()
        codec, settings, transport = _get_app_state(request)
        inbound = await InboundRequest.from_request(request)

        try:
            target_url = codec.decode(inbound.proxy_path)
        except InvalidTarget as e:
            INVALID_TARGETS.inc()
            log.info("rejected %s: %s", inbound.proxy_path, e)
            return PlainTextResponse(str(e), status_code=400)

        fetched_url = append_query(target_url, inbound.query_string)
        log.info("%s %s", inbound.method, fetched_url)

        try:
            result = await fetch(
                inbound,
                fetched_url,
                timeout_s=settings.request_timeout_s,
                max_body_bytes=settings.max_body_bytes,
                transport=transport,
            )
            if isinstance(result, FetchRedirect):
                UPSTREAM_REDIRECTS.inc()
                return redirect_response(result, fetched_url, codec)
            if isinstance(result, FetchFailure):
                UPSTREAM_FAILURES.inc()
                log.warning("%s %s failed: %s", inbound.method, fetched_url, result.message)
                return PlainTextResponse(f"Error occurred: {result.message}", status_code=500)
            return build_client_response(result.response, fetched_url, codec)
        except Exception as e:
            UPSTREAM_FAILURES.inc()
            log.exception("error proxying %s", fetched_url)
            return PlainTextResponse(f"Error occurred: {e}", status_code=500)

    @router.get("/health")
    async def health_check():
        """Health check endpoint."""
        log.info("Health check passed")
        return {"status": "OK"}

    @router.get("/traffic")
    async def traffic_stats():
        """Traffic statistics endpoint."""
        log.info("Traffic stats requested")
        return snapshot()

    return router
