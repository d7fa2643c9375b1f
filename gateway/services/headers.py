"""Header handling for responses going back to the client."""
from __future__ import annotations

from gateway.models.schemas import Headers
from gateway.services.forwarder import HOP_BY_HOP

# Headers that stop the proxied page from being framed or read cross-origin
BLOCKING_HEADERS = {
    "content-security-policy",
    "x-frame-options",
    "access-control-allow-origin",
    "access-control-allow-headers",
}

# The body we send is already decoded and maybe rewritten; the server recomputes these
RECOMPUTED = {"content-length", "content-encoding"}


def sanitize_response_headers(upstream: Headers) -> Headers:
    """Mirror upstream headers to the client minus blocking and transport ones.

    Content-Type and every Set-Cookie pass through unchanged.
    """
    return [
        (name, value)
        for name, value in upstream
        if name.lower() not in BLOCKING_HEADERS
        and name.lower() not in HOP_BY_HOP
        and name.lower() not in RECOMPUTED
    ]
