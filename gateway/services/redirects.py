"""Turn an upstream 3xx into a redirect back into the gateway namespace."""
from __future__ import annotations

import logging
from urllib.parse import urljoin, urlsplit

from starlette.responses import RedirectResponse

from gateway.models.schemas import FetchRedirect
from gateway.services.url_codec import UrlCodec, is_absolute_http

log = logging.getLogger("Gateway.API")

# Method-preserving codes survive; everything else becomes a plain 302
PRESERVED_STATUSES = {307, 308}


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def resolve_location(location: str, base_url: str) -> str:
    """Resolve a Location value against the URL that was actually fetched.

    Falls back to ``origin(base) + location`` when standard resolution does not
    give an absolute http(s) URL.
    """
    try:
        resolved = urljoin(base_url, location)
    except ValueError:
        resolved = location
    if not is_absolute_http(resolved):
        resolved = origin_of(base_url) + location
    return resolved


def redirect_response(redirect: FetchRedirect, base_url: str, codec: UrlCodec) -> RedirectResponse:
    """Build the client-facing redirect for an upstream 3xx."""
    absolute = resolve_location(redirect.location, base_url)
    status = redirect.status_code if redirect.status_code in PRESERVED_STATUSES else 302
    log.info("redirect %s -> %s (%d)", base_url, absolute, redirect.status_code)
    response = RedirectResponse(url=codec.encode(absolute), status_code=status)
    for cookie in redirect.set_cookies:
        response.headers.append("set-cookie", cookie)
    return response
