"""Mapping between absolute target URLs and paths in the gateway's namespace.

A target such as ``https://example.com/a?b=1`` lives at
``/sites/https%3A%2F%2Fexample.com%2Fa%3Fb%3D1``. Everything that writes a URL
into the namespace (redirects, rewritten HTML) or reads one out of it (the
proxy route) goes through :class:`UrlCodec` so both directions always agree.
"""
from __future__ import annotations

import re
from urllib.parse import quote, unquote

ABSOLUTE_HTTP_URL = re.compile(r"^https?://.+", re.IGNORECASE)

# Same set encodeURIComponent leaves alone, so links built by the landing page match ours
_SAFE = "!~*'()"

MISSING_TARGET = "Bad Request: Missing URL parameter."
NOT_ABSOLUTE = "Please provide a full URL (with http:// or https://)"


class InvalidTarget(ValueError):
    """The namespace path does not name an absolute http(s) URL."""


def is_absolute_http(url: str) -> bool:
    return bool(ABSOLUTE_HTTP_URL.match(url))


class UrlCodec:
    """Encode/decode target URLs under a fixed namespace prefix."""

    def __init__(self, namespace: str = "/sites/"):
        self.namespace = namespace

    def encode(self, target: str) -> str:
        """Return the namespace path for an absolute target URL."""
        return f"{self.namespace}{quote(target, safe=_SAFE)}"

    def decode(self, path: str) -> str:
        """Return the absolute target URL named by a namespace path.

        ``path`` must still be percent-encoded; it is decoded exactly once.
        Raises :class:`InvalidTarget` when nothing follows the prefix or the
        result is not an absolute http(s) URL.
        """
        if not path.startswith(self.namespace):
            raise InvalidTarget(MISSING_TARGET)
        encoded = path[len(self.namespace):]
        if not encoded:
            raise InvalidTarget(MISSING_TARGET)
        target = unquote(encoded)
        if not is_absolute_http(target):
            raise InvalidTarget(NOT_ABSOLUTE)
        return target

    def owns(self, path: str) -> bool:
        """True when ``path`` decodes as one of our own namespace paths."""
        try:
            self.decode(path)
        except InvalidTarget:
            return False
        return True

    def __repr__(self) -> str:
        return f"UrlCodec(namespace={self.namespace!r})"
