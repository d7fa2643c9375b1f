"""Rewrite HTML documents so every resource reference routes through the gateway.

The document is parsed with BeautifulSoup, blocking ``<meta http-equiv>`` tags
and ``<base>`` are dropped, and each attribute named in :data:`REWRITE_RULES`
is resolved against the fetched URL and re-encoded into the namespace.
"""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from gateway.models.schemas import RewriteResult, RewriteRule
from gateway.services.url_codec import UrlCodec, is_absolute_http

log = logging.getLogger("Gateway.Rewriter")

REWRITE_RULES: tuple[RewriteRule, ...] = (
    RewriteRule(tag="a", attribute="href"),
    RewriteRule(tag="form", attribute="action"),
    RewriteRule(tag="link", attribute="href"),
    RewriteRule(tag="script", attribute="src"),
    RewriteRule(tag="img", attribute="src"),
    RewriteRule(tag="iframe", attribute="src"),
    RewriteRule(tag="source", attribute="src"),
    RewriteRule(tag="video", attribute="src"),
    RewriteRule(tag="audio", attribute="src"),
    RewriteRule(tag="embed", attribute="src"),
    RewriteRule(tag="object", attribute="data"),
)

# Inline or non-navigable content; never touched
SKIPPED_PREFIXES = ("data:", "mailto:", "javascript:")

BLOCKING_META = re.compile(r"^\s*(content-security-policy|x-frame-options)\s*$", re.IGNORECASE)


class ResolutionError(ValueError):
    pass


def _resolve(value: str, base_url: str, codec: UrlCodec) -> str:
    """Absolute http(s) URL for an attribute value, relative to ``base_url``."""
    if codec.owns(value):
        # Already one of ours: its target is absolute, so the base doesn't apply
        return codec.decode(value)
    if value.startswith("//"):
        value = f"{urlsplit(base_url).scheme}:{value}"
    try:
        resolved = urljoin(base_url, value)
        # urljoin is lenient; splitting again surfaces bad hosts/ports
        urlsplit(resolved).port
    except ValueError as e:
        raise ResolutionError(str(e)) from e
    if not is_absolute_http(resolved):
        raise ResolutionError(f"not an http(s) URL: {resolved}")
    return resolved


def _rewrite_rule(soup: BeautifulSoup, rule: RewriteRule, base_url: str, codec: UrlCodec,
                  result: RewriteResult) -> None:
    for element in soup.find_all(rule.tag, attrs={rule.attribute: True}):
        raw = element.get(rule.attribute)
        if isinstance(raw, list):
            raw = " ".join(raw)
        value = (raw or "").strip()
        if not value or value.lower().startswith(SKIPPED_PREFIXES):
            continue
        try:
            absolute = _resolve(value, base_url, codec)
        except ResolutionError as e:
            message = f"{rule.tag}[{rule.attribute}] {value!r}: {e}"
            log.warning("%s URL resolution error: %s", rule.attribute, message)
            result.diagnostics.append(message)
            continue
        element[rule.attribute] = codec.encode(absolute)
        result.rewritten += 1


def _strip_blocking(soup: BeautifulSoup) -> None:
    for meta in soup.find_all("meta", attrs={"http-equiv": BLOCKING_META}):
        meta.decompose()
    for base in soup.find_all("base"):
        base.decompose()


def rewrite_html(body: bytes, base_url: str, codec: UrlCodec, charset: Optional[str] = None) -> RewriteResult:
    """Rewrite every resource-bearing attribute in ``body`` into the namespace.

    ``base_url`` is the URL that was fetched. Attributes that cannot be resolved
    are left as they were and reported in ``RewriteResult.diagnostics``.
    """
    soup = BeautifulSoup(body, "html.parser", from_encoding=charset)
    _strip_blocking(soup)

    result = RewriteResult(body=b"")
    for rule in REWRITE_RULES:
        _rewrite_rule(soup, rule, base_url, codec, result)

    result.body = soup.encode(soup.original_encoding or "utf-8")
    return result
