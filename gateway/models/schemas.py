"""Pydantic models used by the gateway.

None of these are persisted; each lives for a single request/response cycle.
"""
from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from starlette.requests import Request

# latin-1 text, so every header round-trips to its original bytes
Headers = list[tuple[str, str]]


class InboundRequest(BaseModel):
    """The client's request, captured before anything is forwarded."""

    method: str
    headers: Headers
    body: bytes = b""
    query_string: str = ""
    proxy_path: str

    @classmethod
    async def from_request(cls, request: Request) -> "InboundRequest":
        """Snapshot a Starlette request, reading its body fully into memory."""
        # raw_path keeps the percent-encoding that scope["path"] has already undone
        # and request.url is rebuilt from the decoded path, so read both from the scope
        raw_path = request.scope.get("raw_path")
        if raw_path:
            proxy_path = raw_path.split(b"?", 1)[0].decode("latin-1")
        else:
            proxy_path = request.scope["path"]
        return cls(
            method=request.method,
            headers=[(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw],
            body=await request.body(),
            query_string=request.scope.get("query_string", b"").decode("latin-1"),
            proxy_path=proxy_path,
        )


class UpstreamResponse(BaseModel):
    """A fully buffered response from the origin."""

    url: str
    status_code: int
    headers: Headers
    body: bytes = b""
    content_type: str = ""
    charset: Optional[str] = None
    # Codings httpx could not undo; the body is still encoded with these
    content_encoding: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


class FetchSuccess(BaseModel):
    """Upstream answered with something the client should see as-is (modulo rewriting)."""

    kind: Literal["success"] = "success"
    response: UpstreamResponse


class FetchRedirect(BaseModel):
    """Upstream answered 3xx with a Location header."""

    kind: Literal["redirect"] = "redirect"
    status_code: int
    location: str
    set_cookies: list[str] = []


class FetchFailure(BaseModel):
    """Upstream could not be reached, or answered with an error status."""

    kind: Literal["failure"] = "failure"
    message: str
    response: Optional[UpstreamResponse] = None


FetchResult = Union[FetchSuccess, FetchRedirect, FetchFailure]


class RewriteRule(BaseModel):
    """An element tag and the attribute on it that carries a URL."""

    model_config = ConfigDict(frozen=True)

    tag: str
    attribute: str


class RewriteResult(BaseModel):
    """Output of one HTML rewrite pass."""

    body: bytes
    rewritten: int = 0
    diagnostics: list[str] = []
