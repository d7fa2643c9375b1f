"""Gateway FastAPI application.

Creates the gateway service, wires routes, configures logging, and exposes
readiness and Prometheus metrics endpoints.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from gateway.api.routes import build_router
from gateway.core.config import Settings, load_settings
from gateway.core.logging import setup_logging
from gateway.services.url_codec import UrlCodec


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configures logging before the first request."""
    setup_logging()
    yield


def create_app(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build a gateway app.

    ``transport`` replaces the network for outbound fetches (tests use
    ``httpx.MockTransport``); by default httpx opens real connections.
    """
    settings = settings or load_settings()

    app = FastAPI(title="Gateway", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.codec = UrlCodec(settings.namespace)
    app.state.transport = transport
    app.include_router(build_router(settings.namespace))

    @app.get("/readyz")
    async def readyz():
        """Readiness probe endpoint returning a minimal OK payload."""
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics(_: Request):
        """Prometheus exposition endpoint for gateway process metrics."""
        data = generate_latest()
        return PlainTextResponse(data.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
