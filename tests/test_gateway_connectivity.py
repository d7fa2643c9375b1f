# tests/test_gateway_connectivity.py
import socket
import threading
import time
from contextlib import closing

import httpx
import pytest
import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, RedirectResponse

from gateway.core.config import Settings
from gateway.main import create_app
from gateway.services.url_codec import UrlCodec

# --- helpers ---------------------------------------------------------------

def _free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]

class _BgServer:
    """Run a uvicorn server in a background thread; stop with should_exit=True."""
    def __init__(self, app, host: str, port: int):
        self.config = uvicorn.Config(app, host=host, port=port, log_level="error")
        self.server = uvicorn.Server(self.config)
        self.thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self.thread.start()
        # Wait until port is accepting connections
        deadline = time.time() + 5
        while time.time() < deadline:
            try:
                with socket.create_connection((self.config.host, self.config.port), timeout=0.25):
                    return
            except OSError:
                time.sleep(0.05)
        raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=3)

# --- mock origin site (the foreign site being proxied) ---------------------

def _make_origin_app() -> FastAPI:
    app = FastAPI()

    @app.get("/page")
    async def page():
        html = '<html><body><a href="/other?x=1">other</a><img src="logo.png"></body></html>'
        return HTMLResponse(html, headers={"X-Frame-Options": "DENY", "Set-Cookie": "seen=1; Path=/"})

    @app.get("/old")
    async def old():
        return RedirectResponse("/page", status_code=301)

    @app.post("/echo")
    async def echo(payload: dict):
        return {"echo": payload}

    return app

# --- tests -----------------------------------------------------------------

@pytest.fixture
def origin_base():
    port = _free_port()
    server = _BgServer(_make_origin_app(), "127.0.0.1", port)
    server.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.stop()


@pytest.mark.anyio
async def test_gateway_proxies_a_real_origin(origin_base):
    codec = UrlCodec("/sites/")
    gateway = create_app(Settings(request_timeout_s=5.0))
    transport = httpx.ASGITransport(app=gateway)

    async with httpx.AsyncClient(transport=transport, base_url="http://gateway.local") as client:
        # 1) redirect stays inside the namespace
        resp = await client.get(codec.encode(f"{origin_base}/old"))
        assert resp.status_code == 302
        assert resp.headers["location"] == codec.encode(f"{origin_base}/page")

        # 2) the page comes back rewritten, framing header stripped, cookie forwarded
        resp = await client.get(resp.headers["location"])
        assert resp.status_code == 200
        assert "x-frame-options" not in resp.headers
        assert resp.headers["set-cookie"] == "seen=1; Path=/"
        assert codec.encode(f"{origin_base}/other?x=1") in resp.text
        assert codec.encode(f"{origin_base}/logo.png") in resp.text

        # 3) bodies are forwarded verbatim for POST
        resp = await client.post(codec.encode(f"{origin_base}/echo"), json={"a": 1})
        assert resp.status_code == 200
        assert resp.json() == {"echo": {"a": 1}}

        # 4) unknown path on the origin -> 500 with the upstream status
        resp = await client.get(codec.encode(f"{origin_base}/nope"))
        assert resp.status_code == 500
        assert resp.text == "Error occurred: Request failed with status code 404"
