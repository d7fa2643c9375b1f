"""Run the gateway with uvicorn: ``python -m gateway``."""
import logging

import uvicorn

from gateway.core.config import load_settings
from gateway.core.logging import setup_logging

log = logging.getLogger("Gateway")


def main() -> None:
    settings = load_settings()
    setup_logging()
    shown = "localhost" if settings.host in ("0.0.0.0", "") else settings.host
    log.info("Gateway listening on port %d", settings.port)
    log.info("Test with URLs like:")
    log.info("  http://%s:%d%shttps%%3A%%2F%%2Fexample.com", shown, settings.port, settings.namespace)
    log.info("  http://%s:%d%shttps%%3A%%2F%%2Fexample.com%%2Fabout", shown, settings.port, settings.namespace)
    uvicorn.run("gateway.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
