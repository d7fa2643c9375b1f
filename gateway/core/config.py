"""Configuration for the web gateway.

Provides strongly-typed settings using Pydantic and a loader from environment
variables with defaults suitable for local development.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, ValidationError, field_validator


class Settings(BaseModel):
    """Pydantic settings for the gateway service."""

    # Path prefix under which every proxied URL lives, e.g. /sites/<encoded url>
    namespace: str = "/sites/"
    request_timeout_s: float = Field(default=30.0, gt=0)
    max_body_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    host: str = "0.0.0.0"
    port: int = 3000

    @field_validator("namespace")
    @classmethod
    def _namespace_is_a_directory(cls, value: str) -> str:
        if not value.startswith("/") or not value.endswith("/") or value == "/":
            raise ValueError("namespace must look like '/name/'")
        return value


def load_settings() -> Settings:
    """Load settings from environment variables and return a Settings object."""
    try:
        return Settings(
            namespace=os.getenv("GATEWAY_NAMESPACE", "/sites/"),
            request_timeout_s=float(os.getenv("REQUEST_TIMEOUT_S", "30.0")),
            max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024))),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
        )
    except (ValidationError, ValueError) as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
