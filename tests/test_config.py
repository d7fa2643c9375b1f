# tests/test_config.py
import pytest
from pydantic import ValidationError

from gateway.core.config import Settings, load_settings


def test_defaults(monkeypatch):
    for name in ("GATEWAY_NAMESPACE", "REQUEST_TIMEOUT_S", "MAX_BODY_BYTES", "HOST", "PORT"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.namespace == "/sites/"
    assert settings.request_timeout_s == 30.0
    assert settings.max_body_bytes == 10 * 1024 * 1024
    assert settings.port == 3000


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GATEWAY_NAMESPACE", "/proxy/")
    monkeypatch.setenv("REQUEST_TIMEOUT_S", "2.5")
    monkeypatch.setenv("MAX_BODY_BYTES", "1024")
    monkeypatch.setenv("PORT", "8080")
    settings = load_settings()
    assert settings.namespace == "/proxy/"
    assert settings.request_timeout_s == 2.5
    assert settings.max_body_bytes == 1024
    assert settings.port == 8080


@pytest.mark.parametrize("namespace", ["sites/", "/sites", "/"])
def test_namespace_must_be_a_directory(namespace):
    with pytest.raises(ValidationError):
        Settings(namespace=namespace)


def test_invalid_env_is_reported(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT_S", "soon")
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings()
