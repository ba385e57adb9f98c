"""Tests for environment-driven configuration."""

from config import load_typesense_config
from models import TypesenseSettings

_ENV_KEYS = (
    "TYPESENSE_HOST",
    "TYPESENSE_PROTOCOL",
    "TYPESENSE_PORT",
    "TYPESENSE_SEARCH_ONLY_KEY",
    "TYPESENSE_API_KEY",
    "TYPESENSE_ADMIN_API_KEY",
    "TYPESENSE_COLLECTION",
    "TYPESENSE_QUERY_BY",
    "TYPESENSE_TIMEOUT",
)


def _clear(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadTypesenseConfig:
    def test_defaults(self, monkeypatch):
        _clear(monkeypatch)
        config = load_typesense_config()
        assert config["host"] == ""
        assert config["protocol"] == "https"
        assert config["port"] is None
        assert config["api_key"] == ""
        assert config["collection"] == "quickitquote_products"
        assert config["query_by"] == []
        assert TypesenseSettings(**config).configured is False

    def test_key_priority(self, monkeypatch):
        _clear(monkeypatch)
        monkeypatch.setenv("TYPESENSE_SEARCH_ONLY_KEY", "   ")
        monkeypatch.setenv("TYPESENSE_API_KEY", "api-key")
        monkeypatch.setenv("TYPESENSE_ADMIN_API_KEY", "admin-key")
        assert load_typesense_config()["api_key"] == "api-key"

    def test_full_environment(self, monkeypatch):
        _clear(monkeypatch)
        monkeypatch.setenv("TYPESENSE_HOST", "ts.internal")
        monkeypatch.setenv("TYPESENSE_PROTOCOL", "HTTP")
        monkeypatch.setenv("TYPESENSE_PORT", "8108")
        monkeypatch.setenv("TYPESENSE_SEARCH_ONLY_KEY", "search-key")
        monkeypatch.setenv("TYPESENSE_QUERY_BY", "name, brand,,mpn")

        settings = TypesenseSettings(**load_typesense_config())
        assert settings.configured is True
        assert settings.protocol == "http"
        assert settings.effective_port == 8108
        assert settings.query_by == ["name", "brand", "mpn"]
