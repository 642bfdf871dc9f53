"""Tests for kyartu.core.config.Settings."""

import pytest
from pydantic import ValidationError

from kyartu.core.config import Settings, get_settings


class TestCorsOrigins:
    """cors_origins parses comma-separated string."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http://a,http://b", ["http://a", "http://b"]),
            ("http://a , http://b ", ["http://a", "http://b"]),
            ("http://only", ["http://only"]),
            ("", []),
        ],
        ids=["basic", "whitespace", "single", "empty"],
    )
    def test_cors_parsing(self, raw: str, expected: list[str]):
        s = Settings(CORS_ORIGINS=raw)
        assert s.cors_origins == expected


class TestRedisAvailable:

    @pytest.mark.parametrize(
        "url, token, expected",
        [
            ("https://x.upstash.io", "tok", True),
            ("https://x.upstash.io", "", False),
            ("", "tok", False),
            ("", "", False),
        ],
    )
    def test_requires_url_and_token(self, url: str, token: str, expected: bool):
        s = Settings(upstash_redis_rest_url=url, upstash_redis_rest_token=token)
        assert s.redis_available is expected


class TestDefaults:

    def test_store_defaults(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("KV_STORE_URL", "FALLBACK_DATABASE_URL", "FALLBACK_ENABLED"):
            monkeypatch.delenv(name, raising=False)
        s = Settings(_env_file=None)
        assert s.kv_store_url.endswith("/api/redis")
        assert s.fallback_database_url.startswith("sqlite+aiosqlite://")
        assert s.fallback_enabled is True

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("KV_STORE_URL", "http://kv.example/api/redis")
        monkeypatch.setenv("KV_REQUEST_TIMEOUT", "1.5")
        s = Settings(_env_file=None)
        assert s.kv_store_url == "http://kv.example/api/redis"
        assert s.kv_request_timeout == 1.5

    @pytest.mark.parametrize("field, value", [
        ("kv_request_timeout", 0),
        ("kv_connect_timeout", -1),
        ("fallback_purge_interval", 0),
        ("environment", "moon"),
        ("log_level", "LOUD"),
    ])
    def test_invalid_values_rejected(self, field: str, value: object):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
