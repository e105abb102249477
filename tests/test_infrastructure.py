"""Cache backend, log masking and settings validation."""
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from raya_domains.cache import RedisCache
from raya_domains.config import PlatformConfig, Settings
from raya_domains.logging_config import mask_secrets


@pytest.mark.asyncio
async def test_redis_cache_prefixes_keys():
    redis = AsyncMock()
    redis.get.return_value = "1"
    cache = RedisCache(redis)

    assert await cache.get("domain:shop.example.com") == "1"
    await cache.set("domain:shop.example.com", "1", 3600)
    await cache.delete("domain:shop.example.com")

    redis.get.assert_awaited_once_with("raya:domain:shop.example.com")
    redis.setex.assert_awaited_once_with("raya:domain:shop.example.com", 3600, "1")
    redis.delete.assert_awaited_once_with("raya:domain:shop.example.com")


@pytest.mark.asyncio
async def test_redis_errors_are_misses():
    redis = AsyncMock()
    redis.get.side_effect = RedisConnectionError("refused")
    redis.setex.side_effect = RedisConnectionError("refused")
    redis.delete.side_effect = RedisConnectionError("refused")
    cache = RedisCache(redis)

    assert await cache.get("domain:shop.example.com") is None
    await cache.set("domain:shop.example.com", "1", 60)
    await cache.delete("domain:shop.example.com")


def test_verification_tokens_are_masked():
    text = "Expected raya-verify=0123456789abcdef0123456789abcdef, found nothing"
    masked = mask_secrets(text)
    assert "0123456789abcdef0123456789abcdef" not in masked
    assert "raya-verify=0123***" in masked


def test_bearer_tokens_are_masked():
    assert mask_secrets("Authorization: Bearer eyJhbGciOi.abc.def") == "Authorization: Bearer ***"


def test_platform_config_from_settings():
    s = Settings(PLATFORM_DOMAIN="Raya.App.", SERVER_IP="203.0.113.10", DATABASE_URL="sqlite+aiosqlite://")
    platform = PlatformConfig.from_settings(s)

    assert platform.platform_domain == "raya.app"
    assert platform.cname_target == "proxy.raya.app"
    assert platform.verification_prefix == "_raya-verification"
    assert platform.verification_ttl_days == 7


def test_production_requires_secrets():
    with pytest.raises(ValueError):
        Settings(APP_ENV="production", SECRET_KEY="change_this", SERVER_IP="203.0.113.10")
    with pytest.raises(ValueError):
        Settings(
            APP_ENV="production",
            SECRET_KEY="x" * 40,
            POSTGRES_PASSWORD="a-strong-password",
            SERVER_IP="",
        )


def test_json_formatter_carries_context_and_extras():
    import json
    import logging

    from raya_domains.logging_config import ContextFilter, JSONFormatter, request_id_ctx

    record = logging.makeLogRecord({
        "name": "raya.domain",
        "levelno": logging.INFO,
        "levelname": "INFO",
        "msg": "Expected %s",
        "args": ("raya-verify=abcdef0123456789abcdef0123456789",),
        "duration_ms": 12.5,
    })
    token = request_id_ctx.set("req-1")
    try:
        ContextFilter().filter(record)
    finally:
        request_id_ctx.reset(token)

    entry = json.loads(JSONFormatter().format(record))

    assert entry["msg"] == "Expected raya-verify=abcd***"
    assert entry["request_id"] == "req-1"
    assert entry["duration_ms"] == 12.5
    assert "tenant_id" not in entry


@pytest.mark.asyncio
@pytest.mark.parametrize("error,status,code", [
    ("ExpiredError", 410, "verification_expired"),
    ("DNSLookupError", 502, "dns_lookup_failed"),
    ("NoRecordsError", 502, "dns_no_records"),
])
async def test_service_errors_map_to_json(error, status, code):
    from fastapi import FastAPI
    from httpx import ASGITransport, AsyncClient

    from raya_domains import exceptions

    app = FastAPI()
    exceptions.register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise getattr(exceptions, error)("window closed")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as ac:
        resp = await ac.get("/boom")

    assert resp.status_code == status
    assert resp.json() == {"detail": "window closed", "code": code}
