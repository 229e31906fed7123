"""Unit tests for RedisKeyValueStore against a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from ucp_payment_handler.infrastructure.redis_store import (
    _COMPARE_AND_SET_LUA,
    RedisKeyValueStore,
)
from ucp_payment_handler.infrastructure.store import StoreError


@pytest.fixture
def cas_script():
    return AsyncMock(return_value=1)


@pytest.fixture
def client(cas_script):
    mock_client = MagicMock()
    mock_client.get = AsyncMock(return_value=None)
    mock_client.set = AsyncMock(return_value=True)
    mock_client.delete = AsyncMock(return_value=1)
    mock_client.exists = AsyncMock(return_value=1)
    mock_client.ping = AsyncMock(return_value=True)
    mock_client.aclose = AsyncMock()
    mock_client.register_script = MagicMock(return_value=cas_script)
    return mock_client


@pytest.fixture
def redis_store(client):
    return RedisKeyValueStore(client, key_prefix="ucp:")


def test_registers_compare_and_set_script(client, redis_store):
    client.register_script.assert_called_once_with(_COMPARE_AND_SET_LUA)


def test_script_preserves_ttl():
    assert "PTTL" in _COMPARE_AND_SET_LUA
    assert "'PX'" in _COMPARE_AND_SET_LUA


@pytest.mark.asyncio
class TestRedisKeyValueStore:
    async def test_get_applies_prefix(self, client, redis_store):
        client.get.return_value = "value"

        assert await redis_store.get("token:c:t") == "value"
        client.get.assert_awaited_once_with("ucp:token:c:t")

    async def test_set_with_ttl(self, client, redis_store):
        await redis_store.set("k", "v", ttl_seconds=900)
        client.set.assert_awaited_once_with("ucp:k", "v", ex=900)

    async def test_set_if_absent(self, client, redis_store):
        client.set.return_value = True
        assert await redis_store.set_if_absent("k", "v", ttl_seconds=60) is True
        client.set.assert_awaited_once_with("ucp:k", "v", ex=60, nx=True)

    async def test_set_if_absent_existing_key(self, client, redis_store):
        client.set.return_value = None
        assert await redis_store.set_if_absent("k", "v", ttl_seconds=60) is False

    async def test_delete(self, client, redis_store):
        client.delete.return_value = 1
        assert await redis_store.delete("k") is True

        client.delete.return_value = 0
        assert await redis_store.delete("k") is False

    async def test_exists(self, client, redis_store):
        client.exists.return_value = 0
        assert await redis_store.exists("k") is False

    async def test_compare_and_set_success(self, cas_script, redis_store):
        cas_script.return_value = 1

        assert await redis_store.compare_and_set("k", "old", "new") is True
        cas_script.assert_awaited_once_with(keys=["ucp:k"], args=["old", "new"])

    async def test_compare_and_set_mismatch(self, cas_script, redis_store):
        cas_script.return_value = 0
        assert await redis_store.compare_and_set("k", "old", "new") is False

    async def test_redis_errors_become_store_errors(self, client, cas_script, redis_store):
        client.get.side_effect = RedisConnectionError("connection refused")
        cas_script.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StoreError) as exc_info:
            await redis_store.get("k")
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

        with pytest.raises(StoreError):
            await redis_store.compare_and_set("k", "a", "b")

    async def test_close(self, client, redis_store):
        await redis_store.close()
        client.aclose.assert_awaited_once()
