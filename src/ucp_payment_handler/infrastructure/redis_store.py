"""Redis-backed key-value store.

Compare-and-set runs as a Lua script so the read, compare and write happen
in one atomic round trip on the server. The script keeps the key's
remaining TTL so redeeming a token never extends its lifetime.
"""

from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from ucp_payment_handler.infrastructure.store import KeyValueStore, StoreError

logger = structlog.get_logger(__name__)

# KEYS[1] = key, ARGV[1] = expected value, ARGV[2] = new value
_COMPARE_AND_SET_LUA = """
local current = redis.call('GET', KEYS[1])
if current ~= ARGV[1] then
    return 0
end

local ttl = redis.call('PTTL', KEYS[1])
if ttl > 0 then
    redis.call('SET', KEYS[1], ARGV[2], 'PX', ttl)
else
    redis.call('SET', KEYS[1], ARGV[2])
end
return 1
"""


class RedisKeyValueStore(KeyValueStore):
    """KeyValueStore on top of a redis.asyncio client."""

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._client = client
        self._key_prefix = key_prefix
        self._cas_script = client.register_script(_COMPARE_AND_SET_LUA)

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout_seconds: float = 2.0,
        key_prefix: str = "",
    ) -> "RedisKeyValueStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=socket_timeout_seconds,
        )
        logger.info("redis_store_initialized", key_prefix=key_prefix)
        return cls(client, key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(self._key(key))
        except RedisError as e:
            logger.error("redis_get_failed", key=key, error=str(e))
            raise StoreError(f"Redis GET failed: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds)
        except RedisError as e:
            logger.error("redis_set_failed", key=key, error=str(e))
            raise StoreError(f"Redis SET failed: {e}") from e

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        try:
            result = await self._client.set(self._key(key), value, ex=ttl_seconds, nx=True)
        except RedisError as e:
            logger.error("redis_set_nx_failed", key=key, error=str(e))
            raise StoreError(f"Redis SET NX failed: {e}") from e
        return bool(result)

    async def delete(self, key: str) -> bool:
        try:
            deleted = await self._client.delete(self._key(key))
        except RedisError as e:
            logger.error("redis_delete_failed", key=key, error=str(e))
            raise StoreError(f"Redis DEL failed: {e}") from e
        return deleted > 0

    async def exists(self, key: str) -> bool:
        try:
            count = await self._client.exists(self._key(key))
        except RedisError as e:
            logger.error("redis_exists_failed", key=key, error=str(e))
            raise StoreError(f"Redis EXISTS failed: {e}") from e
        return count > 0

    async def compare_and_set(self, key: str, expected: str, new_value: str) -> bool:
        try:
            result = await self._cas_script(
                keys=[self._key(key)],
                args=[expected, new_value],
            )
        except RedisError as e:
            logger.error("redis_compare_and_set_failed", key=key, error=str(e))
            raise StoreError(f"Redis compare-and-set failed: {e}") from e
        return int(result) == 1

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            raise StoreError(f"Redis PING failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
