"""Infrastructure layer exports."""

from ucp_payment_handler.infrastructure.redis_store import RedisKeyValueStore
from ucp_payment_handler.infrastructure.repository import TokenRepository
from ucp_payment_handler.infrastructure.store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    StoreError,
)

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "StoreError",
    "TokenRepository",
]
