"""Repository for stored token persistence.

Key layout:
    token:{checkoutId}:{tokenId}  -> StoredToken JSON
    token_owner:{tokenId}         -> checkoutId (same TTL)

The owner key lets a redemption attempt under the wrong checkout be told
apart from a token that does not exist at all.
"""

from datetime import datetime
from typing import Optional

import structlog

from ucp_payment_handler.domain.token import StoredToken
from ucp_payment_handler.infrastructure.store import KeyValueStore, StoreError

logger = structlog.get_logger(__name__)


def token_key(checkout_id: str, token_id: str) -> str:
    return f"token:{checkout_id}:{token_id}"


def owner_key(token_id: str) -> str:
    return f"token_owner:{token_id}"


class TokenRepository:
    """Stores and retrieves StoredToken records through a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        """Initialize repository.

        Args:
            store: Key-value store capability
        """
        self.store = store

    async def save(self, token: StoredToken, now: datetime) -> None:
        """Persist a new token with a TTL matching its expiry.

        Args:
            token: Token to persist
            now: Current time, used to derive the remaining TTL

        Raises:
            StoreError: If a token with the same ID is already stored
        """
        ttl_seconds = token.ttl_seconds(now)
        checkout_id = token.binding.checkout_id

        created = await self.store.set_if_absent(
            token_key(checkout_id, token.id), token.to_json(), ttl_seconds
        )
        if not created:
            raise StoreError(f"Token ID collision for {token.id}")

        await self.store.set(owner_key(token.id), checkout_id, ttl_seconds)

        logger.info(
            "stored_token_saved",
            token_id=token.id,
            checkout_id=checkout_id,
            ttl_seconds=ttl_seconds,
        )

    async def get(self, checkout_id: str, token_id: str) -> Optional[StoredToken]:
        """Fetch a token by its (checkout, token) key.

        Returns:
            StoredToken if found, None otherwise
        """
        raw = await self.store.get(token_key(checkout_id, token_id))
        if raw is None:
            return None
        return self._parse(raw, token_id)

    async def find(self, checkout_id: str, token_id: str) -> Optional[StoredToken]:
        """Fetch a token, following the owner key when the checkout differs.

        The returned token may be bound to a different checkout than
        ``checkout_id``; binding validation is the caller's job.
        """
        token = await self.get(checkout_id, token_id)
        if token is not None:
            return token

        owner = await self.store.get(owner_key(token_id))
        if owner is None or owner == checkout_id:
            return None

        return await self.get(owner, token_id)

    async def mark_used(self, token: StoredToken) -> bool:
        """Atomically flip ``used`` from false to true.

        Uses compare-and-set against the exact stored value so that of any
        number of concurrent callers at most one succeeds.

        Returns:
            True if this call consumed the token, False if it was already
            used, concurrently consumed, or has disappeared
        """
        key = token_key(token.binding.checkout_id, token.id)

        raw = await self.store.get(key)
        if raw is None:
            return False

        current = self._parse(raw, token.id)
        if current.used:
            return False

        return await self.store.compare_and_set(key, raw, current.mark_used().to_json())

    async def delete(self, checkout_id: str, token_id: str) -> bool:
        """Delete a token and its owner key.

        Returns:
            True if the token existed under ``checkout_id``
        """
        deleted = await self.store.delete(token_key(checkout_id, token_id))

        owner = await self.store.get(owner_key(token_id))
        if owner == checkout_id:
            await self.store.delete(owner_key(token_id))

        return deleted

    @staticmethod
    def _parse(raw: str, token_id: str) -> StoredToken:
        try:
            return StoredToken.from_json(raw)
        except ValueError as e:
            logger.error("stored_token_corrupt", token_id=token_id, error=str(e))
            raise StoreError(f"Stored token {token_id} is corrupt") from e
