"""
Mock payment provider for tests and local development.

Keeps minted credentials in an in-process vault and returns deterministic
network-token material, so the full tokenize/detokenize flow runs without
a real provider. Specific test card numbers trigger failure scenarios the
same way the Wix provider surfaces them:

    4000000000000119  provider timeout (retryable)
    4000000000009987  rate limited (retryable)
    4000000000000002  card rejected (INVALID_CREDENTIALS)
"""

import asyncio
import uuid
from typing import Any

import structlog

from ucp_payment_handler.domain.errors import (
    ErrorDetail,
    InvalidCredentialsError,
    ProviderError,
    ProviderTimeout,
)
from ucp_payment_handler.providers.base import (
    CardDetails,
    NetworkTokenData,
    PanData,
    PaymentProvider,
)

logger = structlog.get_logger(__name__)

MOCK_CRYPTOGRAM = "AJkBByECCAAAAAAAAAAAACAgIIAAAA=="
MOCK_ECI = "05"

TEST_CARD_BEHAVIORS: dict[str, dict[str, str]] = {
    "4000000000000119": {
        "type": "timeout",
        "description": "Provider timeout - simulates 5xx error or network timeout",
    },
    "4000000000009987": {
        "type": "rate_limit",
        "description": "Rate limit - simulates 429 response",
    },
    "4000000000000002": {
        "type": "reject",
        "reason": "Card was rejected by the provider",
        "description": "Generic rejection",
    },
}


class MockPaymentProvider(PaymentProvider):
    """
    Mock payment provider.

    Args:
        config: Configuration dictionary with optional keys:
            - latency_ms: Simulated latency applied to every call
            - fail_on_fetch: Raise a transient error from fetch calls
            - fail_on_mint: Raise a transient error from mint calls
            - card_behaviors: Override default test card behaviors
    """

    name = "mock"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        latency_ms: int = 0,
    ) -> None:
        self.config = config or {}
        self.latency_ms = self.config.get("latency_ms", latency_ms)
        self.fail_on_fetch = self.config.get("fail_on_fetch", False)
        self.fail_on_mint = self.config.get("fail_on_mint", False)
        self.card_behaviors = self.config.get("card_behaviors", TEST_CARD_BEHAVIORS)

        # credential_ref -> stored card or wallet entry
        self._vault: dict[str, dict[str, Any]] = {}

        logger.info(
            "mock_provider_initialized",
            latency_ms=self.latency_ms,
            fail_on_fetch=self.fail_on_fetch,
            fail_on_mint=self.fail_on_mint,
        )

    async def _simulate_latency(self) -> None:
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

    @property
    def vault_size(self) -> int:
        return len(self._vault)

    async def mint_card_credential(self, card: CardDetails) -> str:
        await self._simulate_latency()

        if self.fail_on_mint:
            raise ProviderError("Mock provider mint failure")

        behavior = self.card_behaviors.get(card.pan)
        if behavior is not None:
            behavior_type = behavior["type"]

            if behavior_type == "timeout":
                logger.warning("mock_provider_timeout", card_last_four=card.last_four)
                raise ProviderTimeout(
                    f"Mock provider timeout: {behavior.get('description', 'Simulated timeout')}"
                )

            if behavior_type == "rate_limit":
                logger.warning("mock_provider_rate_limited", card_last_four=card.last_four)
                raise ProviderError("Mock provider rate limit exceeded")

            if behavior_type == "reject":
                reason = behavior.get("reason", "Card was rejected")
                logger.info("mock_provider_card_rejected", card_last_four=card.last_four)
                raise InvalidCredentialsError(
                    reason,
                    details=[
                        ErrorDetail(
                            field="sourceCredential.pan",
                            code="INVALID_CREDENTIALS",
                            message=reason,
                        )
                    ],
                )

        credential_ref = f"mock_card_{uuid.uuid4().hex}"
        self._vault[credential_ref] = {
            "kind": "card",
            "pan": card.pan,
            "expiry_month": card.expiry_month,
            "expiry_year": card.expiry_year,
        }

        logger.info(
            "mock_card_credential_minted",
            credential_ref=credential_ref,
            card_last_four=card.last_four,
        )
        return credential_ref

    async def mint_wallet_credential(self, wallet_type: str, wallet_token: str) -> str:
        await self._simulate_latency()

        if self.fail_on_mint:
            raise ProviderError("Mock provider mint failure")

        credential_ref = f"mock_wallet_{uuid.uuid4().hex}"
        self._vault[credential_ref] = {"kind": "wallet", "wallet_type": wallet_type}

        logger.info(
            "mock_wallet_credential_minted",
            credential_ref=credential_ref,
            wallet_type=wallet_type,
        )
        return credential_ref

    async def fetch_network_token(self, credential_ref: str) -> NetworkTokenData:
        await self._simulate_latency()

        if self.fail_on_fetch:
            raise ProviderError("Mock provider fetch failure")

        entry = self._vault.get(credential_ref, {})
        return NetworkTokenData(
            token=f"ntok_{credential_ref[-12:]}",
            cryptogram=MOCK_CRYPTOGRAM,
            eci=MOCK_ECI,
            expiry_month=entry.get("expiry_month"),
            expiry_year=entry.get("expiry_year"),
        )

    async def fetch_pan(self, credential_ref: str) -> PanData:
        await self._simulate_latency()

        if self.fail_on_fetch:
            raise ProviderError("Mock provider fetch failure")

        entry = self._vault.get(credential_ref)
        if entry is None or entry["kind"] != "card":
            raise ProviderError(f"No card on file for credential {credential_ref}")

        return PanData(
            pan=entry["pan"],
            expiry_month=entry["expiry_month"],
            expiry_year=entry["expiry_year"],
        )

    async def close(self) -> None:
        logger.info("mock_provider_closed", vault_size=len(self._vault))
