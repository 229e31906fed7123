"""Pytest configuration and shared fixtures for all tests.

This module provides:
- A controllable clock for expiry tests
- Handler configuration, store, provider and facade fixtures
- Request builders for tokenize/detokenize payloads
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio

from ucp_payment_handler.config import HandlerConfig
from ucp_payment_handler.domain.models import (
    BusinessIdentity,
    CardCredential,
    DetokenizeRequest,
    TokenBinding,
    TokenizeRequest,
)
from ucp_payment_handler.handler import PaymentHandler
from ucp_payment_handler.infrastructure.repository import TokenRepository
from ucp_payment_handler.infrastructure.store import InMemoryKeyValueStore
from ucp_payment_handler.providers.mock_provider import MockPaymentProvider

TEST_SECRET = "test-signing-secret-0123456789abcdef"
VISA_PAN = "4111111111111111"
MASTERCARD_PAN = "5111111111111118"
CHECKOUT_ID = "checkout_123"
BUSINESS_ID = "merchant_456"


class FakeClock:
    """Mutable clock returning aware UTC datetimes."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    """Controllable clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def handler_config():
    """Standard handler configuration (PAYMENT_GATEWAY mode)."""
    return HandlerConfig(
        merchant_id="wix_merchant_abc123",
        gateway_merchant_id="gw_merchant_001",
        provider_timeout_seconds=1.0,
    )


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store):
    return TokenRepository(store)


@pytest.fixture
def provider():
    return MockPaymentProvider()


@pytest_asyncio.fixture
async def handler(handler_config, store, provider, clock):
    """Payment handler wired to the in-memory store and mock provider."""
    payment_handler = PaymentHandler(handler_config, store, provider, clock=clock)
    yield payment_handler
    await payment_handler.close()


@pytest.fixture
def tokenize_request():
    """
    Build a card tokenize request.

    Usage:
        request = tokenize_request(pan="5555555555554444", checkout_id="checkout_1")
    """

    def _build(
        pan: Optional[str] = VISA_PAN,
        expiry_month: Optional[str] = "12",
        expiry_year: Optional[str] = "2028",
        cvv: Optional[str] = "123",
        cardholder_name: Optional[str] = None,
        checkout_id: str = CHECKOUT_ID,
        business_id: str = BUSINESS_ID,
        metadata: Optional[dict] = None,
    ) -> TokenizeRequest:
        return TokenizeRequest(
            source_credential=CardCredential(
                pan=pan,
                expiry_month=expiry_month,
                expiry_year=expiry_year,
                cvv=cvv,
                cardholder_name=cardholder_name,
            ),
            binding=TokenBinding(
                checkout_id=checkout_id,
                business_identity=BusinessIdentity(value=business_id),
            ),
            metadata=metadata,
        )

    return _build


@pytest.fixture
def detokenize_request():
    """
    Build a detokenize request.

    Usage:
        request = detokenize_request(token, checkout_id="checkout_999")
    """

    def _build(
        token: str,
        checkout_id: str = CHECKOUT_ID,
        business_id: str = BUSINESS_ID,
    ) -> DetokenizeRequest:
        return DetokenizeRequest(
            token=token,
            binding=TokenBinding(
                checkout_id=checkout_id,
                business_identity=BusinessIdentity(value=business_id),
            ),
        )

    return _build
