"""Base interface for payment providers.

The provider mints the processor-side credential behind every token and
later hands back network-token or PAN material for it. All provider calls
go through ``call_provider`` so that timeouts and unexpected failures reach
the tokenizer/detokenizer as typed ``ProviderError`` values.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Optional, TypeVar

import structlog

from ucp_payment_handler.domain.errors import (
    ErrorDetail,
    PaymentHandlerError,
    ProviderError,
    ProviderTimeout,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CardDetails:
    """Raw card fields handed to the provider for minting.

    Lives only for the duration of the tokenize call; PAN and CVV are
    excluded from repr.
    """

    pan: str = field(repr=False)
    expiry_month: str
    expiry_year: str
    cvv: str = field(repr=False)
    cardholder_name: Optional[str] = None

    @property
    def last_four(self) -> str:
        return self.pan[-4:]


@dataclass(frozen=True)
class NetworkTokenData:
    token: str
    cryptogram: str
    eci: str
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None


@dataclass(frozen=True)
class PanData:
    pan: str = field(repr=False)
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None


class PaymentProvider(ABC):
    """
    Abstract base class for payment provider integrations.

    Implementations raise ``ProviderError`` (or a subclass) for transient
    failures and ``InvalidCredentialsError`` when the provider rejects card
    data. Anything else is wrapped by ``call_provider``.
    """

    name: str = "base"

    @abstractmethod
    async def mint_card_credential(self, card: CardDetails) -> str:
        """
        Exchange raw card fields for an opaque provider credential reference.

        Args:
            card: Validated raw card fields

        Returns:
            Provider credential reference

        Raises:
            ProviderError: For transient errors (5xx, 429, timeouts)
            InvalidCredentialsError: Card rejected by the provider
        """
        pass

    @abstractmethod
    async def mint_wallet_credential(self, wallet_type: str, wallet_token: str) -> str:
        """
        Exchange an opaque wallet payment token for a provider reference.

        Args:
            wallet_type: "googlePay" or "applePay"
            wallet_token: Wallet-issued payment token

        Returns:
            Provider credential reference
        """
        pass

    @abstractmethod
    async def fetch_network_token(self, credential_ref: str) -> NetworkTokenData:
        """Retrieve network token and cryptogram for a credential reference."""
        pass

    @abstractmethod
    async def fetch_pan(self, credential_ref: str) -> PanData:
        """Retrieve the raw PAN for a credential reference (DIRECT mode only)."""
        pass

    async def close(self) -> None:
        """Release provider resources (HTTP connection pools, etc.)."""
        pass


async def call_provider(
    operation: str,
    call: Awaitable[T],
    timeout_seconds: float,
) -> T:
    """
    Await a provider call with a timeout, translating failures.

    Args:
        operation: Operation name for logs and error messages
        call: Awaitable provider call
        timeout_seconds: Maximum time to wait

    Returns:
        The provider call's result

    Raises:
        ProviderTimeout: The call did not finish within ``timeout_seconds``
        ProviderError: The call failed with an untyped exception
        PaymentHandlerError: Typed errors raised by the provider, unchanged
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        logger.warning(
            "provider_call_timeout",
            operation=operation,
            timeout_seconds=timeout_seconds,
        )
        raise ProviderTimeout(
            f"Payment provider {operation} timed out after {timeout_seconds}s",
            details=[
                ErrorDetail(
                    field="provider",
                    code="PROVIDER_TIMEOUT",
                    message=f"{operation} timed out",
                )
            ],
        ) from e
    except PaymentHandlerError:
        raise
    except Exception as e:
        logger.error(
            "provider_call_failed",
            operation=operation,
            error_type=type(e).__name__,
        )
        raise ProviderError(
            f"Payment provider {operation} failed",
            details=[
                ErrorDetail(
                    field="provider",
                    code="PROVIDER_ERROR",
                    message=f"{operation} failed: {type(e).__name__}",
                )
            ],
        ) from e
