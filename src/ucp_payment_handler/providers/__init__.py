"""
Payment provider integrations.

- base.PaymentProvider: interface every provider implements
- wix_provider.WixPaymentsProvider: Wix Payments HTTP integration
- mock_provider.MockPaymentProvider: in-process provider for tests
- factory.ProviderFactory: name-based provider selection
"""

from ucp_payment_handler.providers.base import (
    CardDetails,
    NetworkTokenData,
    PanData,
    PaymentProvider,
    call_provider,
)
from ucp_payment_handler.providers.factory import ProviderFactory
from ucp_payment_handler.providers.mock_provider import MockPaymentProvider
from ucp_payment_handler.providers.wix_provider import WixPaymentsProvider

__all__ = [
    "CardDetails",
    "NetworkTokenData",
    "PanData",
    "PaymentProvider",
    "call_provider",
    "MockPaymentProvider",
    "WixPaymentsProvider",
    "ProviderFactory",
]
