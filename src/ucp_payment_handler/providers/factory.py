"""
Provider factory for creating payment provider instances.

Selects the provider implementation by name ("mock", "wix") so the
composition point can swap providers without touching the tokenizer or
detokenizer.
"""

from typing import Any

import structlog

from ucp_payment_handler.config import ProviderSettings
from ucp_payment_handler.providers.base import PaymentProvider
from ucp_payment_handler.providers.mock_provider import MockPaymentProvider
from ucp_payment_handler.providers.wix_provider import WixPaymentsProvider

logger = structlog.get_logger(__name__)


class ProviderFactory:
    """Factory for creating payment provider instances."""

    # Registry of available providers
    _PROVIDERS: dict[str, type[PaymentProvider]] = {
        "mock": MockPaymentProvider,
        "wix": WixPaymentsProvider,
    }

    @classmethod
    def create_provider(
        cls,
        provider_name: str,
        provider_config: dict[str, Any] | None = None,
    ) -> PaymentProvider:
        """
        Create a payment provider instance by name.

        Args:
            provider_name: Name of the provider (e.g., "mock", "wix")
            provider_config: Provider-specific configuration. Keys are passed
                             as keyword arguments except for "mock", which
                             takes the dict as its config.

        Returns:
            PaymentProvider instance

        Raises:
            ValueError: If provider_name is not registered

        Examples:
            provider = ProviderFactory.create_provider("mock", {"latency_ms": 5})

            provider = ProviderFactory.create_provider(
                "wix",
                provider_config={"base_url": "https://www.wixapis.com", "api_key": "..."},
            )
        """
        provider_name_lower = provider_name.lower()

        if provider_name_lower not in cls._PROVIDERS:
            available = ", ".join(cls.list_providers())
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available providers: {available}"
            )

        provider_class = cls._PROVIDERS[provider_name_lower]
        provider_config = provider_config or {}

        logger.info(
            "provider_created",
            provider_name=provider_name_lower,
            provider_class=provider_class.__name__,
        )

        if provider_name_lower == "mock":
            return provider_class(config=provider_config)
        return provider_class(**provider_config)

    @classmethod
    def from_settings(cls, provider_settings: ProviderSettings) -> PaymentProvider:
        """Create the provider described by ``ProviderSettings``."""
        name = provider_settings.name.lower()
        if name == "wix":
            return cls.create_provider(
                "wix",
                {
                    "base_url": provider_settings.base_url,
                    "api_key": provider_settings.api_key.get_secret_value(),
                    "account_id": provider_settings.account_id,
                    "timeout_seconds": provider_settings.timeout_seconds,
                },
            )
        return cls.create_provider(name)

    @classmethod
    def register_provider(
        cls,
        name: str,
        provider_class: type[PaymentProvider],
    ) -> None:
        """
        Register a new provider type.

        Args:
            name: Name to register the provider under
            provider_class: PaymentProvider subclass to register

        Example:
            ProviderFactory.register_provider("adyen", AdyenProvider)
        """
        if not issubclass(provider_class, PaymentProvider):
            raise TypeError(
                f"{provider_class.__name__} must inherit from PaymentProvider"
            )

        cls._PROVIDERS[name.lower()] = provider_class
        logger.info(
            "provider_registered",
            provider_name=name.lower(),
            provider_class=provider_class.__name__,
        )

    @classmethod
    def list_providers(cls) -> list[str]:
        return sorted(cls._PROVIDERS.keys())
