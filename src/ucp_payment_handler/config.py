"""Configuration management for the UCP payment handler."""

from dataclasses import dataclass
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ucp_payment_handler.domain.token import TokenizationType

# Handler identity
HANDLER_NAME = "com.wix.payments"
HANDLER_VERSION = "2026-01-11"
HANDLER_SPEC_URL = "https://dev.wix.com/ucp/payments/spec"
HANDLER_CONFIG_SCHEMA_URL = "https://dev.wix.com/ucp/payments/config.json"
CARD_INSTRUMENT_SCHEMA_URL = "https://dev.wix.com/ucp/payments/instruments/card.json"

HANDLER_ID_PREFIX = "wix_pay_handler_"

DEFAULT_CARD_NETWORKS = ("VISA", "MASTERCARD", "AMEX", "DISCOVER")
DEFAULT_PAYMENT_METHODS = ("creditCard", "googlePay", "applePay")
DEFAULT_CURRENCIES = ("USD", "EUR", "GBP", "ILS")
DEFAULT_TOKEN_TTL_SECONDS = 900

MIN_SIGNING_SECRET_LENGTH = 32


@dataclass(frozen=True)
class HandlerConfig:
    """Immutable handler configuration consumed by business logic.

    Built once by the composition point (see ``Settings.to_handler_config``)
    and passed to the tokenizer, detokenizer and facade.
    """

    merchant_id: str
    environment: str = "sandbox"
    supported_card_networks: tuple[str, ...] = DEFAULT_CARD_NETWORKS
    supported_payment_methods: tuple[str, ...] = DEFAULT_PAYMENT_METHODS
    supported_currencies: tuple[str, ...] = DEFAULT_CURRENCIES
    three_ds_enabled: bool = True
    recurring_enabled: bool = True
    tokenization_type: TokenizationType = TokenizationType.PAYMENT_GATEWAY
    gateway_merchant_id: Optional[str] = None
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    provider_timeout_seconds: float = 10.0
    allow_unknown_card_brands: bool = True

    def __post_init__(self):
        if not self.merchant_id:
            raise ValueError("merchant_id cannot be empty")
        if self.token_ttl_seconds <= 0:
            raise ValueError("token_ttl_seconds must be positive")
        if self.provider_timeout_seconds <= 0:
            raise ValueError("provider_timeout_seconds must be positive")
        if self.environment not in ("sandbox", "production"):
            raise ValueError("environment must be 'sandbox' or 'production'")

    @property
    def handler_id(self) -> str:
        return f"{HANDLER_ID_PREFIX}{self.merchant_id[-6:]}"

    def supports_card_network(self, network: str) -> bool:
        return network.upper() in (n.upper() for n in self.supported_card_networks)

    def supports_payment_method(self, method: str) -> bool:
        return method.lower() in (m.lower() for m in self.supported_payment_methods)

    def supports_currency(self, currency: str) -> bool:
        return currency.upper() in (c.upper() for c in self.supported_currencies)


class ProviderSettings(BaseSettings):
    """Payment provider client settings."""

    name: str = Field(default="mock", description="Provider name (mock, wix)")
    base_url: str = Field(
        default="https://www.wixapis.com",
        description="Provider API base URL",
    )
    api_key: SecretStr = Field(default=SecretStr(""), description="Provider API key")
    account_id: str = Field(default="", description="Provider account ID")
    timeout_seconds: float = Field(default=10.0, description="Request timeout")

    model_config = SettingsConfigDict(env_prefix="PROVIDER_", extra="ignore")


class RedisSettings(BaseSettings):
    """Token store settings."""

    url: str = Field(default="", description="Redis URL; empty selects the in-memory store")
    socket_timeout_seconds: float = Field(default=2.0, description="Socket timeout")
    key_prefix: str = Field(default="ucp:", description="Prefix for all store keys")

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode (DEBUG level, console logs)")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # Merchant
    merchant_id: str = Field(default="", description="Wix merchant ID")
    gateway_merchant_id: Optional[str] = Field(
        default=None, description="Merchant ID at the payment gateway"
    )
    signing_secret: Optional[SecretStr] = Field(
        default=None, description="Process-wide HMAC signing secret"
    )

    # Capabilities
    supported_card_networks: list[str] = Field(default=list(DEFAULT_CARD_NETWORKS))
    supported_payment_methods: list[str] = Field(default=list(DEFAULT_PAYMENT_METHODS))
    supported_currencies: list[str] = Field(default=list(DEFAULT_CURRENCIES))
    three_ds_enabled: bool = True
    recurring_enabled: bool = True
    tokenization_type: TokenizationType = TokenizationType.PAYMENT_GATEWAY

    # Token lifecycle
    token_ttl_seconds: int = Field(default=DEFAULT_TOKEN_TTL_SECONDS, gt=0)
    allow_unknown_card_brands: bool = True
    provider_timeout_seconds: float = Field(default=10.0, gt=0)

    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("signing_secret")
    @classmethod
    def _check_secret_length(cls, value: Optional[SecretStr]) -> Optional[SecretStr]:
        if value is not None and len(value.get_secret_value()) < MIN_SIGNING_SECRET_LENGTH:
            raise ValueError(
                f"signing_secret must be at least {MIN_SIGNING_SECRET_LENGTH} characters"
            )
        return value

    @property
    def handler_environment(self) -> str:
        return "production" if self.environment.lower() == "production" else "sandbox"

    def to_handler_config(self) -> HandlerConfig:
        """Build the immutable handler configuration."""
        return HandlerConfig(
            merchant_id=self.merchant_id,
            environment=self.handler_environment,
            supported_card_networks=tuple(self.supported_card_networks),
            supported_payment_methods=tuple(self.supported_payment_methods),
            supported_currencies=tuple(self.supported_currencies),
            three_ds_enabled=self.three_ds_enabled,
            recurring_enabled=self.recurring_enabled,
            tokenization_type=self.tokenization_type,
            gateway_merchant_id=self.gateway_merchant_id,
            token_ttl_seconds=self.token_ttl_seconds,
            provider_timeout_seconds=self.provider_timeout_seconds,
            allow_unknown_card_brands=self.allow_unknown_card_brands,
        )


# Global settings instance
settings = Settings()
