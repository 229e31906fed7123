"""Payment handler facade and composition point.

``PaymentHandler`` is the single entry point the route layer talks to. It
bundles the capability declaration with tokenize/detokenize/invalidate and
normalizes any non-typed failure into a retryable NETWORK_ERROR so raw
internal exceptions never reach callers.

``create_handler`` is the only place that reads configuration.
"""

from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from ucp_payment_handler import config as config_module
from ucp_payment_handler.config import (
    CARD_INSTRUMENT_SCHEMA_URL,
    HANDLER_CONFIG_SCHEMA_URL,
    HANDLER_NAME,
    HANDLER_SPEC_URL,
    HANDLER_VERSION,
    HandlerConfig,
    Settings,
)
from ucp_payment_handler.domain.binding import SecretBoundTokenCodec
from ucp_payment_handler.domain.detokenizer import PaymentDetokenizer
from ucp_payment_handler.domain.errors import (
    ConfigurationError,
    ErrorCode,
    PaymentHandlerError,
)
from ucp_payment_handler.domain.models import (
    DetokenizeRequest,
    DetokenizeResponse,
    HandlerDeclaration,
    TokenizeRequest,
    TokenizeResponse,
)
from ucp_payment_handler.domain.token import TokenizationType, utc_now
from ucp_payment_handler.domain.tokenizer import PaymentTokenizer
from ucp_payment_handler.infrastructure.redis_store import RedisKeyValueStore
from ucp_payment_handler.infrastructure.repository import TokenRepository
from ucp_payment_handler.infrastructure.store import InMemoryKeyValueStore, KeyValueStore
from ucp_payment_handler.logging_config import configure_logging
from ucp_payment_handler.providers.base import PaymentProvider
from ucp_payment_handler.providers.factory import ProviderFactory

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PaymentHandler:
    """UCP payment handler facade."""

    def __init__(
        self,
        config: HandlerConfig,
        store: KeyValueStore,
        provider: PaymentProvider,
        clock: Callable[[], datetime] = utc_now,
        binding_codec: Optional[SecretBoundTokenCodec] = None,
    ):
        """
        Initialize the handler.

        Args:
            config: Immutable handler configuration
            store: Key-value store capability for token persistence
            provider: Payment provider collaborator
            clock: Returns the current aware UTC time
            binding_codec: Codec for other checkout-bound artifacts
        """
        self._config = config
        self._store = store
        self._provider = provider
        self._binding_codec = binding_codec

        repository = TokenRepository(store)
        self._tokenizer = PaymentTokenizer(config, repository, provider, clock=clock)
        self._detokenizer = PaymentDetokenizer(config, repository, provider, clock=clock)

    @property
    def config(self) -> HandlerConfig:
        return self._config

    @property
    def binding_codec(self) -> Optional[SecretBoundTokenCodec]:
        return self._binding_codec

    def get_handler_declaration(self) -> HandlerDeclaration:
        """Capability descriptor. Static configuration echo, no I/O."""
        config = self._config
        instrument_types = list(config.supported_payment_methods)
        if config.tokenization_type == TokenizationType.DIRECT:
            instrument_types = [m for m in instrument_types if m == "creditCard"]
        handler_config = {
            "merchantId": config.merchant_id,
            "environment": config.environment,
            "supportedNetworks": list(config.supported_card_networks),
            "supportedCurrencies": list(config.supported_currencies),
            "supportedInstrumentTypes": instrument_types,
            "supportsTokenization": True,
            "supportsRecurring": config.recurring_enabled,
            "threeDSEnabled": config.three_ds_enabled,
            "tokenizationType": config.tokenization_type.value,
        }
        if config.gateway_merchant_id:
            handler_config["gatewayMerchantId"] = config.gateway_merchant_id

        return HandlerDeclaration(
            id=config.handler_id,
            name=HANDLER_NAME,
            version=HANDLER_VERSION,
            spec=HANDLER_SPEC_URL,
            config_schema=HANDLER_CONFIG_SCHEMA_URL,
            instrument_schemas=[CARD_INSTRUMENT_SCHEMA_URL],
            config=handler_config,
        )

    async def tokenize(self, request: TokenizeRequest) -> TokenizeResponse:
        return await self._guard(
            "tokenize",
            self._tokenizer.tokenize(request),
            "Failed to tokenize payment credentials",
            checkout_id=request.binding.checkout_id,
        )

    async def detokenize(self, request: DetokenizeRequest) -> DetokenizeResponse:
        return await self._guard(
            "detokenize",
            self._detokenizer.detokenize(request),
            "Failed to detokenize payment token",
            checkout_id=request.binding.checkout_id,
            token_id=request.token,
        )

    async def invalidate_token(self, checkout_id: str, token: str) -> bool:
        """Delete a token outright (e.g., on checkout cancellation)."""
        return await self._guard(
            "invalidate_token",
            self._detokenizer.invalidate_token(checkout_id, token),
            "Failed to invalidate payment token",
            checkout_id=checkout_id,
            token_id=token,
        )

    async def close(self) -> None:
        """Release store and provider resources."""
        await self._provider.close()
        await self._store.close()
        logger.info("payment_handler_closed")

    async def _guard(
        self,
        operation: str,
        call: Awaitable[T],
        message: str,
        **log_context: str,
    ) -> T:
        try:
            return await call
        except PaymentHandlerError:
            raise
        except Exception as e:
            logger.error(
                "payment_handler_unexpected_error",
                operation=operation,
                error_type=type(e).__name__,
                **log_context,
            )
            raise PaymentHandlerError(
                message,
                code=ErrorCode.NETWORK_ERROR,
                retryable=True,
            ) from e


def create_handler(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    provider: Optional[PaymentProvider] = None,
) -> PaymentHandler:
    """
    Compose a PaymentHandler from settings.

    Called without ``settings`` this is the process entry point: the
    module-level settings are used and structured logging is configured
    from them.

    Args:
        settings: Application settings (defaults to the environment)
        store: Store override; defaults to Redis when configured, else in-memory
        provider: Provider override; defaults to ``settings.provider.name``

    Returns:
        Ready-to-use PaymentHandler

    Raises:
        ConfigurationError: Missing signing secret or invalid configuration
    """
    if settings is None:
        settings = config_module.settings
        if settings.debug:
            configure_logging("DEBUG", format_as_json=False)
        else:
            configure_logging(settings.log_level, format_as_json=settings.log_json)

    if settings.signing_secret is None:
        raise ConfigurationError("SIGNING_SECRET must be set")

    try:
        config = settings.to_handler_config()
        codec = SecretBoundTokenCodec(settings.signing_secret.get_secret_value())
    except ValueError as e:
        raise ConfigurationError(f"Invalid handler configuration: {e}") from e

    if store is None:
        if settings.redis.url:
            store = RedisKeyValueStore.from_url(
                settings.redis.url,
                socket_timeout_seconds=settings.redis.socket_timeout_seconds,
                key_prefix=settings.redis.key_prefix,
            )
        else:
            store = InMemoryKeyValueStore()

    if provider is None:
        try:
            provider = ProviderFactory.from_settings(settings.provider)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    logger.info(
        "payment_handler_created",
        handler_id=config.handler_id,
        environment=config.environment,
        tokenization_type=config.tokenization_type.value,
        store=type(store).__name__,
        provider=provider.name,
    )

    return PaymentHandler(config, store, provider, binding_codec=codec)
