"""Tokenization of payment credentials.

Validates an inbound source credential, mints the processor-side credential
through the provider, and persists a StoredToken bound to the request's
checkout and business. Only the opaque token and non-sensitive instrument
metadata leave this module.
"""

import re
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

import structlog

from ucp_payment_handler.config import HandlerConfig
from ucp_payment_handler.domain.card_brand import (
    CardNetwork,
    card_network_name,
    detect_card_brand,
    sanitize_pan,
)
from ucp_payment_handler.domain.errors import (
    ErrorDetail,
    InvalidCredentialsError,
    MissingFieldError,
    UnsupportedCardNetworkError,
    UnsupportedPaymentMethodError,
)
from ucp_payment_handler.domain.models import (
    ApplePayCredential,
    CardCredential,
    GooglePayCredential,
    Instrument,
    TokenizeRequest,
    TokenizeResponse,
)
from ucp_payment_handler.domain.token import (
    CredentialType,
    InstrumentData,
    StoredToken,
    TokenBindingData,
    TokenizationType,
    utc_now,
)
from ucp_payment_handler.infrastructure.repository import TokenRepository
from ucp_payment_handler.providers.base import CardDetails, PaymentProvider, call_provider

logger = structlog.get_logger(__name__)

_EXPIRY_MONTH_PATTERN = re.compile(r"^(0?[1-9]|1[0-2])$")
_EXPIRY_YEAR_PATTERN = re.compile(r"^(\d{2}|\d{4})$")
_CVV_PATTERN = re.compile(r"^\d{3,4}$")
MAX_CARDHOLDER_NAME_LENGTH = 100

WalletCredential = Union[GooglePayCredential, ApplePayCredential]


def payment_method_for(credential_type: str) -> str:
    """Map a source credential type onto its payment method name."""
    return "creditCard" if credential_type == "card" else credential_type


def validate_card_format(
    pan: str,
    expiry_month: str,
    expiry_year: str,
    cvv: str,
    cardholder_name: Optional[str] = None,
) -> list[ErrorDetail]:
    """Check card field formats.

    Returns:
        One ErrorDetail per malformed field (empty list when all are valid)
    """
    details = []

    clean_pan = sanitize_pan(pan)
    if not clean_pan.isdigit() or not 13 <= len(clean_pan) <= 19:
        details.append(
            ErrorDetail(
                field="sourceCredential.pan",
                code="INVALID_CREDENTIALS",
                message="Card number must be 13-19 digits",
            )
        )

    if not _EXPIRY_MONTH_PATTERN.match(expiry_month):
        details.append(
            ErrorDetail(
                field="sourceCredential.expiryMonth",
                code="INVALID_CREDENTIALS",
                message="Expiry month must be 1-12",
            )
        )

    if not _EXPIRY_YEAR_PATTERN.match(expiry_year):
        details.append(
            ErrorDetail(
                field="sourceCredential.expiryYear",
                code="INVALID_CREDENTIALS",
                message="Expiry year must be YY or YYYY",
            )
        )

    if not _CVV_PATTERN.match(cvv):
        details.append(
            ErrorDetail(
                field="sourceCredential.cvv",
                code="INVALID_CREDENTIALS",
                message="CVV must be 3 or 4 digits",
            )
        )

    if cardholder_name is not None and len(cardholder_name) > MAX_CARDHOLDER_NAME_LENGTH:
        details.append(
            ErrorDetail(
                field="sourceCredential.cardholderName",
                code="INVALID_CREDENTIALS",
                message=f"Cardholder name must be at most {MAX_CARDHOLDER_NAME_LENGTH} characters",
            )
        )

    return details


class PaymentTokenizer:
    """Turns raw or wallet credentials into opaque, checkout-bound tokens."""

    def __init__(
        self,
        config: HandlerConfig,
        repository: TokenRepository,
        provider: PaymentProvider,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.repository = repository
        self.provider = provider
        self.clock = clock

    async def tokenize(self, request: TokenizeRequest) -> TokenizeResponse:
        """
        Tokenize a source credential.

        Validation is fail-fast: payment method, required fields, card
        format, then card network. Nothing is minted or persisted when
        validation fails, and nothing is persisted when minting fails.

        Args:
            request: Tokenize request with source credential and binding

        Returns:
            TokenizeResponse with the opaque token, expiry and instrument

        Raises:
            UnsupportedPaymentMethodError: Payment method not enabled
            MissingFieldError: Required credential field absent
            InvalidCredentialsError: Malformed or provider-rejected card data
            UnsupportedCardNetworkError: Card network not enabled
            ProviderError: Provider failure or timeout while minting
        """
        credential = request.source_credential
        checkout_id = request.binding.checkout_id

        logger.info(
            "tokenize_started",
            checkout_id=checkout_id,
            credential_type=credential.type,
        )

        self._validate_payment_method(credential.type, checkout_id)

        if isinstance(credential, CardCredential):
            card = self._validate_card(credential, checkout_id)
            brand = self._check_card_network(card.pan, checkout_id)
            instrument = InstrumentData(
                type="card",
                brand=brand.value if brand else None,
                last_digits=card.last_four,
                expiry_month=card.expiry_month,
                expiry_year=card.expiry_year,
            )
            mint = self.provider.mint_card_credential(card)
        else:
            wallet_token = self._validate_wallet(credential, checkout_id)
            instrument = InstrumentData(type="wallet")
            mint = self.provider.mint_wallet_credential(credential.type, wallet_token)

        token_id = StoredToken.generate_token_id()
        created_at = self.clock()
        expires_at = created_at + timedelta(seconds=self.config.token_ttl_seconds)

        # Upstream failure skips persistence
        credential_ref = await call_provider(
            "mint_credential", mint, self.config.provider_timeout_seconds
        )

        stored = StoredToken(
            id=token_id,
            provider_credential_ref=credential_ref,
            binding=TokenBindingData(
                checkout_id=checkout_id,
                business_id=request.binding.business_identity.value,
            ),
            instrument=instrument,
            created_at=created_at,
            expires_at=expires_at,
            credential_type=CredentialType.for_tokenization_type(
                self.config.tokenization_type
            ),
            metadata=request.metadata or {},
        )
        await self.repository.save(stored, now=created_at)

        logger.info(
            "tokenize_succeeded",
            token_id=token_id,
            checkout_id=checkout_id,
            card_brand=instrument.brand,
            credential_type=stored.credential_type.value,
            expires_at=expires_at.isoformat(),
        )

        return TokenizeResponse(
            token=token_id,
            expires_at=expires_at,
            instrument=Instrument.from_data(instrument),
        )

    def _validate_payment_method(self, credential_type: str, checkout_id: str) -> None:
        method = payment_method_for(credential_type)
        # DIRECT mode hands out a PAN, which only card credentials can back
        wallet_in_direct_mode = (
            credential_type != "card"
            and self.config.tokenization_type == TokenizationType.DIRECT
        )
        if self.config.supports_payment_method(method) and not wallet_in_direct_mode:
            return

        if wallet_in_direct_mode:
            message = f"Payment method {credential_type} is not supported in DIRECT tokenization mode"
        else:
            message = f"Payment method {credential_type} is not supported"
        logger.warning(
            "tokenize_rejected_payment_method",
            checkout_id=checkout_id,
            payment_method=method,
        )
        raise UnsupportedPaymentMethodError(
            message,
            details=[
                ErrorDetail(
                    field="sourceCredential.type",
                    code="UNSUPPORTED_PAYMENT_METHOD",
                    message=message,
                )
            ],
        )

    def _validate_card(self, credential: CardCredential, checkout_id: str) -> CardDetails:
        pan = credential.pan.get_secret_value() if credential.pan else ""
        cvv = credential.cvv.get_secret_value() if credential.cvv else ""

        if not pan or not credential.expiry_month or not credential.expiry_year or not cvv:
            message = "Card credentials require pan, expiryMonth, expiryYear, and cvv"
            logger.warning("tokenize_rejected_missing_card_fields", checkout_id=checkout_id)
            raise MissingFieldError(
                message,
                details=[
                    ErrorDetail(
                        field="sourceCredential",
                        code="INVALID_CREDENTIALS",
                        message=message,
                    )
                ],
            )

        details = validate_card_format(
            pan,
            credential.expiry_month,
            credential.expiry_year,
            cvv,
            credential.cardholder_name,
        )
        if details:
            logger.warning(
                "tokenize_rejected_invalid_card",
                checkout_id=checkout_id,
                invalid_fields=[detail.field for detail in details],
            )
            raise InvalidCredentialsError("Card credentials are invalid", details=details)

        return CardDetails(
            pan=sanitize_pan(pan),
            expiry_month=credential.expiry_month,
            expiry_year=credential.expiry_year,
            cvv=cvv,
            cardholder_name=credential.cardholder_name,
        )

    def _check_card_network(self, pan: str, checkout_id: str) -> Optional[CardNetwork]:
        brand = detect_card_brand(pan)

        if brand is None:
            if self.config.allow_unknown_card_brands:
                logger.info("tokenize_unknown_card_brand", checkout_id=checkout_id)
                return None

            message = "Card network could not be determined"
            logger.warning("tokenize_rejected_unknown_card_brand", checkout_id=checkout_id)
            raise UnsupportedCardNetworkError(
                message,
                details=[
                    ErrorDetail(
                        field="sourceCredential.pan",
                        code="UNSUPPORTED_CARD_NETWORK",
                        message=message,
                    )
                ],
            )

        if not self.config.supports_card_network(brand.value):
            message = f"Card network {card_network_name(brand)} is not supported"
            logger.warning(
                "tokenize_rejected_card_network",
                checkout_id=checkout_id,
                card_brand=brand.value,
            )
            raise UnsupportedCardNetworkError(
                message,
                details=[
                    ErrorDetail(
                        field="sourceCredential.pan",
                        code="UNSUPPORTED_CARD_NETWORK",
                        message=message,
                    )
                ],
            )

        return brand

    def _validate_wallet(self, credential: WalletCredential, checkout_id: str) -> str:
        if credential.token:
            return credential.token

        label = "Google Pay" if credential.type == "googlePay" else "Apple Pay"
        message = f"{label} requires a payment token"
        logger.warning(
            "tokenize_rejected_missing_wallet_token",
            checkout_id=checkout_id,
            wallet_type=credential.type,
        )
        raise MissingFieldError(
            message,
            details=[
                ErrorDetail(
                    field="sourceCredential.token",
                    code="MISSING_FIELD",
                    message=message,
                )
            ],
        )
