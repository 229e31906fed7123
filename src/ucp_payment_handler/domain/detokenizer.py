"""Detokenization: exchange a token for credential material exactly once.

Every check below is a distinct failure mode:

    1. token not stored under any checkout     -> NOT_FOUND
    2. token already used                      -> GONE
    3. token past its expiry                   -> GONE
    4. checkoutId differs from the binding     -> FORBIDDEN
    5. businessId differs from the binding     -> FORBIDDEN
    6. atomic consume lost to another caller   -> CONFLICT
    7. credential retrieval fails after consume -> CREDENTIAL_DELIVERY_FAILED

Step 2 is an early exit only; step 6 is the authoritative single-use guard.
"""

from datetime import datetime
from typing import Callable

import structlog

from ucp_payment_handler.config import HandlerConfig
from ucp_payment_handler.domain.errors import (
    BindingMismatchError,
    CredentialDeliveryError,
    ErrorDetail,
    PanNotPermittedError,
    PaymentHandlerError,
    TokenConflictError,
    TokenGoneError,
    TokenNotFoundError,
)
from ucp_payment_handler.domain.models import (
    Credential,
    DetokenizeRequest,
    DetokenizeResponse,
)
from ucp_payment_handler.domain.token import (
    CredentialType,
    StoredToken,
    TokenizationType,
    utc_now,
)
from ucp_payment_handler.infrastructure.repository import TokenRepository
from ucp_payment_handler.providers.base import PaymentProvider, call_provider

logger = structlog.get_logger(__name__)


class PaymentDetokenizer:
    """Validates and consumes tokens, producing processor-usable credentials."""

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

    async def detokenize(self, request: DetokenizeRequest) -> DetokenizeResponse:
        """
        Redeem a token for credential material.

        Not idempotent: past the first successful consume every further call
        fails. No step is retried internally.

        Args:
            request: Token, binding and optional PSP delegation

        Returns:
            DetokenizeResponse with the credential and ``invalidated=True``

        Raises:
            TokenNotFoundError, TokenGoneError, BindingMismatchError,
            PanNotPermittedError, TokenConflictError, CredentialDeliveryError
        """
        token_id = request.token
        checkout_id = request.binding.checkout_id
        business_id = request.binding.business_identity.value

        log = logger.bind(token_id=token_id, checkout_id=checkout_id)
        if request.delegated_to is not None:
            log = log.bind(
                delegated_to_type=request.delegated_to.type,
                delegated_to_identity=request.delegated_to.identity,
            )
        log.info("detokenize_started")

        stored = await self.repository.find(checkout_id, token_id)
        if stored is None:
            log.warning("detokenize_rejected_not_found")
            raise TokenNotFoundError(
                "Payment token not found or expired",
                details=[
                    ErrorDetail(
                        field="token",
                        code="TOKEN_NOT_FOUND",
                        message="Payment token not found or expired",
                    )
                ],
            )

        if stored.used:
            log.warning("detokenize_rejected_already_used")
            raise TokenGoneError(
                "Payment token has already been used",
                reason="used",
                details=[
                    ErrorDetail(
                        field="token",
                        code="TOKEN_INVALID",
                        message="Payment token has already been used",
                    )
                ],
            )

        if stored.is_expired(self.clock()):
            log.warning("detokenize_rejected_expired", expires_at=stored.expires_at.isoformat())
            raise TokenGoneError(
                "Payment token has expired",
                reason="expired",
                details=[
                    ErrorDetail(
                        field="token",
                        code="TOKEN_EXPIRED",
                        message="Payment token has expired",
                    )
                ],
            )

        self._validate_binding(stored, checkout_id, business_id, log)

        if (
            stored.credential_type == CredentialType.PAN
            and self.config.tokenization_type != TokenizationType.DIRECT
        ):
            log.warning(
                "detokenize_rejected_pan_not_permitted",
                tokenization_type=self.config.tokenization_type.value,
            )
            raise PanNotPermittedError(
                "PAN credentials are only available in DIRECT tokenization mode",
                details=[
                    ErrorDetail(
                        field="token",
                        code="PAN_NOT_PERMITTED",
                        message="PAN credentials are only available in DIRECT tokenization mode",
                    )
                ],
            )

        consumed = await self.repository.mark_used(stored)
        if not consumed:
            log.warning("detokenize_rejected_conflict")
            raise TokenConflictError(
                "Payment token is no longer available",
                details=[
                    ErrorDetail(
                        field="token",
                        code="TOKEN_INVALID",
                        message="Payment token is no longer available",
                    )
                ],
            )

        log.info("detokenize_token_consumed")

        try:
            credential = await self._build_credential(stored)
        except PaymentHandlerError as e:
            # The token is already dead; the caller must not retry
            log.error(
                "detokenize_credential_delivery_failed",
                error_code=e.code.value,
                error_type=type(e).__name__,
            )
            raise CredentialDeliveryError(
                "Payment token was consumed but credential delivery failed",
                details=[
                    ErrorDetail(
                        field="token",
                        code="TOKEN_CONSUMED",
                        message="Token is no longer usable; check payment status before retrying",
                    )
                ],
            ) from e

        log.info("detokenize_succeeded", credential_type=credential.type)
        return DetokenizeResponse(credential=credential, invalidated=True)

    async def invalidate_token(self, checkout_id: str, token_id: str) -> bool:
        """
        Delete a token outright, regardless of its used/expiry state.

        Returns:
            True if the token existed under ``checkout_id``
        """
        deleted = await self.repository.delete(checkout_id, token_id)
        logger.info(
            "token_invalidated",
            token_id=token_id,
            checkout_id=checkout_id,
            deleted=deleted,
        )
        return deleted

    def _validate_binding(
        self,
        stored: StoredToken,
        checkout_id: str,
        business_id: str,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        if stored.binding.checkout_id != checkout_id:
            log.warning(
                "detokenize_rejected_binding_mismatch",
                field="checkoutId",
                expected=stored.binding.checkout_id,
                received=checkout_id,
            )
            raise BindingMismatchError(
                "Token binding mismatch: checkoutId does not match",
                details=[
                    ErrorDetail(
                        field="binding.checkoutId",
                        code="BINDING_MISMATCH",
                        message="Token binding mismatch: checkoutId does not match",
                    )
                ],
            )

        if stored.binding.business_id != business_id:
            log.warning(
                "detokenize_rejected_binding_mismatch",
                field="businessIdentity",
                expected=stored.binding.business_id,
                received=business_id,
            )
            raise BindingMismatchError(
                "Token binding mismatch: businessIdentity does not match",
                details=[
                    ErrorDetail(
                        field="binding.businessIdentity",
                        code="BINDING_MISMATCH",
                        message="Token binding mismatch: businessIdentity does not match",
                    )
                ],
            )

    async def _build_credential(self, stored: StoredToken) -> Credential:
        timeout = self.config.provider_timeout_seconds
        ref = stored.provider_credential_ref

        if stored.credential_type == CredentialType.PAN:
            pan_data = await call_provider("fetch_pan", self.provider.fetch_pan(ref), timeout)
            return Credential(
                type="pan",
                pan=pan_data.pan,
                expiry_month=pan_data.expiry_month or stored.instrument.expiry_month,
                expiry_year=pan_data.expiry_year or stored.instrument.expiry_year,
            )

        network = await call_provider(
            "fetch_network_token", self.provider.fetch_network_token(ref), timeout
        )
        return Credential(
            type="network_token",
            network_token=network.token,
            cryptogram=network.cryptogram,
            eci=network.eci,
            expiry_month=network.expiry_month or stored.instrument.expiry_month,
            expiry_year=network.expiry_year or stored.instrument.expiry_year,
        )
