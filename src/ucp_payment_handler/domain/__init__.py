"""Payment handler domain layer.

This package contains the domain entities, payload models, typed errors and
the card brand / binding primitives. The tokenizer and detokenizer services
live in ``domain.tokenizer`` and ``domain.detokenizer``.
"""

from ucp_payment_handler.domain.binding import (
    ArtifactBinding,
    IssuedArtifact,
    SecretBoundTokenCodec,
)
from ucp_payment_handler.domain.card_brand import (
    CardNetwork,
    card_network_name,
    detect_card_brand,
)
from ucp_payment_handler.domain.errors import (
    BindingMismatchError,
    ConfigurationError,
    CredentialDeliveryError,
    ErrorCode,
    ErrorDetail,
    InvalidCredentialsError,
    MissingFieldError,
    PanNotPermittedError,
    PaymentHandlerError,
    ProviderError,
    ProviderTimeout,
    TokenConflictError,
    TokenGoneError,
    TokenNotFoundError,
    UnsupportedCardNetworkError,
    UnsupportedPaymentMethodError,
)
from ucp_payment_handler.domain.models import (
    ApplePayCredential,
    BusinessIdentity,
    CardCredential,
    Credential,
    DetokenizeRequest,
    DetokenizeResponse,
    GooglePayCredential,
    HandlerDeclaration,
    Instrument,
    PspDelegation,
    SourceCredential,
    TokenBinding,
    TokenizeRequest,
    TokenizeResponse,
)
from ucp_payment_handler.domain.token import (
    CredentialType,
    InstrumentData,
    StoredToken,
    TokenBindingData,
    TokenizationType,
)

__all__ = [
    # Binding codec
    "SecretBoundTokenCodec",
    "IssuedArtifact",
    "ArtifactBinding",
    # Card brands
    "CardNetwork",
    "card_network_name",
    "detect_card_brand",
    # Errors
    "ErrorCode",
    "ErrorDetail",
    "PaymentHandlerError",
    "MissingFieldError",
    "InvalidCredentialsError",
    "UnsupportedPaymentMethodError",
    "UnsupportedCardNetworkError",
    "TokenNotFoundError",
    "TokenGoneError",
    "BindingMismatchError",
    "PanNotPermittedError",
    "TokenConflictError",
    "ProviderError",
    "ProviderTimeout",
    "CredentialDeliveryError",
    "ConfigurationError",
    # Payload models
    "SourceCredential",
    "CardCredential",
    "GooglePayCredential",
    "ApplePayCredential",
    "BusinessIdentity",
    "TokenBinding",
    "TokenizeRequest",
    "TokenizeResponse",
    "Instrument",
    "PspDelegation",
    "DetokenizeRequest",
    "DetokenizeResponse",
    "Credential",
    "HandlerDeclaration",
    # Stored token
    "StoredToken",
    "TokenBindingData",
    "InstrumentData",
    "CredentialType",
    "TokenizationType",
]
