"""Typed errors for the payment handler.

Every rejection raised by the tokenizer, detokenizer or handler facade is a
``PaymentHandlerError`` subclass carrying a machine-readable ``code``,
field-level ``details`` and a ``retryable`` flag. The route layer renders
them with ``to_envelope()`` and maps ``status_code`` onto its transport.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine-readable error kinds."""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"
    UNSUPPORTED_CARD_NETWORK = "UNSUPPORTED_CARD_NETWORK"
    NOT_FOUND = "NOT_FOUND"
    GONE = "GONE"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    NETWORK_ERROR = "NETWORK_ERROR"
    CREDENTIAL_DELIVERY_FAILED = "CREDENTIAL_DELIVERY_FAILED"


# HTTP status codes the route layer should use for each error kind
ERROR_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.MISSING_FIELD: 400,
    ErrorCode.INVALID_CREDENTIALS: 400,
    ErrorCode.UNSUPPORTED_PAYMENT_METHOD: 400,
    ErrorCode.UNSUPPORTED_CARD_NETWORK: 400,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.GONE: 410,
    ErrorCode.CREDENTIAL_DELIVERY_FAILED: 502,
    ErrorCode.NETWORK_ERROR: 503,
}


@dataclass(frozen=True)
class ErrorDetail:
    """Field-level error detail.

    Attributes:
        field: Request field path (e.g., "sourceCredential.pan")
        code: Detail code (e.g., "BINDING_MISMATCH", "TOKEN_EXPIRED")
        message: Human-readable message
    """

    field: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


class PaymentHandlerError(Exception):
    """Base exception for all typed payment handler errors."""

    code: ErrorCode = ErrorCode.NETWORK_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        details: Optional[list[ErrorDetail]] = None,
        code: Optional[ErrorCode] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_MAP[self.code]

    def to_envelope(self) -> dict[str, Any]:
        """Render the error as the UCP error response body."""
        body: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            body["details"] = [detail.to_dict() for detail in self.details]
        return {"error": body}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class MissingFieldError(PaymentHandlerError):
    """A required credential field is absent. Caller must fix the request."""

    code = ErrorCode.MISSING_FIELD


class InvalidCredentialsError(PaymentHandlerError):
    """Credential fields are present but malformed or rejected."""

    code = ErrorCode.INVALID_CREDENTIALS


class UnsupportedPaymentMethodError(PaymentHandlerError):
    """Payment method type is not enabled for this handler."""

    code = ErrorCode.UNSUPPORTED_PAYMENT_METHOD


class UnsupportedCardNetworkError(PaymentHandlerError):
    """Card network is not enabled for this handler."""

    code = ErrorCode.UNSUPPORTED_CARD_NETWORK


class TokenNotFoundError(PaymentHandlerError):
    """Token never existed, was evicted by TTL, or was invalidated.

    The caller cannot tell these cases apart.
    """

    code = ErrorCode.NOT_FOUND


class TokenGoneError(PaymentHandlerError):
    """Token exists but is dead (already used or expired)."""

    code = ErrorCode.GONE

    def __init__(self, message: str, *, reason: str, **kwargs):
        super().__init__(message, **kwargs)
        self.reason = reason


class BindingMismatchError(PaymentHandlerError):
    """Token presented outside of the checkout/business it is bound to."""

    code = ErrorCode.FORBIDDEN


class PanNotPermittedError(PaymentHandlerError):
    """Raw PAN requested while the handler is not in DIRECT mode."""

    code = ErrorCode.FORBIDDEN


class TokenConflictError(PaymentHandlerError):
    """Lost the atomic consume race to a concurrent detokenize call.

    Not retryable for this token. Callers should check order/payment status
    instead of retrying blindly.
    """

    code = ErrorCode.CONFLICT


class ProviderError(PaymentHandlerError):
    """Upstream provider failure. Retryable by the caller with backoff."""

    code = ErrorCode.NETWORK_ERROR
    retryable = True


class ProviderTimeout(ProviderError):
    """Upstream provider call exceeded its timeout."""

    pass


class CredentialDeliveryError(PaymentHandlerError):
    """Token was consumed but credential material could not be produced.

    This is terminal: the token is dead and retrying cannot succeed.
    """

    code = ErrorCode.CREDENTIAL_DELIVERY_FAILED
    retryable = False


class ConfigurationError(Exception):
    """Raised at startup when the handler cannot be composed."""

    pass
