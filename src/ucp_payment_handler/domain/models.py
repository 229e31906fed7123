"""Pydantic models for the handler's request/response payloads.

Attributes are snake_case; camelCase aliases match the UCP wire contract so
the route layer can use ``model_validate`` / ``model_dump(by_alias=True)``
directly. Raw card fields are ``SecretStr`` and never appear in repr or
serialized output.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

from ucp_payment_handler.domain.token import InstrumentData


class UcpModel(BaseModel):
    """Base model: camelCase aliases, immutable instances."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CardCredential(UcpModel):
    """Raw card credential. Fields are optional so that missing ones are
    reported by the tokenizer with field-level detail."""

    type: Literal["card"] = "card"
    pan: Optional[SecretStr] = Field(None, description="Card number (PAN)")
    expiry_month: Optional[str] = Field(None, description="Expiry month (M or MM)")
    expiry_year: Optional[str] = Field(None, description="Expiry year (YY or YYYY)")
    cvv: Optional[SecretStr] = Field(None, description="Card verification value")
    cardholder_name: Optional[str] = Field(None, description="Name on the card")


class GooglePayCredential(UcpModel):
    type: Literal["googlePay"] = "googlePay"
    token: Optional[str] = Field(None, description="Opaque Google Pay payment token")


class ApplePayCredential(UcpModel):
    type: Literal["applePay"] = "applePay"
    token: Optional[str] = Field(None, description="Opaque Apple Pay payment token")


SourceCredential = Annotated[
    Union[CardCredential, GooglePayCredential, ApplePayCredential],
    Field(discriminator="type"),
]


class BusinessIdentity(UcpModel):
    type: str = Field("wix_merchant_id", description="Identity scheme")
    value: str = Field(..., description="Business identifier")


class TokenBinding(UcpModel):
    """Checkout/business scope a token is bound to."""

    checkout_id: str = Field(..., description="Checkout session ID")
    business_identity: BusinessIdentity


class TokenizeRequest(UcpModel):
    source_credential: SourceCredential
    binding: TokenBinding
    metadata: Optional[dict[str, Any]] = Field(None, description="Opaque caller metadata")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sourceCredential": {
                    "type": "card",
                    "pan": "4111111111111111",
                    "expiryMonth": "12",
                    "expiryYear": "2028",
                    "cvv": "123",
                },
                "binding": {
                    "checkoutId": "checkout_123",
                    "businessIdentity": {"type": "wix_merchant_id", "value": "merchant_456"},
                },
            }
        }
    )


class Instrument(UcpModel):
    """Non-sensitive instrument metadata returned to callers."""

    type: str
    brand: Optional[str] = None
    last_digits: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None

    @classmethod
    def from_data(cls, data: InstrumentData) -> "Instrument":
        return cls(
            type=data.type,
            brand=data.brand,
            last_digits=data.last_digits,
            expiry_month=data.expiry_month,
            expiry_year=data.expiry_year,
        )


class TokenizeResponse(UcpModel):
    token: str = Field(..., description="Opaque, checkout-bound token")
    expires_at: datetime = Field(..., description="Token expiry (UTC)")
    instrument: Instrument


class PspDelegation(UcpModel):
    """PSP the detokenize call is delegated to. Logged only."""

    type: str
    identity: str


class DetokenizeRequest(UcpModel):
    token: str
    binding: TokenBinding
    delegated_to: Optional[PspDelegation] = None


class Credential(UcpModel):
    """Processor-usable credential material."""

    type: Literal["network_token", "pan"]
    network_token: Optional[str] = None
    cryptogram: Optional[str] = None
    eci: Optional[str] = None
    pan: Optional[str] = Field(None, repr=False)
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None


class DetokenizeResponse(UcpModel):
    credential: Credential
    invalidated: bool = True


class HandlerDeclaration(UcpModel):
    """Capability descriptor advertised to platforms."""

    id: str
    name: str
    version: str
    spec: str
    config_schema: str
    instrument_schemas: list[str]
    config: dict[str, Any]
