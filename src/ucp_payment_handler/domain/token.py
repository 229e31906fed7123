"""Domain model for stored payment tokens.

A StoredToken is the only persisted entity of the handler. It maps the
opaque, caller-facing token ID onto the provider-side credential reference
and records the checkout/business binding it may be redeemed under.
"""

import json
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

TOKEN_ID_PREFIX = "tok_"


class TokenizationType(str, Enum):
    """How credential material is handed out on detokenization."""

    PAYMENT_GATEWAY = "PAYMENT_GATEWAY"
    DIRECT = "DIRECT"


class CredentialType(str, Enum):
    """Shape of the credential produced when a token is redeemed."""

    NETWORK_TOKEN = "network_token"
    PAN = "pan"

    @classmethod
    def for_tokenization_type(cls, tokenization_type: TokenizationType) -> "CredentialType":
        if tokenization_type == TokenizationType.DIRECT:
            return cls.PAN
        return cls.NETWORK_TOKEN


def utc_now() -> datetime:
    """Default clock: current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _ensure_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _to_epoch_ms(moment: datetime) -> int:
    return int(_ensure_aware(moment).timestamp() * 1000)


def _from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class TokenBindingData:
    """Checkout/business scope a token is restricted to."""

    checkout_id: str
    business_id: str

    def __post_init__(self):
        if not self.checkout_id:
            raise ValueError("checkout_id cannot be empty")
        if not self.business_id:
            raise ValueError("business_id cannot be empty")


@dataclass(frozen=True)
class InstrumentData:
    """Non-sensitive display metadata derived at tokenization.

    Attributes:
        type: "card" or "wallet"
        brand: Card network (e.g., "VISA"), if detected
        last_digits: Last 4 digits of the card number
        expiry_month: Card expiry month as supplied
        expiry_year: Card expiry year as supplied
    """

    type: str
    brand: Optional[str] = None
    last_digits: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None

    def __post_init__(self):
        if self.last_digits is not None and len(self.last_digits) > 4:
            raise ValueError("last_digits must not exceed 4 characters")

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary, omitting unset fields."""
        result = {"type": self.type}
        if self.brand:
            result["brand"] = self.brand
        if self.last_digits:
            result["lastDigits"] = self.last_digits
        if self.expiry_month:
            result["expiryMonth"] = self.expiry_month
        if self.expiry_year:
            result["expiryYear"] = self.expiry_year
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InstrumentData":
        return cls(
            type=data["type"],
            brand=data.get("brand"),
            last_digits=data.get("lastDigits"),
            expiry_month=data.get("expiryMonth"),
            expiry_year=data.get("expiryYear"),
        )


@dataclass(frozen=True)
class StoredToken:
    """Persisted token record.

    Immutable except for ``used``, which only ever flips false -> true via
    ``mark_used()`` inside the repository's atomic consume step.

    Attributes:
        id: Opaque token ID in format tok_{random}
        provider_credential_ref: Provider-side credential reference (never exposed)
        binding: Checkout/business scope
        instrument: Non-sensitive display metadata
        created_at: When the token was issued
        expires_at: created_at + TTL
        credential_type: Shape of the credential handed out on redemption
        used: Whether the token has been redeemed
        metadata: Caller-supplied metadata echoed from the tokenize request
    """

    id: str
    provider_credential_ref: str
    binding: TokenBindingData
    instrument: InstrumentData
    created_at: datetime
    expires_at: datetime
    credential_type: CredentialType
    used: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate token fields."""
        if not self.id.startswith(TOKEN_ID_PREFIX):
            raise ValueError(f"id must start with '{TOKEN_ID_PREFIX}'")

        if not self.provider_credential_ref:
            raise ValueError("provider_credential_ref cannot be empty")

        if _ensure_aware(self.expires_at) <= _ensure_aware(self.created_at):
            raise ValueError("expires_at must be after created_at")

    @staticmethod
    def generate_token_id() -> str:
        """Generate a new opaque token ID (32 random bytes, URL-safe).

        Returns:
            Token ID in format tok_{random}
        """
        return f"{TOKEN_ID_PREFIX}{secrets.token_urlsafe(32)}"

    def is_expired(self, now: datetime) -> bool:
        return _ensure_aware(now) > _ensure_aware(self.expires_at)

    def ttl_seconds(self, now: datetime) -> int:
        """Seconds left until expiry, at least 1."""
        remaining = (_ensure_aware(self.expires_at) - _ensure_aware(now)).total_seconds()
        return max(1, int(remaining))

    def mark_used(self) -> "StoredToken":
        """Return a copy with ``used`` set."""
        return replace(self, used=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "providerCredentialRef": self.provider_credential_ref,
            "binding": {
                "checkoutId": self.binding.checkout_id,
                "businessId": self.binding.business_id,
            },
            "instrument": self.instrument.to_dict(),
            "createdAt": _to_epoch_ms(self.created_at),
            "expiresAt": _to_epoch_ms(self.expires_at),
            "used": self.used,
            "credentialType": self.credential_type.value,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoredToken":
        """Create a StoredToken from its serialized form.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            binding = data["binding"]
            return cls(
                id=data["id"],
                provider_credential_ref=data["providerCredentialRef"],
                binding=TokenBindingData(
                    checkout_id=binding["checkoutId"],
                    business_id=binding["businessId"],
                ),
                instrument=InstrumentData.from_dict(data["instrument"]),
                created_at=_from_epoch_ms(data["createdAt"]),
                expires_at=_from_epoch_ms(data["expiresAt"]),
                credential_type=CredentialType(data["credentialType"]),
                used=bool(data.get("used", False)),
                metadata=data.get("metadata") or {},
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid stored token format: {e}") from e

    @classmethod
    def from_json(cls, raw: str) -> "StoredToken":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid stored token JSON: {e}") from e
        return cls.from_dict(data)
