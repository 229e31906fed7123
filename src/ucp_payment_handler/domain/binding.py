"""Secret-bound token codec for checkout-scoped artifacts.

Issues self-contained, tamper-evident tokens of the form
``base64url(payload).base64url(hmac_sha256(payload))``. The payload binds an
artifact to a scope (checkout) and a subject (business) with an expiry, so a
token cannot be forged without the secret, replayed under a different
scope/subject pair, or used after it expires.
"""

import base64
import binascii
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

logger = structlog.get_logger(__name__)

DEFAULT_ARTIFACT_TTL_SECONDS = 15 * 60
MIN_SECRET_LENGTH = 32


@dataclass(frozen=True)
class IssuedArtifact:
    """Result of issuing a bound token."""

    token: str
    artifact_id: str
    expires_at: datetime


@dataclass(frozen=True)
class ArtifactBinding:
    """Verified contents of a bound token. Timestamps are epoch milliseconds."""

    scope_id: str
    subject_id: str
    artifact_id: str
    created_at: int
    expires_at: int


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class SecretBoundTokenCodec:
    """Issue and verify HMAC-signed, scope-bound tokens.

    The secret is supplied by the composition root; this class never reads
    configuration or the environment.
    """

    def __init__(
        self,
        secret: Union[str, bytes],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"Signing secret must be at least {MIN_SECRET_LENGTH} bytes, got {len(secret)}"
            )
        self._secret = secret
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _sign(self, payload_b64: str) -> bytes:
        mac = hmac.HMAC(self._secret, hashes.SHA256())
        mac.update(payload_b64.encode("ascii"))
        return mac.finalize()

    def issue(
        self,
        subject_id: str,
        scope_id: str,
        ttl_seconds: int = DEFAULT_ARTIFACT_TTL_SECONDS,
    ) -> IssuedArtifact:
        """Issue a token bound to ``scope_id``/``subject_id``.

        Args:
            subject_id: Subject the artifact belongs to (e.g., business ID)
            scope_id: Scope the artifact is valid in (e.g., checkout ID)
            ttl_seconds: Lifetime of the token in seconds

        Returns:
            IssuedArtifact with the token string, artifact ID and expiry
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        artifact_id = secrets.token_urlsafe(16)

        payload = {
            "scopeId": scope_id,
            "subjectId": subject_id,
            "artifactId": artifact_id,
            "createdAt": _epoch_ms(now),
            "expiresAt": _epoch_ms(expires_at),
        }
        payload_b64 = _b64url_encode(
            json.dumps(payload, separators=(",", ":")).encode("utf-8")
        )
        signature_b64 = _b64url_encode(self._sign(payload_b64))

        return IssuedArtifact(
            token=f"{payload_b64}.{signature_b64}",
            artifact_id=artifact_id,
            expires_at=expires_at,
        )

    def verify(
        self, token: str, scope_id: str, subject_id: str
    ) -> Optional[ArtifactBinding]:
        """Verify a token against the expected scope and subject.

        Never raises on malformed input.

        Returns:
            ArtifactBinding if the token is authentic, bound to the given
            scope/subject and unexpired; None otherwise
        """
        if not isinstance(token, str) or token.count(".") != 1:
            return None

        payload_b64, signature_b64 = token.split(".")
        if not payload_b64 or not signature_b64:
            return None

        try:
            signature = _b64url_decode(signature_b64)
            payload_bytes = payload_b64.encode("ascii")
        except (binascii.Error, ValueError):
            return None

        mac = hmac.HMAC(self._secret, hashes.SHA256())
        mac.update(payload_bytes)
        try:
            # constant-time comparison
            mac.verify(signature)
        except InvalidSignature:
            logger.warning("bound_token_signature_invalid", scope_id=scope_id)
            return None

        try:
            payload = json.loads(_b64url_decode(payload_b64))
            binding = ArtifactBinding(
                scope_id=payload["scopeId"],
                subject_id=payload["subjectId"],
                artifact_id=payload["artifactId"],
                created_at=int(payload["createdAt"]),
                expires_at=int(payload["expiresAt"]),
            )
        except (binascii.Error, ValueError, KeyError, TypeError):
            return None

        if binding.scope_id != scope_id or binding.subject_id != subject_id:
            logger.warning(
                "bound_token_scope_mismatch",
                expected_scope_id=scope_id,
                received_scope_id=binding.scope_id,
                expected_subject_id=subject_id,
                received_subject_id=binding.subject_id,
            )
            return None

        if _epoch_ms(self._clock()) > binding.expires_at:
            logger.warning(
                "bound_token_expired",
                artifact_id=binding.artifact_id,
                scope_id=scope_id,
            )
            return None

        return binding

    def is_bound_to(self, token: str, scope_id: str, subject_id: str) -> bool:
        """Check whether a token verifies for the given scope and subject."""
        return self.verify(token, scope_id, subject_id) is not None
