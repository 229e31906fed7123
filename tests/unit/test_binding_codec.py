"""Unit tests for the secret-bound token codec."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from ucp_payment_handler.domain.binding import SecretBoundTokenCodec

SECRET = "binding-secret-0123456789abcdef0123"


class Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def codec(clock):
    return SecretBoundTokenCodec(SECRET, clock=clock)


def _decode_payload(token: str) -> dict:
    payload_b64 = token.split(".")[0]
    padded = payload_b64 + "=" * (-len(payload_b64) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


class TestIssue:
    def test_issue_returns_token_and_expiry(self, codec, clock):
        issued = codec.issue("merchant_456", "checkout_123", ttl_seconds=900)

        assert issued.token.count(".") == 1
        assert issued.artifact_id
        assert issued.expires_at == clock.now + timedelta(seconds=900)

    def test_payload_layout(self, codec, clock):
        issued = codec.issue("merchant_456", "checkout_123", ttl_seconds=60)
        payload = _decode_payload(issued.token)

        assert payload["scopeId"] == "checkout_123"
        assert payload["subjectId"] == "merchant_456"
        assert payload["artifactId"] == issued.artifact_id
        assert payload["expiresAt"] - payload["createdAt"] == 60_000

    def test_token_is_unpadded_base64url(self, codec):
        issued = codec.issue("merchant_456", "checkout_123")
        assert "=" not in issued.token
        assert "+" not in issued.token
        assert "/" not in issued.token

    def test_artifact_ids_are_unique(self, codec):
        ids = {codec.issue("m", "c").artifact_id for _ in range(20)}
        assert len(ids) == 20

    def test_non_positive_ttl_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.issue("m", "c", ttl_seconds=0)


class TestVerify:
    def test_roundtrip(self, codec):
        issued = codec.issue("merchant_456", "checkout_123")

        binding = codec.verify(issued.token, "checkout_123", "merchant_456")

        assert binding is not None
        assert binding.artifact_id == issued.artifact_id
        assert binding.scope_id == "checkout_123"
        assert binding.subject_id == "merchant_456"

    def test_wrong_scope_rejected(self, codec):
        issued = codec.issue("merchant_456", "checkout_123")
        assert codec.verify(issued.token, "checkout_999", "merchant_456") is None

    def test_wrong_subject_rejected(self, codec):
        issued = codec.issue("merchant_456", "checkout_123")
        assert codec.verify(issued.token, "checkout_123", "merchant_999") is None

    def test_expired_rejected(self, codec, clock):
        issued = codec.issue("merchant_456", "checkout_123", ttl_seconds=60)

        clock.now = clock.now + timedelta(seconds=61)

        assert codec.verify(issued.token, "checkout_123", "merchant_456") is None

    def test_valid_until_expiry(self, codec, clock):
        issued = codec.issue("merchant_456", "checkout_123", ttl_seconds=60)

        clock.now = clock.now + timedelta(seconds=60)

        assert codec.is_bound_to(issued.token, "checkout_123", "merchant_456")

    def test_tampered_payload_rejected(self, codec):
        issued = codec.issue("merchant_456", "checkout_123")
        _, signature = issued.token.split(".")

        forged_payload = base64.urlsafe_b64encode(
            json.dumps(
                {
                    "scopeId": "checkout_999",
                    "subjectId": "merchant_456",
                    "artifactId": "x",
                    "createdAt": 0,
                    "expiresAt": 9_999_999_999_999,
                }
            ).encode()
        ).rstrip(b"=").decode()

        assert codec.verify(f"{forged_payload}.{signature}", "checkout_999", "merchant_456") is None

    def test_other_secret_rejected(self, codec, clock):
        other = SecretBoundTokenCodec("another-secret-0123456789abcdef0123", clock=clock)
        issued = other.issue("merchant_456", "checkout_123")

        assert codec.verify(issued.token, "checkout_123", "merchant_456") is None

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "no-dot",
            "a.b.c",
            ".signature",
            "payload.",
            "!!!.???",
            "eyJub3QiOiJqc29uIn0.AAAA",
            12345,
            None,
        ],
    )
    def test_malformed_input_never_raises(self, codec, token):
        assert codec.verify(token, "checkout_123", "merchant_456") is None


def test_short_secret_rejected():
    with pytest.raises(ValueError, match="at least 32"):
        SecretBoundTokenCodec("too-short")


def test_bytes_secret_accepted():
    codec = SecretBoundTokenCodec(SECRET.encode("utf-8"))
    issued = codec.issue("m", "c")
    assert codec.verify(issued.token, "c", "m") is not None
