"""Unit tests for configuration management."""

import os
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from ucp_payment_handler.config import (
    DEFAULT_CARD_NETWORKS,
    HandlerConfig,
    ProviderSettings,
    RedisSettings,
    Settings,
)
from ucp_payment_handler.domain.token import TokenizationType

SECRET = "s" * 32


def test_settings_default_values():
    """Test that Settings loads with default values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.log_json is True
    assert settings.signing_secret is None
    assert settings.token_ttl_seconds == 900
    assert settings.tokenization_type == TokenizationType.PAYMENT_GATEWAY
    assert settings.supported_card_networks == list(DEFAULT_CARD_NETWORKS)
    assert settings.provider.name == "mock"
    assert settings.redis.url == ""
    assert settings.redis.key_prefix == "ucp:"


def test_settings_from_environment():
    """Test that Settings can be overridden by environment variables."""
    env_vars = {
        "MERCHANT_ID": "wix_merchant_abc123",
        "SIGNING_SECRET": SECRET,
        "LOG_LEVEL": "DEBUG",
        "TOKEN_TTL_SECONDS": "300",
        "TOKENIZATION_TYPE": "DIRECT",
        "SUPPORTED_CARD_NETWORKS": '["VISA", "AMEX"]',
        "ALLOW_UNKNOWN_CARD_BRANDS": "false",
    }

    with patch.dict(os.environ, env_vars, clear=True):
        settings = Settings(_env_file=None)

    assert settings.merchant_id == "wix_merchant_abc123"
    assert settings.signing_secret.get_secret_value() == SECRET
    assert settings.log_level == "DEBUG"
    assert settings.token_ttl_seconds == 300
    assert settings.tokenization_type == TokenizationType.DIRECT
    assert settings.supported_card_networks == ["VISA", "AMEX"]
    assert settings.allow_unknown_card_brands is False


def test_nested_settings_from_environment():
    env_vars = {
        "PROVIDER__NAME": "wix",
        "PROVIDER__ACCOUNT_ID": "acct_1",
        "REDIS__URL": "redis://cache:6379/0",
    }

    with patch.dict(os.environ, env_vars, clear=True):
        settings = Settings(_env_file=None)

    assert settings.provider.name == "wix"
    assert settings.provider.account_id == "acct_1"
    assert settings.redis.url == "redis://cache:6379/0"


def test_prefixed_sub_settings():
    env_vars = {"PROVIDER_API_KEY": "key-123", "REDIS_KEY_PREFIX": "test:"}

    with patch.dict(os.environ, env_vars, clear=True):
        assert ProviderSettings().api_key.get_secret_value() == "key-123"
        assert RedisSettings().key_prefix == "test:"


def test_signing_secret_is_masked():
    settings = Settings(_env_file=None, signing_secret=SECRET)
    assert SECRET not in repr(settings)


def test_short_signing_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, signing_secret="short")


def test_non_positive_ttl_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, token_ttl_seconds=0)


@pytest.mark.parametrize(
    "environment,expected",
    [("production", "production"), ("PRODUCTION", "production"), ("staging", "sandbox")],
)
def test_handler_environment(environment, expected):
    assert Settings(_env_file=None, environment=environment).handler_environment == expected


def test_to_handler_config():
    settings = Settings(
        _env_file=None,
        merchant_id="wix_merchant_abc123",
        gateway_merchant_id="gw_1",
        supported_currencies=["USD"],
        token_ttl_seconds=120,
    )

    config = settings.to_handler_config()

    assert isinstance(config, HandlerConfig)
    assert config.merchant_id == "wix_merchant_abc123"
    assert config.environment == "sandbox"
    assert config.gateway_merchant_id == "gw_1"
    assert config.supported_currencies == ("USD",)
    assert config.token_ttl_seconds == 120


class TestHandlerConfig:
    def test_handler_id_uses_merchant_suffix(self):
        assert HandlerConfig(merchant_id="wix_merchant_abc123").handler_id == (
            "wix_pay_handler_abc123"
        )

    def test_empty_merchant_rejected(self):
        with pytest.raises(ValueError, match="merchant_id"):
            HandlerConfig(merchant_id="")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"token_ttl_seconds": 0},
            {"provider_timeout_seconds": 0},
            {"environment": "staging"},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValueError):
            HandlerConfig(merchant_id="m", **overrides)

    def test_supports_helpers_ignore_case(self):
        config = HandlerConfig(merchant_id="m")

        assert config.supports_card_network("visa")
        assert not config.supports_card_network("JCB")
        assert config.supports_payment_method("CREDITCARD")
        assert not config.supports_payment_method("paypal")
        assert config.supports_currency("usd")
        assert not config.supports_currency("JPY")

    def test_immutable(self):
        config = HandlerConfig(merchant_id="m")
        with pytest.raises(FrozenInstanceError):
            config.merchant_id = "other"
