"""Unit tests for ProviderFactory."""

import pytest

from ucp_payment_handler.config import ProviderSettings
from ucp_payment_handler.providers.factory import ProviderFactory
from ucp_payment_handler.providers.mock_provider import MockPaymentProvider
from ucp_payment_handler.providers.wix_provider import WixPaymentsProvider


@pytest.fixture
def restore_registry():
    original = dict(ProviderFactory._PROVIDERS)
    yield
    ProviderFactory._PROVIDERS = original


def test_list_providers():
    assert ProviderFactory.list_providers() == ["mock", "wix"]


def test_create_mock_with_config():
    provider = ProviderFactory.create_provider("MOCK", {"latency_ms": 5})

    assert isinstance(provider, MockPaymentProvider)
    assert provider.latency_ms == 5


def test_create_wix():
    provider = ProviderFactory.create_provider(
        "wix", {"base_url": "https://www.wixapis.com", "api_key": "key"}
    )

    assert isinstance(provider, WixPaymentsProvider)
    assert provider.base_url == "https://www.wixapis.com"


def test_unknown_provider():
    with pytest.raises(ValueError, match="Unknown provider: adyen"):
        ProviderFactory.create_provider("adyen")


def test_from_settings_wix():
    settings = ProviderSettings(
        name="wix",
        base_url="https://payments.example.test",
        api_key="secret-key",
        account_id="acct_1",
        timeout_seconds=3.0,
    )

    provider = ProviderFactory.from_settings(settings)

    assert isinstance(provider, WixPaymentsProvider)
    assert provider.timeout_seconds == 3.0
    assert provider.http_client.headers["Authorization"] == "secret-key"


def test_from_settings_defaults_to_mock():
    assert isinstance(ProviderFactory.from_settings(ProviderSettings()), MockPaymentProvider)


def test_register_provider(restore_registry):
    class CustomProvider(MockPaymentProvider):
        name = "custom"

    ProviderFactory.register_provider("Custom", CustomProvider)

    assert "custom" in ProviderFactory.list_providers()
    assert isinstance(ProviderFactory.create_provider("custom"), CustomProvider)


def test_register_rejects_non_providers(restore_registry):
    class NotAProvider:
        pass

    with pytest.raises(TypeError, match="must inherit from PaymentProvider"):
        ProviderFactory.register_provider("bad", NotAProvider)
