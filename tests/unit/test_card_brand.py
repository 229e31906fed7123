"""Unit tests for card network detection."""

import pytest

from ucp_payment_handler.domain.card_brand import (
    CardNetwork,
    card_network_name,
    detect_card_brand,
    sanitize_pan,
)


class TestDetectCardBrand:
    """Test suite for detect_card_brand."""

    @pytest.mark.parametrize(
        "pan,expected",
        [
            ("4111111111111111", CardNetwork.VISA),
            ("4222222222222", CardNetwork.VISA),
            ("5111111111111118", CardNetwork.MASTERCARD),
            ("5555555555554444", CardNetwork.MASTERCARD),
            ("2221000000000009", CardNetwork.MASTERCARD),
            ("2720990000000007", CardNetwork.MASTERCARD),
            ("378282246310005", CardNetwork.AMEX),
            ("341111111111111", CardNetwork.AMEX),
            ("6011111111111117", CardNetwork.DISCOVER),
            ("6221260000000000", CardNetwork.DISCOVER),
            ("6445644564456445", CardNetwork.DISCOVER),
            ("6500000000000002", CardNetwork.DISCOVER),
        ],
    )
    def test_known_networks(self, pan, expected):
        assert detect_card_brand(pan) == expected

    def test_strips_spaces_and_dashes(self):
        assert detect_card_brand("4111 1111 1111 1111") == CardNetwork.VISA
        assert detect_card_brand("3782-822463-10005") == CardNetwork.AMEX

    @pytest.mark.parametrize(
        "pan",
        [
            "9999999999999999",  # no matching prefix
            "2220999999999999",  # just below the Mastercard 2-series range
            "2721000000000000",  # just above it
            "3530111333300000",  # JCB is not a known network
            "37828224631000",  # Amex prefix, wrong length
            "abcd111111111111",
            "",
        ],
    )
    def test_unrecognized_returns_none(self, pan):
        assert detect_card_brand(pan) is None

    def test_is_deterministic(self):
        results = {detect_card_brand("5555555555554444") for _ in range(10)}
        assert results == {CardNetwork.MASTERCARD}

    def test_none_input_returns_none(self):
        assert detect_card_brand(None) is None


def test_sanitize_pan():
    assert sanitize_pan(" 4111-1111 1111\t1111 ") == "4111111111111111"


def test_card_network_names():
    assert card_network_name(CardNetwork.VISA) == "Visa"
    assert card_network_name(CardNetwork.MASTERCARD) == "Mastercard"
    assert card_network_name(CardNetwork.AMEX) == "American Express"
    assert card_network_name(CardNetwork.DISCOVER) == "Discover"
