"""Card network detection from a PAN.

Detection uses industry-standard IIN prefixes and lengths. Rules are
evaluated in order and the first match wins. An unrecognized card returns
None; whether that is acceptable is a policy decision for the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CardNetwork(str, Enum):
    """Card networks known to the handler."""

    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"


CARD_NETWORK_NAMES: dict[CardNetwork, str] = {
    CardNetwork.VISA: "Visa",
    CardNetwork.MASTERCARD: "Mastercard",
    CardNetwork.AMEX: "American Express",
    CardNetwork.DISCOVER: "Discover",
}


@dataclass(frozen=True)
class _PrefixRule:
    """Inclusive numeric range over the first ``digits`` digits of a PAN."""

    network: CardNetwork
    digits: int
    low: int
    high: int
    lengths: tuple[int, ...]

    def matches(self, pan: str) -> bool:
        if len(pan) not in self.lengths or len(pan) < self.digits:
            return False
        prefix = int(pan[: self.digits])
        return self.low <= prefix <= self.high


_BRAND_RULES: tuple[_PrefixRule, ...] = (
    # Visa: starts with 4
    _PrefixRule(CardNetwork.VISA, 1, 4, 4, (13, 16, 17, 18, 19)),
    # Mastercard: 51-55 or 2221-2720
    _PrefixRule(CardNetwork.MASTERCARD, 2, 51, 55, (16,)),
    _PrefixRule(CardNetwork.MASTERCARD, 4, 2221, 2720, (16,)),
    # American Express: 34 or 37
    _PrefixRule(CardNetwork.AMEX, 2, 34, 34, (15,)),
    _PrefixRule(CardNetwork.AMEX, 2, 37, 37, (15,)),
    # Discover: 6011, 622126-622925, 644-649, 65
    _PrefixRule(CardNetwork.DISCOVER, 4, 6011, 6011, (16, 17, 18, 19)),
    _PrefixRule(CardNetwork.DISCOVER, 6, 622126, 622925, (16, 17, 18, 19)),
    _PrefixRule(CardNetwork.DISCOVER, 3, 644, 649, (16, 17, 18, 19)),
    _PrefixRule(CardNetwork.DISCOVER, 2, 65, 65, (16, 17, 18, 19)),
)


def sanitize_pan(pan: str) -> str:
    """Strip whitespace and dashes from a card number."""
    return "".join(ch for ch in pan if not ch.isspace() and ch != "-")


def detect_card_brand(pan: str) -> Optional[CardNetwork]:
    """Detect the card network of a PAN.

    Args:
        pan: Card number, optionally containing spaces or dashes

    Returns:
        Matching CardNetwork, or None when no rule matches
    """
    clean = sanitize_pan(pan or "")
    if not clean.isdigit():
        return None

    for rule in _BRAND_RULES:
        if rule.matches(clean):
            return rule.network

    return None


def card_network_name(network: CardNetwork) -> str:
    """Display name for a card network (e.g., "American Express")."""
    return CARD_NETWORK_NAMES[network]
