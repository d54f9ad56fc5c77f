"""
Region, currency and price tables used during normalization.

Amounts are kept in minor units (kobo, cents, pence) and converted only for
display.
"""
import re
from typing import Dict, List, NamedTuple, Optional, Tuple


class CurrencyConfig(NamedTuple):
    code: str
    symbol: str
    decimal_places: int = 2


SUPPORTED_CURRENCIES: Dict[str, CurrencyConfig] = {
    "NGN": CurrencyConfig("NGN", "₦"),
    "USD": CurrencyConfig("USD", "$"),
    "GBP": CurrencyConfig("GBP", "£"),
    "CAD": CurrencyConfig("CAD", "CAD $"),
}

DEFAULT_CURRENCY = "USD"

# Checked in order; first keyword found in the address wins
REGION_CURRENCY_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("NGN", ["nigeria", "lagos", "abuja"]),
    ("GBP", ["united kingdom", "uk", "london", "manchester", "birmingham"]),
    ("CAD", ["canada", "toronto", "vancouver", "montreal"]),
]

# Typical per-person ranges in minor units
PRICE_TIERS: Dict[str, Dict[str, Tuple[int, int]]] = {
    "NGN": {
        "budget": (50000, 150000),
        "moderate": (150000, 400000),
        "expensive": (400000, 800000),
    },
    "GBP": {
        "budget": (800, 2000),
        "moderate": (2000, 4500),
        "expensive": (4500, 8000),
    },
    "CAD": {
        "budget": (800, 2000),
        "moderate": (2000, 4500),
        "expensive": (4500, 8000),
    },
    "USD": {
        "budget": (500, 1500),
        "moderate": (1500, 3500),
        "expensive": (3500, 6000),
    },
}

AMOUNT_PATTERN = re.compile(r'\d+(?:,\d{3})*(?:\.\d+)?')


def _config(currency: str) -> CurrencyConfig:
    return SUPPORTED_CURRENCIES.get(currency, SUPPORTED_CURRENCIES[DEFAULT_CURRENCY])


def currency_for_address(address: Optional[str]) -> str:
    """Estimate the currency from country/city keywords in an address."""
    if not address:
        return DEFAULT_CURRENCY
    lowered = address.lower()
    for currency, keywords in REGION_CURRENCY_KEYWORDS:
        for keyword in keywords:
            if re.search(rf'\b{re.escape(keyword)}\b', lowered):
                return currency
    return DEFAULT_CURRENCY


def price_tier_for_level(price_level: Optional[int]) -> str:
    if price_level is None:
        return "moderate"
    if price_level <= 1:
        return "budget"
    if price_level == 2:
        return "moderate"
    return "expensive"


def tier_range(currency: str, tier: str) -> Tuple[int, int]:
    return PRICE_TIERS.get(currency, PRICE_TIERS[DEFAULT_CURRENCY])[tier]


def to_minor_units(amount: float, currency: str) -> int:
    return round(amount * 10 ** _config(currency).decimal_places)


def from_minor_units(amount: int, currency: str) -> float:
    return amount / 10 ** _config(currency).decimal_places


def _format_amount(amount: int, currency: str) -> str:
    value = from_minor_units(amount, currency)
    if currency == "NGN":
        # Naira amounts are shown whole with thousands separators
        return f"{value:,.0f}"
    return f"{value:.0f}"


def format_price_range(min_amount: int, max_amount: int, currency: str, per_person: bool = True) -> str:
    """
    Display string for a range in minor units.

    >>> format_price_range(150000, 300000, "NGN")
    '₦1,500-3,000 per person'
    """
    if min_amount == 0 and max_amount == 0:
        return "Free"
    symbol = _config(currency).symbol
    text = f"{symbol}{_format_amount(min_amount, currency)}-{_format_amount(max_amount, currency)}"
    return f"{text} per person" if per_person else text


def parse_price_text(text: Optional[str], currency: str) -> Optional[Tuple[int, int]]:
    """
    Parse scraped price text such as "N1,500 - 3,000 per person" into a
    (min, max) pair of minor units. A single amount gives min == max.
    Returns None when no amount is found.
    """
    if not text:
        return None
    amounts = [float(m.replace(",", "")) for m in AMOUNT_PATTERN.findall(text)]
    if not amounts:
        return None
    low, high = (amounts[0], amounts[1]) if len(amounts) > 1 else (amounts[0], amounts[0])
    if high < low:
        low, high = high, low
    return to_minor_units(low, currency), to_minor_units(high, currency)
