"""
Currency display helpers.

Amounts are shown in whole units. Only the symbol and digit grouping
change with the currency; no conversion ever happens.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Union

from pydantic import BaseModel


Number = Union[Decimal, int, float]


class CurrencyConfig(BaseModel):
    code: str
    name: str
    symbol: str
    # "indian" -> 1,00,000 ; "western" -> 100,000
    grouping: str = "western"
    thousands_separator: str = ","
    symbol_after: bool = False


SUPPORTED_CURRENCIES: dict[str, CurrencyConfig] = {
    "INR": CurrencyConfig(code="INR", name="Indian Rupee", symbol="₹", grouping="indian"),
    "USD": CurrencyConfig(code="USD", name="US Dollar", symbol="$"),
    "EUR": CurrencyConfig(
        code="EUR", name="Euro", symbol="€", thousands_separator=".", symbol_after=True
    ),
    "GBP": CurrencyConfig(code="GBP", name="British Pound", symbol="£"),
    "JPY": CurrencyConfig(code="JPY", name="Japanese Yen", symbol="¥"),
}

DEFAULT_CURRENCY = "INR"


def _config(currency: str) -> CurrencyConfig:
    return SUPPORTED_CURRENCIES.get((currency or "").upper(), SUPPORTED_CURRENCIES[DEFAULT_CURRENCY])


def get_currency_symbol(currency: str = DEFAULT_CURRENCY) -> str:
    return _config(currency).symbol


def _group_digits(digits: str, config: CurrencyConfig) -> str:
    sep = config.thousands_separator
    if config.grouping == "indian" and len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        return sep.join(pairs + [tail])

    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return sep.join(groups)


def format_currency(amount: Number, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Whole-unit amount with symbol and grouping, e.g. ₹1,00,000 or 1.000 €.

    Unknown currency codes fall back to INR formatting.
    """
    config = _config(currency)
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)
    sign = "-" if value < 0 else ""
    grouped = _group_digits(str(abs(int(value))), config)

    if config.symbol_after:
        return f"{sign}{grouped} {config.symbol}"
    return f"{sign}{config.symbol}{grouped}"


def format_compact_currency(amount: Number, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Short form for tight spaces: ₹1.5Cr, ₹2.3L, ₹4.0K.

    Below a thousand this is the same as format_currency.
    """
    symbol = _config(currency).symbol
    value = Decimal(str(amount))

    for threshold, suffix in ((Decimal(10_000_000), "Cr"), (Decimal(100_000), "L"), (Decimal(1_000), "K")):
        if value >= threshold:
            return f"{symbol}{value / threshold:.1f}{suffix}"

    return format_currency(value, currency)
