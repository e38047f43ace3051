"""
Currency display helpers.

Amounts are rendered en-US style: grouping commas, symbol prefix for the
currencies that have one, ISO code prefix otherwise. Whole amounts carry no
decimal places; anything else is shown with exactly two.

Examples:
    >>> format_currency(30, "USD")
    '$30'
    >>> format_currency(Decimal("32.40"), "USD")
    '$32.40'
    >>> format_cents(1500000, "IDR")
    'IDR 15,000'  (non-breaking space after the code)
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union


CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CAD": "CA$",
    "AUD": "A$",
}

NBSP = "\u00a0"

Number = Union[int, float, Decimal]


def cents_to_amount(amount_cents: int) -> Decimal:
    return (Decimal(amount_cents) / 100).quantize(Decimal("0.01"))


def _group_digits(integer_part: str) -> str:
    groups = []
    for i in range(len(integer_part), 0, -3):
        start = max(0, i - 3)
        groups.insert(0, integer_part[start:i])
    return ",".join(groups)


def format_currency(amount: Number, currency: str = "USD") -> str:
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    negative = value < 0
    value = abs(value)

    if value == value.to_integral_value():
        number = _group_digits(str(int(value)))
    else:
        integer_part, decimal_part = f"{value:.2f}".split(".")
        number = f"{_group_digits(integer_part)}.{decimal_part}"

    code = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    prefix = symbol if symbol else f"{code}{NBSP}"

    return f"{'-' if negative else ''}{prefix}{number}"


def format_cents(amount_cents: int, currency: str = "USD") -> str:
    return format_currency(cents_to_amount(amount_cents), currency)
