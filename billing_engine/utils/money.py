"""
EaseMail Billing - Money Helpers

Fixed-point helpers shared by the rating engine. All arithmetic stays in
Decimal; rounding to the currency minor unit happens once per charge.
"""

from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "NGN": "₦",
}


def minor_unit(places: int = 2) -> Decimal:
    """Quantum for the currency minor unit (0.01 for two places)."""
    return Decimal(1).scaleb(-places)


def quantize_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up to the currency minor unit."""
    return amount.quantize(minor_unit(places), rounding=ROUND_HALF_UP)


def percent_to_factor(percent: Decimal) -> Decimal:
    """Convert a discount percentage to the multiplier left after discount."""
    return Decimal(1) - (percent / HUNDRED)


def format_currency_decimal(amount: Decimal, currency: str = "USD") -> str:
    """Format decimal amount with currency symbol."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol}{amount:,.2f}"
