"""
Parsing of free-text award amounts returned by the completions API.
"""

import re
from typing import NamedTuple, Optional


DEFAULT_CURRENCY = "USD"

# First run of digits and thousands separators
_AMOUNT_PATTERN = re.compile(r"[0-9,]+")


class ParsedAmount(NamedTuple):
    numeric: int
    currency: str


def detect_currency(amount: str) -> str:
    """Guess the ISO currency code from symbols or codes in the text."""
    lowered = amount.lower()
    if "€" in amount or "eur" in lowered:
        return "EUR"
    if "£" in amount or "gbp" in lowered:
        return "GBP"
    if "CAD" in amount:
        return "CAD"
    return DEFAULT_CURRENCY


def parse_amount(amount: Optional[str]) -> ParsedAmount:
    """
    Extract a numeric value and currency from an amount string.

    Only the first digit run counts, so ranges resolve to their lower bound:

        "$2,500"          -> (2500, "USD")
        "$1,000 - $2,000" -> (1000, "USD")
        "Varies"          -> (0, "USD")

    Args:
        amount: Display amount such as "$2,500" or "Up to £10,000"

    Returns:
        ParsedAmount(numeric, currency)
    """
    if not amount or amount.strip().lower() == "varies":
        return ParsedAmount(0, DEFAULT_CURRENCY)

    match = _AMOUNT_PATTERN.search(amount)
    if not match:
        return ParsedAmount(0, DEFAULT_CURRENCY)

    digits = match.group(0).replace(",", "")
    numeric = int(digits) if digits else 0

    return ParsedAmount(numeric, detect_currency(amount))
