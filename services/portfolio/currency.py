from __future__ import annotations
from typing import Optional

BLUR_MASK = "••••••"


def format_currency(value: float, blurred: bool = False, symbol: str = "$", decimals: int = 2) -> str:
    """US-style currency text, e.g. 1234.5 -> '$1,234.50' and -12 -> '-$12.00'.

    When `blurred` is set the amount is masked entirely.
    """
    if blurred:
        return BLUR_MASK
    amount = f"{abs(float(value)):,.{decimals}f}"
    sign = "-" if float(value) < 0 and amount.strip("0.,") else ""
    return f"{sign}{symbol}{amount}"


def format_optional_currency(value: Optional[float], blurred: bool = False, placeholder: str = "-") -> str:
    if value is None:
        return placeholder
    return format_currency(value, blurred)
