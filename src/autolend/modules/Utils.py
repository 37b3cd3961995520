import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any

import pytz


def round_to(n: Any, decimals: int = 2) -> float:
    """
    Rounds a string or a number to the given decimals (half up).

    Args:
        n: The value to round.
        decimals: The decimals to keep.

    Returns:
        The rounded float.
    """
    d = Decimal(str(n))
    return float(d.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP))


def round_up(n: Any, decimals: int) -> float:
    """Rounds a value up (towards +inf) to the given decimals."""
    d = Decimal(str(n))
    return float(d.quantize(Decimal(10) ** -decimals, rounding=ROUND_CEILING))


def count_decimals(x: Any) -> int:
    """
    Returns the count of significant decimals of a number.

    0.0025 -> 4, 1e-06 -> 6, 5.0 -> 0
    """
    if x is None:
        return 0
    exponent = Decimal(str(x)).normalize().as_tuple().exponent
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)


def format_amount_currency(amount: Any, currency: str) -> str:
    """
    Formats a numerical value with its currency unit.

    - If currency is 'USD' or 'USDT', precision is set to 3 decimal places.
    - Otherwise, precision is set to 8 decimal places.
    - Trailing zeros and the decimal point are removed if not needed.
    """
    if amount is None:
        return f"0 {currency}"

    precision = 3 if currency.upper() in ("USD", "USDT") else 8
    rounded = Decimal(str(amount)).quantize(Decimal(10) ** -precision, rounding=ROUND_HALF_UP)
    formatted = f"{rounded:f}".rstrip("0").rstrip(".")
    if not formatted or formatted == "-0":
        formatted = "0"

    return f"{formatted} {currency}"


def format_rate_pct(rate: Any, precision: int = 2) -> str:
    """
    Formats a percentage value, e.g. 5.123 -> "5.12%".
    """
    if rate is None:
        return f"{0:.{precision}f}%"
    return f"{float(rate):.{precision}f}%"


def debug_date(ts: float | None) -> str:
    """Returns a UTC ISO date for a unix timestamp (seconds)."""
    if not ts:
        return "-"
    return datetime.datetime.fromtimestamp(float(ts), pytz.utc).replace(microsecond=0).isoformat()


def parse_date(value: str | float | int) -> datetime.datetime:
    """
    Parses an exchange timestamp (ISO string or unix seconds) to an aware UTC datetime.
    """
    if isinstance(value, (int, float)):
        return datetime.datetime.fromtimestamp(float(value), pytz.utc)
    dt = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)
