"""
Rate unit conversions.

The exchange expresses lending rates as hourly percentage yields (HPY). Everything
compared against user thresholds is first converted to an annual percentage yield.
"""

DAYS_PER_YEAR = 365.2422
HOURS_PER_DAY = 24
MONTHS_PER_YEAR = 12


def get_dpy(rate: float) -> float:
    """Hourly rate -> daily rate."""
    return rate * HOURS_PER_DAY


def convert_hpy_to_apy(rate: float) -> float:
    """Hourly rate -> annual rate."""
    return get_dpy(rate) * DAYS_PER_YEAR


def get_mpy(rate: float) -> float:
    """Hourly rate -> monthly rate."""
    return convert_hpy_to_apy(rate) / MONTHS_PER_YEAR


def convert_apy_to_hpy(rate: float) -> float:
    """Annual rate -> hourly rate."""
    return rate / HOURS_PER_DAY / DAYS_PER_YEAR


def apply_rate_discount(rate: float, discount: float) -> float:
    """
    Applies a discount (in %) to a rate, e.g. a 10 discount keeps 90% of the rate.
    """
    return rate * (1 - discount / 100)


def hpy_to_apy_pct(rate: float | None) -> float:
    """Hourly rate -> annual rate in percent."""
    return convert_hpy_to_apy(rate or 0.0) * 100
