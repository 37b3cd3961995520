"""
Autolend - Spot margin auto lending bot

Periodically offers the lendable balances of an exchange account for lending at
the market rate, renews drifting offers, optionally converts holdings to the
best yielding coin and reports the accumulated yield.
"""

__version__ = "0.1.0"

from autolend.main import main


__all__ = ["__version__", "main"]
