"""
Pytest configuration and fixtures for integration tests.
"""

from pathlib import Path
from typing import Any

import pytest

from autolend.modules.ExchangeApi import ExchangeApi
from autolend.modules.Yield import convert_apy_to_hpy


SAMPLE_CONFIG = Path(__file__).parent.parent.parent / "config_sample.toml"


class FakeExchange(ExchangeApi):
    """In-memory exchange: offers update the lending info they are posted on."""

    def __init__(self, cfg: Any = None, log: Any = None) -> None:
        super().__init__(cfg, log)
        self.markets = [
            {"name": "BTC/USD", "baseCurrency": "BTC", "quoteCurrency": "USD", "price": 20000.0,
             "priceIncrement": 1.0},
            {"name": "ETH/USD", "baseCurrency": "ETH", "quoteCurrency": "USD", "price": 1500.0,
             "priceIncrement": 0.1},
            {"name": "BTC-PERP", "baseCurrency": None, "quoteCurrency": None, "price": 20010.0,
             "priceIncrement": 1.0},
        ]
        self.rates = {
            "USD": convert_apy_to_hpy(0.005),
            "USDT": 0.00001,
            "BTC": convert_apy_to_hpy(0.10),
        }
        self.info = {
            "USD": {"coin": "USD", "lendable": 50.0, "locked": 0.0, "offered": 0.0, "minRate": None},
            "USDT": {"coin": "USDT", "lendable": 1000.0, "locked": 0.0, "offered": 0.0,
                     "minRate": None},
            "BTC": {"coin": "BTC", "lendable": 0.5, "locked": 0.2, "offered": 0.5,
                    "minRate": convert_apy_to_hpy(0.03)},
            "ETH": {"coin": "ETH", "lendable": 3.0, "locked": 0.0, "offered": 0.0, "minRate": None},
        }
        self.history = [
            {"coin": "USDT", "proceeds": 0.1, "rate": 0.00001, "time": "2022-01-01T00:00:00+00:00"},
            {"coin": "BTC", "proceeds": 0.00001, "rate": 0.00001,
             "time": "2022-01-02T00:00:00+00:00"},
        ]
        self.offers: list[tuple[str, float, float]] = []

    def return_markets(self):
        return self.markets

    def return_balances(self):
        return [{"coin": c, "free": i["lendable"], "total": i["lendable"]} for c, i in self.info.items()]

    def return_lending_rates(self):
        return [{"coin": c, "estimate": r, "previous": r} for c, r in self.rates.items()]

    def return_lending_info(self):
        return [dict(i) for i in self.info.values()]

    def return_lending_history(self):
        return self.history

    def submit_lending_offer(self, coin, size, rate):
        self.offers.append((coin, size, rate))
        self.info[coin]["offered"] = size
        self.info[coin]["minRate"] = rate if size else None

    def request_quote(self, from_coin, to_coin, size):
        raise NotImplementedError

    def get_quote_status(self, quote_id):
        raise NotImplementedError

    def accept_quote(self, quote_id):
        raise NotImplementedError


@pytest.fixture
def exchange():
    return FakeExchange()


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("FTX_API_KEY", "FTX_API_SECRET", "FTX_SUBACCOUNT_ID", "INVEST_RATIO", "APY_MIN",
                 "IGNORE_ASSETS", "INTERVAL_CHECK_MIN"):
        monkeypatch.delenv(name, raising=False)
