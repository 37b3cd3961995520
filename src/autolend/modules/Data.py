import datetime
from dataclasses import dataclass, fields
from typing import Any

from .Utils import parse_date


def _num(value: Any) -> float:
    """Exchange numbers may be null (e.g. minRate without an active offer)."""
    return float(value) if value is not None else 0.0


@dataclass
class Balance:
    coin: str
    lendable: float = 0.0
    locked: float = 0.0
    offered: float = 0.0
    min_rate: float = 0.0  # hourly rate of the active offer

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Balance":
        return cls(
            coin=str(item["coin"]),
            lendable=_num(item.get("lendable")),
            locked=_num(item.get("locked")),
            offered=_num(item.get("offered")),
            min_rate=_num(item.get("minRate")),
        )


@dataclass
class Rate:
    coin: str
    estimate: float = 0.0  # hourly

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Rate":
        return cls(coin=str(item["coin"]), estimate=_num(item.get("estimate")))


@dataclass
class MarketAsset:
    coin: str
    price: float
    price_increment: float
    price_precision: int


@dataclass(frozen=True)
class HistoryRecord:
    coin: str
    rate: float
    proceeds: float
    time: datetime.datetime

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "HistoryRecord":
        return cls(
            coin=str(item["coin"]),
            rate=_num(item.get("rate")),
            proceeds=_num(item.get("proceeds")),
            time=parse_date(item["time"]),
        )


@dataclass
class BalanceExtras(Balance):
    """A balance with the economics computed for the current cycle."""

    rate: float = 0.0  # target hourly rate
    market_rate: float = 0.0
    discount: float = 0.0
    invest_ratio: float = 0.0
    price: float = 0.0
    available: float = 0.0
    available_usd: float = 0.0
    lendable_usd: float = 0.0
    hpy: float = 0.0
    apy: float = 0.0  # all APY values in %
    offer_apy: float = 0.0
    market_apy: float = 0.0
    delta_apy: float = 0.0

    def refresh(self, balance: Balance) -> None:
        """Takes fresh amounts from a re-read balance and updates the USD values."""
        self.lendable = balance.lendable
        self.locked = balance.locked
        self.offered = balance.offered
        self.min_rate = balance.min_rate
        self.available = max(self.lendable - self.locked, 0.0)
        self.available_usd = self.available * self.price
        self.lendable_usd = self.lendable * self.price

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def get_lending_balances(api: Any) -> list[Balance]:
    return [Balance.from_api(item) for item in api.return_lending_info()]


def find_balance(api: Any, coin: str) -> Balance | None:
    for balance in get_lending_balances(api):
        if balance.coin == coin:
            return balance
    return None


def get_lending_rates(api: Any) -> dict[str, Rate]:
    rates = [Rate.from_api(item) for item in api.return_lending_rates()]
    return {r.coin: r for r in rates}


def get_markets(api: Any) -> list[dict[str, Any]]:
    return list(api.return_markets())


def get_lending_history(api: Any) -> list[HistoryRecord]:
    return [HistoryRecord.from_api(item) for item in api.return_lending_history()]
