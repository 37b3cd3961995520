import json
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from . import Data
from .Logger import Logger
from .Markets import MarketValuator
from .Utils import format_rate_pct, round_to
from .Yield import DAYS_PER_YEAR, hpy_to_apy_pct


MS_PER_DAY = 24 * 60 * 60 * 1000

BALANCE_COLUMNS = [
    "coin",
    "lendable",
    "locked",
    "offered",
    "offerAPY",
    "lockedRatio",
    "lentRatio",
    "price",
    "valueUSD",
]


@dataclass
class HistoryReport:
    balances: pd.DataFrame
    total_value: float
    total_profit: float
    profit_per_day: float | None  # None: not enough history to tell
    profit_per_year: float | None


class HistoryReporter:
    def __init__(self, api: Any, log: Logger, valuator: MarketValuator) -> None:
        self.api = api
        self.log = log
        self.valuator = valuator

    def balances_frame(
        self, balances: list[Data.Balance], markets: list[dict[str, Any]]
    ) -> pd.DataFrame:
        """
        One row per coin holding something: rounded amounts, offer APY, locked and
        lent ratios (in %) and the USD value of the locked amount.
        """
        rows = [b for b in balances if b.lendable > 0]
        if not rows:
            return pd.DataFrame(columns=BALANCE_COLUMNS)

        df = pd.DataFrame(
            {
                "coin": [b.coin for b in rows],
                "lendable": [b.lendable for b in rows],
                "locked": [b.locked for b in rows],
                "offered": [b.offered for b in rows],
                "minRate": [b.min_rate for b in rows],
            }
        )
        df["price"] = [self.valuator.price(markets, coin) for coin in df["coin"]]
        df["offerAPY"] = [round_to(hpy_to_apy_pct(r)) for r in df["minRate"]]

        lendable = df["lendable"].to_numpy(dtype=float)
        locked = df["locked"].to_numpy(dtype=float)
        offered = df["offered"].to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            df["lockedRatio"] = np.where(lendable > 0, locked * 100 / lendable, 0.0)
            df["lentRatio"] = np.where(locked > 0, (locked - offered) * 100 / locked, 0.0)
        df["valueUSD"] = df["locked"] * df["price"]

        for col in ("lendable", "locked", "offered", "lockedRatio", "lentRatio", "valueUSD"):
            df[col] = [round_to(v) for v in df[col]]

        return df[BALANCE_COLUMNS]

    def profit(
        self, history: list[Data.HistoryRecord], markets: list[dict[str, Any]]
    ) -> tuple[float, float | None]:
        """
        Returns the USD proceeds of the whole history and the average profit per
        day. The latter is None when history spans less than two distinct times.
        """
        if not history:
            return 0.0, None

        hf = pd.DataFrame(
            {
                "coin": [h.coin for h in history],
                "proceeds": [h.proceeds for h in history],
                "time": [h.time for h in history],
            }
        )
        prices = {coin: self.valuator.price(markets, coin) for coin in hf["coin"].unique()}
        hf["proceedsUSD"] = hf["proceeds"] * hf["coin"].map(prices)
        total_profit = float(hf["proceedsUSD"].sum())

        span_ms = (hf["time"].max() - hf["time"].min()).total_seconds() * 1000
        if span_ms <= 0:
            return total_profit, None
        return total_profit, total_profit * MS_PER_DAY / span_ms

    def report(self, markets: list[dict[str, Any]]) -> HistoryReport:
        balances = Data.get_lending_balances(self.api)
        history = Data.get_lending_history(self.api)

        df = self.balances_frame(balances, markets)
        for row in df.to_dict(orient="records"):
            self.log.debug(json.dumps(row))
            for key, value in row.items():
                if key != "coin":
                    self.log.updateStatusValue(row["coin"], key, value)

        total_value = float(df["valueUSD"].sum()) if not df.empty else 0.0
        total_profit, profit_per_day = self.profit(history, markets)
        profit_per_year = profit_per_day * DAYS_PER_YEAR if profit_per_day is not None else None

        self.log.updateTotalValue("valueUSD", round_to(total_value))
        self.log.updateTotalValue("profitUSD", round_to(total_profit, 4))
        if profit_per_day is None:
            self.log.info(
                f"TOTAL -> {round_to(total_value)} USD lent, profit {round_to(total_profit, 4)} USD "
                "(insufficient history for an average)"
            )
        else:
            self.log.updateTotalValue("profitPerDayUSD", round_to(profit_per_day, 4))
            apy = profit_per_year * 100 / total_value if total_value > 0 else 0.0
            self.log.info(
                f"TOTAL -> {round_to(total_value)} USD lent, profit {round_to(total_profit, 4)} USD "
                f"({round_to(profit_per_day, 4)} USD/day, {format_rate_pct(apy)} APY)"
            )

        return HistoryReport(
            balances=df,
            total_value=total_value,
            total_profit=total_profit,
            profit_per_day=profit_per_day,
            profit_per_year=profit_per_year,
        )
