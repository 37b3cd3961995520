"""
Exchange API Base class

Subclasses talk to one exchange. All of them share a sliding window request
limiter: at most `req_per_period` requests per `req_period` milliseconds, the
period growing while the exchange answers 429.
"""

import abc
import functools
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any, TypeVar


F = TypeVar("F", bound=Callable[..., Any])

BACKOFF_STEP_MS = 500
MAX_BACKOFF_FACTOR = 3.0


class ExchangeApi(abc.ABC):
    def __init__(self, cfg: Any, log: Any, req_per_period: int = 6, req_period: float = 1000) -> None:
        self.cfg = cfg
        self.log = log
        self.lock = threading.RLock()
        self.req_per_period = req_per_period
        self.default_req_period = float(req_period)  # ms
        self.req_period = self.default_req_period
        self.req_time_log: deque[float] = deque(maxlen=req_per_period)

    def __str__(self) -> str:
        return self.__class__.__name__.upper()

    def __repr__(self) -> str:
        return str(self)

    @staticmethod
    def synchronized(method: F) -> F:
        """Serializes calls of an instance method on `self.lock`."""

        @functools.wraps(method)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            with self.lock:
                return method(self, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    def limit_request_rate(self) -> None:
        """Blocks until one more request fits in the window."""
        now = time.time() * 1000
        if len(self.req_time_log) < self.req_per_period:
            self.req_time_log.append(now)
            return

        wait = self.req_period - (now - self.req_time_log[0])
        if wait <= 0:
            self.req_time_log.append(now)
            return
        # the request is logged at the time it will actually go out
        self.req_time_log.append(now + wait)
        time.sleep(wait / 1000)

    def increase_request_timer(self) -> None:
        if self.req_period <= self.default_req_period * MAX_BACKOFF_FACTOR:
            self.req_period += BACKOFF_STEP_MS

    def reset_request_timer(self) -> None:
        if self.req_period != self.default_req_period:
            self.req_period = self.default_req_period

    @abc.abstractmethod
    def return_markets(self) -> list[dict[str, Any]]:
        """
        Returns all markets. Sample output:

        [{"name": "BTC/USD", "type": "spot", "baseCurrency": "BTC", "quoteCurrency": "USD",
          "price": 10579.52, "priceIncrement": 0.25, ...}, ...]
        """

    @abc.abstractmethod
    def return_balances(self) -> list[dict[str, Any]]:
        """
        Returns wallet balances. Sample output:

        [{"coin": "USDT", "free": 4321.2, "total": 4340.2, "usdValue": 4340.2}, ...]
        """

    @abc.abstractmethod
    def return_lending_rates(self) -> list[dict[str, Any]]:
        """
        Returns the estimated hourly lending rate of each coin. Sample output:

        [{"coin": "BTC", "estimate": 1.45e-06, "previous": 1.44e-06}, ...]
        """

    @abc.abstractmethod
    def return_lending_info(self) -> list[dict[str, Any]]:
        """
        Returns own lending state of each coin. Sample output:

        [{"coin": "USDT", "lendable": 10026.5, "locked": 100.0, "minRate": 1e-06,
          "offered": 100.0}, ...]
        """

    @abc.abstractmethod
    def return_lending_history(self) -> list[dict[str, Any]]:
        """
        Returns own lending settlements. Sample output:

        [{"coin": "BTC", "proceeds": 0.0002, "rate": 1e-06, "size": 21.2,
          "time": "2020-11-30T12:00:00+00:00"}, ...]
        """

    @abc.abstractmethod
    def submit_lending_offer(self, coin: str, size: float, rate: float) -> Any:
        """
        Posts (or replaces) the lending offer of a coin. A size of 0 cancels it.
        """

    @abc.abstractmethod
    def request_quote(self, from_coin: str, to_coin: str, size: float) -> dict[str, Any]:
        """
        Requests a conversion quote. Sample output: {"quoteId": 1031}
        """

    @abc.abstractmethod
    def get_quote_status(self, quote_id: int) -> dict[str, Any]:
        """
        Returns a conversion quote. Sample output:

        {"baseCoin": "BTC", "quoteCoin": "USD", "cost": 0.0001, "proceeds": 1.04,
         "price": 10400.0, "expired": false, "filled": false, "id": 1031, ...}
        """

    @abc.abstractmethod
    def accept_quote(self, quote_id: int) -> Any:
        """
        Accepts a conversion quote.
        """


class ApiError(Exception):
    pass
