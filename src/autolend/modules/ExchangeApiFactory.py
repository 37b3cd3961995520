"""
Factory to instantiate right API class
"""

from typing import Any

from .ExchangeApi import ExchangeApi
from .Ftx import Ftx


EXCHANGE: dict[str, type[ExchangeApi]] = {"FTX": Ftx}


class ExchangeApiFactory:
    @staticmethod
    def createApi(exchange: str, cfg: Any, log: Any) -> ExchangeApi:
        if exchange.upper() not in EXCHANGE:
            raise Exception(f"Invalid exchange: {exchange}")
        return EXCHANGE[exchange.upper()](cfg, log)
