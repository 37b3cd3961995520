from collections.abc import Iterable
from typing import Any

from .Data import MarketAsset
from .Utils import count_decimals


FIAT_PRICE_INCREMENT = 0.01


class MarketNotFound(LookupError):
    pass


class MarketValuator:
    """
    Values coins in USD using the exchange market listing. Configured fiat coins
    are worth 1 and need no market.
    """

    def __init__(self, fiat_assets: Iterable[str]) -> None:
        self.fiat_assets = [c.upper() for c in fiat_assets]

    def is_fiat(self, coin: str) -> bool:
        return coin.upper() in self.fiat_assets

    def resolve(self, markets: list[dict[str, Any]], coin: str) -> MarketAsset:
        if self.is_fiat(coin):
            return MarketAsset(
                coin=coin,
                price=1.0,
                price_increment=FIAT_PRICE_INCREMENT,
                price_precision=count_decimals(FIAT_PRICE_INCREMENT),
            )

        for market in markets:
            base = str(market.get("baseCurrency") or "").upper()
            quote = str(market.get("quoteCurrency") or "").upper()
            if base == coin.upper() and quote in self.fiat_assets:
                increment = float(market.get("priceIncrement") or 0)
                return MarketAsset(
                    coin=coin,
                    price=float(market.get("price") or market.get("last") or 0),
                    price_increment=increment,
                    price_precision=count_decimals(increment),
                )

        raise MarketNotFound(
            f"No market found for {coin} quoted in {', '.join(self.fiat_assets) or 'no fiat'}"
        )

    def price(self, markets: list[dict[str, Any]], coin: str) -> float:
        return self.resolve(markets, coin).price
