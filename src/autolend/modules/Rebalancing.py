import json
from typing import Any

from .Configuration import RootConfig
from .Data import Balance, Rate
from .Logger import Logger
from .Offers import OfferManager
from .Utils import format_amount_currency, format_rate_pct
from .Yield import hpy_to_apy_pct


class RebalancingEngine:
    """
    Moves lendable capital to the configured conversion target with the best
    lending rate.

    Capital locked in a running loan cannot be converted; such coins are parked in
    pending_unlock and retried on the next cycles. The decision engine leaves
    pending coins alone.
    """

    def __init__(
        self,
        config: RootConfig,
        api: Any,
        log: Logger,
        offers: OfferManager,
        pending_unlock: set[str],
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.api = api
        self.log = log
        self.offers = offers
        self.pending_unlock = pending_unlock
        self.dry_run = dry_run

    @property
    def enabled(self) -> bool:
        return self.config.general.allow_coin_conversion

    @staticmethod
    def best_target(coin: str, targets: tuple[str, ...], rates: dict[str, Rate]) -> str:
        """Returns the coin with the strictly highest estimate, ties keep `coin`."""
        best, best_rate = coin, rates[coin].estimate if coin in rates else 0.0
        for target in targets:
            if target not in rates:
                continue
            if rates[target].estimate > best_rate:
                best, best_rate = target, rates[target].estimate
        return best

    def rebalance(self, balances: list[Balance], rates: dict[str, Rate]) -> None:
        if not self.enabled:
            return

        for balance in balances:
            coin = balance.coin
            asset = self.config.resolve_asset(coin)
            if asset.ignore:
                continue

            target = coin
            if balance.lendable > 0 and asset.convert:
                target = self.best_target(coin, asset.convert, rates)

            if target == coin:
                if coin in self.pending_unlock and balance.locked == 0:
                    self.log.info(f"PENDING UNLOCK [{coin}] -> conversion no longer needed")
                    self.pending_unlock.discard(coin)
                continue

            self.log.info(
                f"CONVERT [{coin} -> {target}] "
                f"(APY : {format_rate_pct(hpy_to_apy_pct(rates[coin].estimate if coin in rates else 0))}"
                f" -> {format_rate_pct(hpy_to_apy_pct(rates[target].estimate))})"
            )
            self.offers.cancel_offer(coin)

            if balance.locked > 0:
                self.pending_unlock.add(coin)
                self.log.warn(
                    f"PENDING UNLOCK [{coin}] -> {format_amount_currency(balance.locked, coin)} "
                    f"still locked, conversion to {target} deferred"
                )
                continue

            if self.convert(coin, target, balance.lendable):
                self.pending_unlock.discard(coin)

    def convert(self, from_coin: str, to_coin: str, size: float) -> bool:
        """
        Runs a full quote -> status -> accept conversion. Returns False when an
        exchange call failed.
        """
        payload = {"fromCoin": from_coin, "toCoin": to_coin, "size": size}
        if self.dry_run:
            self.log.info(f"DRY RUN, not converting {json.dumps(payload)}")
            return True

        try:
            quote = self.api.request_quote(from_coin, to_coin, size)
            quote_id = quote["quoteId"]
            status = self.api.get_quote_status(quote_id)
            self.log.debug(f"QUOTE [{from_coin} -> {to_coin}] {json.dumps(status)}")
            self.api.accept_quote(quote_id)
        except Exception as ex:
            self.log.error(f"{ex} -> {json.dumps(payload)}")
            return False

        self.log.info(
            f"CONVERTED -> {format_amount_currency(size, from_coin)} to {to_coin}"
        )
        return True
