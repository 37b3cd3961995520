import json
import time
from typing import Any

from . import Data
from .Configuration import RootConfig
from .History import HistoryReport, HistoryReporter
from .Logger import Logger
from .Markets import MarketValuator
from .Offers import OfferManager, OfferResult
from .Rebalancing import RebalancingEngine
from .Utils import format_amount_currency, format_rate_pct, round_to, round_up
from .Yield import apply_rate_discount, convert_apy_to_hpy, hpy_to_apy_pct


class LendingEngine:
    """
    One autolend cycle: rebalance, then decide per coin whether to keep, renew or
    post a lending offer, then report.

    A single engine lives for the whole process; pending_unlock carries the
    deferred conversions from one cycle to the next.
    """

    def __init__(self, config: RootConfig, api: Any, log: Logger, dry_run: bool = False) -> None:
        self.config = config
        self.api = api
        self.log = log
        self.dry_run = dry_run
        self.tunables = config.tunables
        self.pending_unlock: set[str] = set()

        self.valuator = MarketValuator(config.general.fiat_assets)
        self.offers = OfferManager(
            api, log, pause_after_cancel=self.tunables.pause_after_cancel, dry_run=dry_run
        )
        self.rebalancer = RebalancingEngine(
            config, api, log, self.offers, self.pending_unlock, dry_run=dry_run
        )
        self.reporter = HistoryReporter(api, log, self.valuator)

    def get_balance_extras(
        self,
        balance: Data.Balance,
        rates: dict[str, Data.Rate],
        markets: list[dict[str, Any]],
    ) -> Data.BalanceExtras:
        asset = self.config.resolve_asset(balance.coin)
        market_rate = rates[balance.coin].estimate if balance.coin in rates else 0.0

        if asset.rate is not None:
            rate = convert_apy_to_hpy(asset.rate / 100)
        else:
            rate = apply_rate_discount(market_rate, asset.discount)

        extras = Data.BalanceExtras(
            coin=balance.coin,
            rate=rate,
            market_rate=market_rate,
            discount=asset.discount,
            invest_ratio=asset.invest_ratio,
            price=self.valuator.price(markets, balance.coin),
            hpy=rate,
            apy=hpy_to_apy_pct(rate),
            market_apy=hpy_to_apy_pct(market_rate),
        )
        extras.refresh(balance)
        extras.offer_apy = hpy_to_apy_pct(balance.min_rate)
        extras.delta_apy = extras.apy - extras.offer_apy
        return extras

    def needs_renew(self, extras: Data.BalanceExtras) -> bool:
        """The active offer drifted from the target APY by more than the tolerance."""
        if extras.offered <= 0:
            return False
        # against the target APY, not the raw market APY: a discount would renew every cycle
        delta = abs(round_to(extras.offer_apy) - round_to(extras.apy))
        return delta > self.tunables.renew_offer_tolerance

    def offer_size(self, extras: Data.BalanceExtras) -> float:
        return round_up(
            extras.lendable * extras.invest_ratio / 100, self.tunables.lend_price_precision
        )

    def lend_coin(self, extras: Data.BalanceExtras) -> OfferResult | None:
        """
        Renews and/or posts the offer of one coin. Returns the submitted offer, if any.
        """
        coin = extras.coin

        if extras.lendable > 0 and extras.apy < self.config.general.apy_min:
            self.log.warn(
                f"APY TOO LOW [{coin}] -> {format_rate_pct(extras.apy)} "
                f"< {format_rate_pct(self.config.general.apy_min)}"
            )
            return None

        if self.needs_renew(extras):
            self.log.info(
                f"RENEW LENDING [{coin}] -> {format_rate_pct(extras.offer_apy)} "
                f"to {format_rate_pct(extras.apy)}"
            )
            self.offers.cancel_offer(coin)
            fresh = Data.find_balance(self.api, coin)
            if fresh is None:
                self.log.warn(f"No lending info for {coin} after cancel")
                return None
            extras.refresh(fresh)

        if (
            extras.lendable_usd >= self.tunables.min_available_limit_usd
            and extras.rate > 0
            and extras.lendable > extras.offered
        ):
            result = self.offers.submit_offer(coin, self.offer_size(extras), extras.rate)
            if not result.ok:
                self.log.warn(f"Offer for {coin} failed, retrying next cycle: {result.error}")
                return None
            return result

        self.log.debug(
            f"SIZE TOO LOW [{coin}] -> {format_amount_currency(extras.lendable, coin)} "
            f"({round_to(extras.lendable_usd)} USD), offered {format_amount_currency(extras.offered, coin)}"
        )
        return None

    def autolend(self) -> HistoryReport:
        rates = Data.get_lending_rates(self.api)
        markets = Data.get_markets(self.api)

        if self.rebalancer.enabled:
            self.rebalancer.rebalance(Data.get_lending_balances(self.api), rates)

        self.log.info("Ask for autolending assets...")

        submitted: list[OfferResult] = []
        for balance in Data.get_lending_balances(self.api):
            coin = balance.coin
            if coin in self.pending_unlock:
                self.log.debug(f"SKIP [{coin}] -> pending unlock")
                continue
            if self.config.resolve_asset(coin).ignore:
                continue
            if balance.lendable <= 0 and balance.offered <= 0:
                continue

            extras = self.get_balance_extras(balance, rates, markets)
            self.log.debug(json.dumps(extras.as_dict()))
            result = self.lend_coin(extras)
            if result is not None:
                submitted.append(result)

        if submitted:
            # balances lag behind submitted offers
            time.sleep(self.tunables.pause_after_submit / 1000)

        return self.reporter.report(markets)
