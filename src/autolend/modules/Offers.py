import json
import time
from dataclasses import dataclass
from typing import Any

from .Logger import Logger
from .Utils import format_amount_currency, format_rate_pct
from .Yield import hpy_to_apy_pct


@dataclass
class OfferResult:
    coin: str
    size: float
    rate: float
    ok: bool
    error: str | None = None

    @property
    def payload(self) -> dict[str, Any]:
        return {"coin": self.coin, "size": self.size, "rate": self.rate}


class OfferManager:
    """
    Posts and cancels lending offers. Exchange failures are logged and returned
    as a failed OfferResult, never raised.
    """

    def __init__(self, api: Any, log: Logger, pause_after_cancel: int = 1000, dry_run: bool = False):
        self.api = api
        self.log = log
        self.pause_after_cancel = pause_after_cancel  # ms
        self.dry_run = dry_run

    def submit_offer(self, coin: str, size: float, rate: float) -> OfferResult:
        result = OfferResult(coin=coin, size=size, rate=rate, ok=True)
        if self.dry_run:
            self.log.info(f"DRY RUN, not sending {json.dumps(result.payload)}")
            return result

        try:
            self.api.submit_lending_offer(coin, size, rate)
        except Exception as ex:
            result.ok = False
            result.error = str(ex)
            self.log.error(f"{ex} -> {json.dumps(result.payload)}")
            return result

        if size == 0:
            self.log.info(f"CANCEL LENDING [{coin}]")
        else:
            self.log.info(
                f"ADD LENDING -> {format_amount_currency(size, coin)} "
                f"(APY : {format_rate_pct(hpy_to_apy_pct(rate))})"
            )
        return result

    def cancel_offer(self, coin: str) -> OfferResult:
        result = self.submit_offer(coin, 0, 0)
        # the exchange needs a moment before the cancel shows in balances
        time.sleep(self.pause_after_cancel / 1000)
        return result
