import hashlib
import hmac
import json
import time
import urllib.parse
from typing import Any

import requests

from .ExchangeApi import ApiError, ExchangeApi


class Ftx(ExchangeApi):
    def __init__(self, cfg: Any, log: Any) -> None:
        # FTX allows 30 requests per second
        super().__init__(cfg, log, req_per_period=30, req_period=1000)
        self.url = "https://ftx.com"
        self.api_prefix = "/api"
        self.key = cfg.account.api_key
        self.secret = cfg.account.api_secret
        self.subaccount = cfg.account.subaccount
        self.timeout = cfg.bot.timeout
        self.api_debug_log = cfg.bot.api_debug_log

    @property
    def _ts(self) -> str:
        """Request timestamp in milliseconds, used in authentication."""
        return str(int(time.time() * 1000))

    def debug_log(self, msg: str) -> None:
        if self.api_debug_log and self.log:
            self.log.debug(msg)

    def _sign_headers(self, method: str, request_path: str, body: str = "") -> dict[str, str]:
        ts = self._ts
        payload = f"{ts}{method.upper()}{request_path}{body}"
        signature = hmac.new(
            self.secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        headers = {
            "FTX-KEY": self.key,
            "FTX-TS": ts,
            "FTX-SIGN": signature,
            "Connection": "close",
        }
        if self.subaccount:
            headers["FTX-SUBACCOUNT"] = urllib.parse.quote(self.subaccount)
        return headers

    @ExchangeApi.synchronized
    def _request(
        self, method: str, command: str, params: dict[str, Any] | None = None, data: Any = None
    ) -> Any:
        self.limit_request_rate()

        request_path = f"{self.api_prefix}/{command.lstrip('/')}"
        if params:
            request_path += "?" + urllib.parse.urlencode(params)
        body = json.dumps(data) if data is not None else ""
        headers = self._sign_headers(method, request_path, body)
        if body:
            headers["Content-Type"] = "application/json"
        url = f"{self.url}{request_path}"

        try:
            r = requests.request(
                method.upper(), url, headers=headers, data=body or None, timeout=self.timeout
            )
            self.debug_log(f"{method.upper()}: {url} {body}")
        except requests.RequestException as ex:
            raise ApiError(f"{ex} Requesting {request_path}") from ex

        if r.status_code == 429:
            self.increase_request_timer()
            raise ApiError(f"API Error 429: Rate limit exceeded. Requesting {request_path}")
        if r.status_code == 502 or r.status_code in range(520, 527):
            raise ApiError(
                f"API Error {r.status_code}: The web server reported a bad gateway or gateway timeout error."
            )

        try:
            resp = r.json()
        except ValueError:
            raise ApiError(
                f"API Error {r.status_code}: Failed to decode JSON response: {r.text}"
            ) from None

        if not isinstance(resp, dict) or not resp.get("success"):
            error = resp.get("error") if isinstance(resp, dict) else resp
            raise ApiError(f"API Error {r.status_code}: {error} Requesting {request_path}")

        # a good answer ends any 429 backoff
        self.reset_request_timer()
        self.debug_log(f"Response: {r.text}")
        return resp.get("result")

    def _get(self, command: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", command, params=params)

    def _post(self, command: str, data: dict[str, Any] | None = None) -> Any:
        return self._request("POST", command, data=data or {})

    def return_markets(self) -> list[dict[str, Any]]:
        """
        https://docs.ftx.com/#get-markets
        """
        return self._get("markets") or []

    def return_balances(self) -> list[dict[str, Any]]:
        """
        https://docs.ftx.com/#get-balances
        """
        return self._get("wallet/balances") or []

    def return_lending_rates(self) -> list[dict[str, Any]]:
        """
        https://docs.ftx.com/#get-lending-rates
        """
        return self._get("spot_margin/lending_rates") or []

    def return_lending_info(self) -> list[dict[str, Any]]:
        """
        https://docs.ftx.com/#get-lending-info
        """
        return self._get("spot_margin/lending_info") or []

    def return_lending_history(self) -> list[dict[str, Any]]:
        """
        https://docs.ftx.com/#get-my-lending-history
        """
        return self._get("spot_margin/lending_history") or []

    def submit_lending_offer(self, coin: str, size: float, rate: float) -> Any:
        """
        https://docs.ftx.com/#submit-lending-offer
        """
        return self._post("spot_margin/offers", {"coin": coin, "size": size, "rate": rate})

    def request_quote(self, from_coin: str, to_coin: str, size: float) -> dict[str, Any]:
        """
        https://docs.ftx.com/#request-quote
        """
        return self._post("otc/quotes", {"fromCoin": from_coin, "toCoin": to_coin, "size": size})

    def get_quote_status(self, quote_id: int) -> dict[str, Any]:
        """
        https://docs.ftx.com/#get-quote-status
        """
        return self._get(f"otc/quotes/{quote_id}")

    def accept_quote(self, quote_id: int) -> Any:
        """
        https://docs.ftx.com/#accept-quote
        """
        return self._post(f"otc/quotes/{quote_id}/accept")
