"""
Tests for coin conversion and the pending unlock state.
"""

from unittest.mock import MagicMock

import pytest

from autolend.modules.Configuration import AssetConfig
from autolend.modules.Data import Balance, Rate
from autolend.modules.ExchangeApi import ApiError
from autolend.modules.Rebalancing import RebalancingEngine


RATES = {
    "USDT": Rate("USDT", 0.00001),
    "USD": Rate("USD", 0.00002),
    "BTC": Rate("BTC", 0.000001),
}


@pytest.fixture
def conversion_config(config):
    config.general.allow_coin_conversion = True
    config.assets = {"USDT": AssetConfig(convert=["USD", "BTC"])}
    return config


@pytest.fixture
def offers():
    return MagicMock()


@pytest.fixture
def pending():
    return set()


@pytest.fixture
def engine(conversion_config, mock_api, mock_log, offers, pending):
    mock_api.request_quote.return_value = {"quoteId": 42}
    mock_api.get_quote_status.return_value = {"id": 42, "filled": False}
    return RebalancingEngine(conversion_config, mock_api, mock_log, offers, pending)


@pytest.mark.unit
class TestRebalancing:
    def test_best_target(self):
        assert RebalancingEngine.best_target("USDT", ("USD", "BTC"), RATES) == "USD"
        assert RebalancingEngine.best_target("USD", ("USDT",), RATES) == "USD"
        # ties keep the current coin
        rates = {"A": Rate("A", 1.0), "B": Rate("B", 1.0)}
        assert RebalancingEngine.best_target("A", ("B",), rates) == "A"
        # unknown targets are ignored
        assert RebalancingEngine.best_target("USDT", ("XYZ",), RATES) == "USDT"

    def test_disabled(self, engine, conversion_config, mock_api, offers):
        conversion_config.general.allow_coin_conversion = False
        engine.rebalance([Balance("USDT", lendable=100)], RATES)
        offers.cancel_offer.assert_not_called()
        mock_api.request_quote.assert_not_called()

    def test_converts_unlocked_balance(self, engine, mock_api, offers, pending):
        pending.add("USDT")

        engine.rebalance([Balance("USDT", lendable=100, locked=0)], RATES)

        offers.cancel_offer.assert_called_once_with("USDT")
        mock_api.request_quote.assert_called_once_with("USDT", "USD", 100)
        mock_api.get_quote_status.assert_called_once_with(42)
        mock_api.accept_quote.assert_called_once_with(42)
        assert pending == set()

    def test_locked_balance_is_deferred(self, engine, mock_api, offers, pending, mock_log):
        engine.rebalance([Balance("USDT", lendable=100, locked=40)], RATES)

        offers.cancel_offer.assert_called_once_with("USDT")
        mock_api.request_quote.assert_not_called()
        assert pending == {"USDT"}
        assert "PENDING UNLOCK [USDT]" in mock_log.warn.call_args[0][0]

        # still locked next cycle: stays pending, still no conversion
        engine.rebalance([Balance("USDT", lendable=100, locked=10)], RATES)
        mock_api.request_quote.assert_not_called()
        assert pending == {"USDT"}

        # unlocked: converted and released
        engine.rebalance([Balance("USDT", lendable=100, locked=0)], RATES)
        mock_api.accept_quote.assert_called_once_with(42)
        assert pending == set()

    def test_no_action_when_current_coin_is_best(self, engine, mock_api, offers):
        rates = dict(RATES, USDT=Rate("USDT", 0.001))
        engine.rebalance([Balance("USDT", lendable=100)], rates)
        offers.cancel_offer.assert_not_called()
        mock_api.request_quote.assert_not_called()

    def test_no_action_without_targets_or_balance(self, engine, mock_api, offers):
        engine.rebalance([Balance("BTC", lendable=1), Balance("USDT", lendable=0)], RATES)
        offers.cancel_offer.assert_not_called()
        mock_api.request_quote.assert_not_called()

    def test_obsolete_pending_coin_is_released(self, engine, conversion_config, pending):
        pending.add("USDT")
        conversion_config.assets = {}
        engine.rebalance([Balance("USDT", lendable=100, locked=0)], RATES)
        assert pending == set()

    def test_conversion_failure_is_logged(self, engine, mock_api, pending, mock_log):
        pending.add("USDT")
        mock_api.accept_quote.side_effect = ApiError("Quote expired")

        engine.rebalance([Balance("USDT", lendable=100, locked=0)], RATES)

        assert "Quote expired" in mock_log.error.call_args[0][0]
        assert '"toCoin": "USD"' in mock_log.error.call_args[0][0]
        assert pending == {"USDT"}

    def test_dry_run(self, conversion_config, mock_api, mock_log, offers, pending):
        engine = RebalancingEngine(
            conversion_config, mock_api, mock_log, offers, pending, dry_run=True
        )
        engine.rebalance([Balance("USDT", lendable=100)], RATES)
        mock_api.request_quote.assert_not_called()
        mock_api.accept_quote.assert_not_called()
