"""
Global pytest configuration and fixtures for Autolend tests.

This conftest.py provides:
- Custom pytest markers for test categorization
- Automatic integration test skipping (unless --run-integration is passed)
- Shared config / exchange API / logger fixtures
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to Python path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from autolend.modules.Configuration import RootConfig  # noqa: E402
from autolend.modules.Yield import convert_apy_to_hpy  # noqa: E402


def pytest_addoption(parser):
    """Add custom command-line options for pytest.

    Options:
    --run-integration: Enable integration tests (disabled by default)
    """
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (disabled by default)",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (slower, whole bot wired together)"
    )
    config.addinivalue_line("markers", "slow: Slow-running tests (take > 1 second)")


def pytest_collection_modifyitems(config, items):
    """Marks tests in tests/integration/ and skips them unless --run-integration is passed."""
    run_integration = config.getoption("--run-integration")

    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker("integration")
            item.add_marker("slow")

        if item.get_closest_marker("integration") and not run_integration:
            item.add_marker(
                pytest.mark.skip(reason="Integration tests skipped. Use --run-integration to run.")
            )


def apy_rate(apy_pct):
    """Hourly rate of an APY given in %."""
    return convert_apy_to_hpy(apy_pct / 100)


def lending_info(coin, lendable=0.0, locked=0.0, offered=0.0, min_rate=None):
    return {
        "coin": coin,
        "lendable": lendable,
        "locked": locked,
        "offered": offered,
        "minRate": min_rate,
    }


@pytest.fixture
def config():
    cfg = RootConfig()
    cfg.general.fiat_assets = ["USD", "USDT"]
    return cfg


@pytest.fixture
def mock_log():
    return MagicMock()


@pytest.fixture
def mock_api():
    api = MagicMock()
    api.return_markets.return_value = [
        {"name": "BTC/USD", "baseCurrency": "BTC", "quoteCurrency": "USD", "price": 20000.0,
         "priceIncrement": 1.0},
        {"name": "ETH/USD", "baseCurrency": "ETH", "quoteCurrency": "USD", "price": 1500.0,
         "priceIncrement": 0.1},
        {"name": "BTC-PERP", "baseCurrency": None, "quoteCurrency": None, "price": 20010.0,
         "priceIncrement": 1.0},
    ]
    api.return_lending_rates.return_value = []
    api.return_lending_info.return_value = []
    api.return_lending_history.return_value = []
    return api
