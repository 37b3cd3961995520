import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# The config file uses camelCase keys, attributes stay snake_case.
class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _split_coins(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip().upper() for v in value if str(v).strip()]


class AccountConfig(_Section):
    exchange: str = "FTX"
    api_key: str = ""
    api_secret: str = ""
    subaccount: str | None = None

    @field_validator("exchange")
    @classmethod
    def _upper_exchange(cls, v: str) -> str:
        return v.strip().upper()


class GeneralConfig(_Section):
    invest_ratio: float = Field(default=100.0, ge=0, le=100)
    apy_min: float = Field(default=0.0, ge=0)
    discount: float = Field(default=0.0, ge=0, le=100)
    allow_coin_conversion: bool = False
    fiat_assets: list[str] = Field(default_factory=lambda: ["USD"])
    ignore_assets: list[str] = Field(default_factory=list)

    @field_validator("fiat_assets", "ignore_assets", mode="before")
    @classmethod
    def _coins(cls, v: Any) -> list[str]:
        return _split_coins(v)


class AssetConfig(_Section):
    """Per coin overrides. Unset values fall back to the [general] section."""

    ignore: bool = False
    rate: float | None = Field(default=None, ge=0)  # fixed APY, in %
    discount: float | None = Field(default=None, ge=0, le=100)
    invest_ratio: float | None = Field(default=None, ge=0, le=100)
    convert: list[str] = Field(default_factory=list)

    @field_validator("convert", mode="before")
    @classmethod
    def _coins(cls, v: Any) -> list[str]:
        return _split_coins(v)


class TunablesConfig(_Section):
    renew_offer_tolerance: float = Field(default=0.1, ge=0)
    min_available_limit_usd: float = Field(default=0.1, ge=0, alias="minAvailableLimitUSD")
    lend_price_precision: int = Field(default=8, ge=0, le=16)
    pause_after_submit: int = Field(default=5000, ge=0)  # ms
    pause_after_cancel: int = Field(default=1000, ge=0)  # ms


class BotConfig(_Section):
    label: str = "Autolend Bot"
    interval_check_min: float = Field(default=1.0, gt=0)
    update_error_reset_after_count: int = Field(default=10, ge=1)
    json_file: str = ""
    json_log_size: int = Field(default=200, ge=1)
    timeout: int = Field(default=30, ge=1, le=180)
    api_debug_log: bool = False

    @property
    def interval(self) -> float:
        """Seconds between two cycles."""
        return self.interval_check_min * 60


@dataclass(frozen=True)
class ResolvedAsset:
    coin: str
    ignore: bool
    rate: float | None
    discount: float
    invest_ratio: float
    convert: tuple[str, ...]


class RootConfig(_Section):
    account: AccountConfig = Field(default_factory=AccountConfig)
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    assets: dict[str, AssetConfig] = Field(default_factory=dict)
    tunables: TunablesConfig = Field(default_factory=TunablesConfig)
    bot: BotConfig = Field(default_factory=BotConfig)

    @field_validator("assets", mode="before")
    @classmethod
    def _upper_assets(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {str(k).upper(): cfg for k, cfg in v.items()}
        return v

    def resolve_asset(self, coin: str) -> ResolvedAsset:
        """
        Returns the effective settings of a coin: its own override where set,
        the general value otherwise.
        """
        override = self.assets.get(coin.upper(), AssetConfig())
        general = self.general
        return ResolvedAsset(
            coin=coin,
            ignore=override.ignore or coin.upper() in general.ignore_assets,
            rate=override.rate,
            discount=general.discount if override.discount is None else override.discount,
            invest_ratio=(
                general.invest_ratio if override.invest_ratio is None else override.invest_ratio
            ),
            convert=tuple(c for c in override.convert if c != coin.upper()),
        )


# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "FTX_API_KEY": ("account", "apiKey"),
    "FTX_API_SECRET": ("account", "apiSecret"),
    "FTX_SUBACCOUNT_ID": ("account", "subaccount"),
    "INVEST_RATIO": ("general", "investRatio"),
    "APY_MIN": ("general", "apyMin"),
    "IGNORE_ASSETS": ("general", "ignoreAssets"),
    "INTERVAL_CHECK_MIN": ("bot", "intervalCheckMin"),
}


def apply_env_overrides(raw: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        raw.setdefault(section, {})[key] = value
    return raw


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> RootConfig:
    """
    Loads and validates a TOML config file.

    A `.env` file next to the config is loaded first, environment variables then
    override the file values (credentials usually live there).

    Raises:
        FileNotFoundError: when the config file does not exist.
        pydantic.ValidationError: when a value is invalid.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(str(path))

    if env is None:
        load_dotenv(dotenv_path=path.parent / ".env")
        env = os.environ

    with path.open("rb") as f:
        raw = tomllib.load(f)

    return RootConfig.model_validate(apply_env_overrides(raw, env))
