"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (see the examples under `configs/`).  A
helper function `load_config()` reads a YAML file from disk, merges
it over the defaults and returns a validated `Config`.

The configuration is read once at startup.  `StrategyConfig` is
frozen: the parameters of a run never change while the loop is
running.  Secrets such as the RPC API key are never written into the
YAML file; `${VAR}` placeholders in `pool.rpc_url` are expanded from
the environment (a `.env` file is loaded by the CLI).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

import yaml

from ..errors import ConfigError
from ..utils.fixedpoint import Asset, to_decimal


class CapitalPolicy(str, Enum):
    """How much of the quote asset a buy commits."""

    FIXED = "fixed"
    FULL_BALANCE = "full_balance"


class PriceConvention(str, Enum):
    """Which way round the feed quotes the pair."""

    QUOTE_PER_BASE = "quote_per_base"  # e.g. USDC per cbBTC
    BASE_PER_QUOTE = "base_per_quote"  # e.g. AERO per USDC


class PoolKind(str, Enum):
    """Pricing model of the liquidity pool."""

    CONSTANT_PRODUCT = "constant_product"
    CONCENTRATED = "concentrated"


@dataclass(frozen=True)
class StrategyConfig:
    """Parameters of the SMA scalping strategy.

    Attributes
    ----------
    window : int
        Number of samples in the simple moving average.
    profit_target : Decimal
        Profit ratio at which an open position is closed (``0.01`` = 1 %).
    stop_loss : Decimal
        Negative ratio below which an open position is closed.
    slippage_tolerance : Decimal
        Fraction of the expected output accepted as the minimum output
        (``0.995`` accepts 0.5 % slippage).
    poll_interval : float
        Seconds between two cycles.
    fee_tier : int
        Pool fee tier.  Informational only; it is not used in price math.
    capital_policy : CapitalPolicy
        ``fixed`` trades `trade_amount`, ``full_balance`` trades the whole
        simulated quote balance.
    trade_amount : Decimal
        Quote amount per buy under the ``fixed`` policy.
    starting_balance : Decimal
        Initial simulated quote balance for dry runs.
    exit_on_crossover : bool
        Close the position when the price crosses below the average.
    profit_log_threshold : Decimal
        Minimum move in percentage points before the unrealized profit
        is logged again.
    call_timeout : float
        Upper bound in seconds for each feed or execution call.
    """

    window: int = 36
    profit_target: Decimal = Decimal("0.01")
    stop_loss: Decimal = Decimal("-0.02")
    slippage_tolerance: Decimal = Decimal("0.995")
    poll_interval: float = 5.0
    fee_tier: int = 3000
    capital_policy: CapitalPolicy = CapitalPolicy.FULL_BALANCE
    trade_amount: Decimal = Decimal("25")
    starting_balance: Decimal = Decimal("25")
    exit_on_crossover: bool = False
    profit_log_threshold: Decimal = Decimal("0.1")
    call_timeout: float = 15.0


@dataclass
class PairConfig:
    """The traded pair.

    Attributes
    ----------
    base : Asset
        The asset that is bought and held (e.g. AERO, cbBTC).
    quote : Asset
        The asset the position is funded with (e.g. USDC).
    price_convention : PriceConvention
        Whether feed prices are quote per base or base per quote.
    """

    base: Asset = field(default_factory=lambda: Asset("AERO", 18))
    quote: Asset = field(default_factory=lambda: Asset("USDC", 6))
    price_convention: PriceConvention = PriceConvention.BASE_PER_QUOTE

    @property
    def name(self) -> str:
        return f"{self.quote.symbol}/{self.base.symbol}"


@dataclass
class PoolConfig:
    """On‑chain pool used as the price source.

    Attributes
    ----------
    kind : PoolKind
        ``constant_product`` reads `getReserves()`, ``concentrated``
        reads the square‑root price from `slot0()`.
    address : str
        Pool contract address.
    rpc_url : str
        JSON‑RPC endpoint.  May contain ``${VAR}`` placeholders.
    token0_decimals, token1_decimals : int
        Decimals of the pool's token0 and token1.
    invert : bool
        Invert the token1‑per‑token0 price before handing it to the
        engine.
    """

    kind: PoolKind = PoolKind.CONSTANT_PRODUCT
    address: str = ""
    rpc_url: str = ""
    token0_decimals: int = 6
    token1_decimals: int = 18
    invert: bool = False


@dataclass
class DataConfig:
    """Replay data source.

    Attributes
    ----------
    csv_path : str
        CSV file with a ``price`` column used by the ``replay`` mode.
    """

    csv_path: str = "data/prices.csv"


@dataclass
class Config:
    """Root configuration for one trading pair."""

    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    pair: PairConfig = field(default_factory=PairConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    data: DataConfig = field(default_factory=DataConfig)
    mode: str = "dry-run"


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def _defaults() -> Dict[str, Any]:
    return {
        'strategy': {
            'window': 36,
            'profit_target': "0.01",
            'stop_loss': "-0.02",
            'slippage_tolerance': "0.995",
            'poll_interval': 5.0,
            'fee_tier': 3000,
            'capital_policy': "full_balance",
            'trade_amount': "25",
            'starting_balance': "25",
            'exit_on_crossover': False,
            'profit_log_threshold': "0.1",
            'call_timeout': 15.0,
        },
        'pair': {
            'base': {'symbol': "AERO", 'decimals': 18},
            'quote': {'symbol': "USDC", 'decimals': 6},
            'price_convention': "base_per_quote",
        },
        'pool': {
            'kind': "constant_product",
            'address': "",
            'rpc_url': "",
            'token0_decimals': 6,
            'token1_decimals': 18,
            'invert': False,
        },
        'data': {
            'csv_path': "data/prices.csv",
        },
        'mode': "dry-run",
    }


def validate_strategy(strategy: StrategyConfig) -> None:
    """Reject parameter combinations the engine cannot run with.

    Raises
    ------
    ConfigError
        If any parameter is out of range.
    """
    if strategy.window < 1:
        raise ConfigError(f"strategy.window must be at least 1, got {strategy.window}")
    if strategy.profit_target <= 0:
        raise ConfigError("strategy.profit_target must be positive")
    if strategy.stop_loss >= 0:
        raise ConfigError("strategy.stop_loss must be negative")
    if not Decimal(0) < strategy.slippage_tolerance <= Decimal(1):
        raise ConfigError("strategy.slippage_tolerance must be in (0, 1]")
    if strategy.poll_interval < 0:
        raise ConfigError("strategy.poll_interval must not be negative")
    if strategy.call_timeout <= 0:
        raise ConfigError("strategy.call_timeout must be positive")
    if strategy.capital_policy is CapitalPolicy.FIXED and strategy.trade_amount <= 0:
        raise ConfigError("strategy.trade_amount must be positive for the fixed capital policy")


def build_config(raw: Dict[str, Any]) -> Config:
    """Build a validated `Config` from a (possibly partial) dictionary."""
    merged = _merge_dict(_defaults(), raw)
    try:
        st = merged['strategy']
        strategy_cfg = StrategyConfig(
            window=int(st['window']),
            profit_target=to_decimal(st['profit_target']),
            stop_loss=to_decimal(st['stop_loss']),
            slippage_tolerance=to_decimal(st['slippage_tolerance']),
            poll_interval=float(st['poll_interval']),
            fee_tier=int(st['fee_tier']),
            capital_policy=CapitalPolicy(str(st['capital_policy']).lower()),
            trade_amount=to_decimal(st['trade_amount']),
            starting_balance=to_decimal(st['starting_balance']),
            exit_on_crossover=bool(st['exit_on_crossover']),
            profit_log_threshold=to_decimal(st['profit_log_threshold']),
            call_timeout=float(st['call_timeout']),
        )
        pr = merged['pair']
        pair_cfg = PairConfig(
            base=Asset(str(pr['base']['symbol']), int(pr['base']['decimals'])),
            quote=Asset(str(pr['quote']['symbol']), int(pr['quote']['decimals'])),
            price_convention=PriceConvention(str(pr['price_convention']).lower()),
        )
        pl = merged['pool']
        pool_cfg = PoolConfig(
            kind=PoolKind(str(pl['kind']).lower()),
            address=str(pl['address']),
            rpc_url=os.path.expandvars(str(pl['rpc_url'])),
            token0_decimals=int(pl['token0_decimals']),
            token1_decimals=int(pl['token1_decimals']),
            invert=bool(pl['invert']),
        )
        data_cfg = DataConfig(csv_path=str(merged['data']['csv_path']))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    validate_strategy(strategy_cfg)
    return Config(
        strategy=strategy_cfg,
        pair=pair_cfg,
        pool=pool_cfg,
        data=data_cfg,
        mode=str(merged.get('mode', 'dry-run')).lower(),
    )


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        the defaults of the dataclasses.

    Raises
    ------
    ConfigError
        If the file does not exist or holds invalid values.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw: Dict[str, Any] = yaml.safe_load(fh) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    return build_config(raw)
