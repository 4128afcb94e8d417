"""
Pool price models.

Two kinds of pools are supported:

- constant product pools (Uniswap V2 style), priced from the ratio of
  their reserves returned by `getReserves()`;
- concentrated liquidity pools (Uniswap V3 / Algebra style), priced
  from the Q64.96 square‑root price stored in `slot0()`.

Both models return the price of token1 in units of token0, adjusted
for the tokens' decimals, and can invert it when the engine wants the
pair quoted the other way round.  The arithmetic uses `Decimal` with
a wide context so that 160‑bit square‑root prices keep their
precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal, localcontext
from typing import Protocol, Union

from ..errors import FeedError
from ..utils.fixedpoint import Asset

Q96 = Decimal(2 ** 96)


@dataclass(frozen=True)
class ReserveState:
    """Reserves of a constant product pool, in smallest token units."""
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class Slot0State:
    """Square‑root price of a concentrated liquidity pool (Q64.96)."""
    sqrt_price_x96: int


PoolState = Union[ReserveState, Slot0State]


class PriceModel(Protocol):
    def compute_price(self, pool_state: PoolState) -> Decimal:
        """Return the decimal price for a pool state or raise `FeedError`."""


@dataclass(frozen=True)
class _DecimalAdjusted:
    token0_decimals: int
    token1_decimals: int
    invert: bool = False

    @property
    def token0(self) -> Asset:
        return Asset("token0", self.token0_decimals)

    @property
    def token1(self) -> Asset:
        return Asset("token1", self.token1_decimals)

    def _finish(self, raw_price: Decimal) -> Decimal:
        # human price = raw * 10**(d0 - d1)
        return self._orient(raw_price.scaleb(self.token0_decimals - self.token1_decimals))

    def _orient(self, price: Decimal) -> Decimal:
        if price <= 0:
            raise FeedError("Price calculation resulted in 0")
        return Decimal(1) / price if self.invert else price


@dataclass(frozen=True)
class ConstantProductModel(_DecimalAdjusted):
    """Price from the reserve ratio of a constant product pool."""

    def compute_price(self, pool_state: PoolState) -> Decimal:
        if not isinstance(pool_state, ReserveState):
            raise FeedError(f"Constant product model expects reserves, got {type(pool_state).__name__}")
        if pool_state.reserve0 <= 0 or pool_state.reserve1 <= 0:
            raise FeedError("Reserves are 0, pool may not be initialized")
        with localcontext(Context(prec=60)):
            price = self._orient(
                self.token1.from_base_units(pool_state.reserve1)
                / self.token0.from_base_units(pool_state.reserve0)
            )
        return +price


@dataclass(frozen=True)
class ConcentratedLiquidityModel(_DecimalAdjusted):
    """Price from the square‑root price of a concentrated liquidity pool."""

    def compute_price(self, pool_state: PoolState) -> Decimal:
        if not isinstance(pool_state, Slot0State):
            raise FeedError(f"Concentrated liquidity model expects slot0, got {type(pool_state).__name__}")
        if pool_state.sqrt_price_x96 <= 0:
            raise FeedError("sqrtPriceX96 is 0, pool may not be initialized")
        with localcontext(Context(prec=60)):
            sqrt_price = Decimal(pool_state.sqrt_price_x96) / Q96
            price = self._finish(sqrt_price * sqrt_price)
        return +price
