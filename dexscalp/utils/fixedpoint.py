"""
Fixed‑point helpers for token amounts.

On‑chain amounts are integers expressed in the smallest unit of each
token (6 decimals for USDC, 8 for cbBTC, 18 for most ERC‑20 tokens).
Prices and sizing are computed with `decimal.Decimal` and every amount
that leaves the engine is truncated to the precision of the asset it
is denominated in.  Truncation (`ROUND_DOWN`) is used throughout so
that an amount never exceeds what the arithmetic actually produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_DOWN, InvalidOperation
from typing import Union

Number = Union[Decimal, int, float, str]

# 18‑decimal tokens with large balances overflow the default 28 digits.
_WIDE = Context(prec=60)


def to_decimal(value: Number) -> Decimal:
    """Convert a number to `Decimal` without binary float artefacts.

    Floats go through `str()` first so ``0.995`` becomes
    ``Decimal("0.995")`` rather than its exact binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a decimal number: {value!r}") from exc


def quantum(precision: int) -> Decimal:
    """Return the smallest step for `precision` decimal places."""
    if precision < 0:
        raise ValueError(f"Precision must be non-negative, got {precision}")
    return Decimal(1).scaleb(-precision)


def truncate(value: Decimal, precision: int) -> Decimal:
    """Truncate `value` towards zero to `precision` decimal places."""
    return value.quantize(quantum(precision), rounding=ROUND_DOWN, context=_WIDE)


@dataclass(frozen=True)
class Asset:
    """A token and the number of decimals its amounts carry.

    Attributes
    ----------
    symbol : str
        Ticker used in log output (e.g. ``"USDC"``).
    decimals : int
        Number of decimal places of the token's smallest unit.
    """

    symbol: str
    decimals: int

    def quantize(self, amount: Number) -> Decimal:
        """Truncate an amount to this asset's precision."""
        return truncate(to_decimal(amount), self.decimals)

    def to_base_units(self, amount: Number) -> int:
        """Express a human amount as an integer count of smallest units."""
        return int(self.quantize(amount).scaleb(self.decimals, context=_WIDE))

    def from_base_units(self, units: int) -> Decimal:
        """Express an integer count of smallest units as a human amount."""
        return Decimal(int(units)).scaleb(-self.decimals, context=_WIDE)

    def format(self, amount: Number) -> str:
        """Render an amount with the asset symbol, e.g. ``"25.000000 USDC"``."""
        return f"{self.quantize(amount)} {self.symbol}"
