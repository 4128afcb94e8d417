"""
Slippage‑bounded order sizing.

The sizer turns an input amount and the current price into the
minimum output the swap must return.  The expected output is first
truncated to the output asset's precision, then the slippage
tolerance is applied and the result truncated again, so the minimum
never exceeds the expected output.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from ..config.schema import PriceConvention
from ..errors import InvalidQuantityError
from ..utils.fixedpoint import Number, to_decimal, truncate
from .models import Side


class RateDirection(str, Enum):
    """Whether the input amount is multiplied or divided by the rate."""
    MULTIPLY = "multiply"
    DIVIDE = "divide"


def rate_direction(side: Side, convention: PriceConvention) -> RateDirection:
    """Pick the conversion for a swap given how the price is quoted.

    With a base‑per‑quote price (AERO per USDC) a buy multiplies the
    quote notional by the price and a sell divides the base quantity
    by it.  A quote‑per‑base price (USDC per cbBTC) works the other way
    round.
    """
    multiply_on_buy = convention is PriceConvention.BASE_PER_QUOTE
    if side is Side.BUY:
        return RateDirection.MULTIPLY if multiply_on_buy else RateDirection.DIVIDE
    return RateDirection.DIVIDE if multiply_on_buy else RateDirection.MULTIPLY


def expected_output(
    amount_in: Number,
    expected_rate: Number,
    output_precision: int,
    direction: RateDirection = RateDirection.MULTIPLY,
) -> Decimal:
    """Convert `amount_in` at `expected_rate`, truncated to `output_precision`."""
    amount = to_decimal(amount_in)
    rate = to_decimal(expected_rate)
    if amount <= 0:
        raise InvalidQuantityError(f"Trade amount must be positive, got {amount}")
    if rate <= 0:
        raise InvalidQuantityError(f"Expected rate must be positive, got {rate}")
    raw = amount * rate if direction is RateDirection.MULTIPLY else amount / rate
    return truncate(raw, output_precision)


def size_order(
    notional_in: Number,
    expected_rate: Number,
    slippage_tolerance: Number,
    output_precision: int,
    direction: RateDirection = RateDirection.MULTIPLY,
) -> Decimal:
    """Compute the minimum acceptable output of a swap.

    Parameters
    ----------
    notional_in : Decimal
        Amount of the input asset committed to the swap.
    expected_rate : Decimal
        Current price used to convert the input.
    slippage_tolerance : Decimal
        Fraction of the expected output retained as the floor, in (0, 1].
    output_precision : int
        Decimal places of the output asset.
    direction : RateDirection
        Multiply or divide the input by the rate.

    Returns
    -------
    Decimal
        ``floor(expected_out * slippage_tolerance)`` at `output_precision`.

    Raises
    ------
    InvalidQuantityError
        If the input or the rate is not positive, or the minimum output
        truncates to zero.
    """
    tolerance = to_decimal(slippage_tolerance)
    if not Decimal(0) < tolerance <= Decimal(1):
        raise ValueError(f"Slippage tolerance must be in (0, 1], got {tolerance}")
    expected = expected_output(notional_in, expected_rate, output_precision, direction)
    min_out = truncate(expected * tolerance, output_precision)
    if min_out <= 0:
        raise InvalidQuantityError(
            f"Minimum output of {notional_in} at rate {expected_rate} rounds to zero "
            f"at {output_precision} decimals"
        )
    return min_out
