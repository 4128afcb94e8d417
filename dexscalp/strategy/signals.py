"""
Crossover detection.

A crossover happens when the price moves from one side of the moving
average to the other between two consecutive samples.  A price that
equals the average counts as "not above" it, so touching the average
from above is a downward cross and leaving it upwards is an upward
cross.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class Crossover(str, Enum):
    CROSSED_UP = "crossed_up"
    CROSSED_DOWN = "crossed_down"
    NONE = "none"


def classify(previous_price: Decimal, current_price: Decimal, moving_average: Decimal) -> Crossover:
    """Classify the latest two prices against the moving average.

    Parameters
    ----------
    previous_price : Decimal
        The sample before the current one.
    current_price : Decimal
        The latest sample.
    moving_average : Decimal
        The trailing average, which must be defined.

    Returns
    -------
    Crossover
        `CROSSED_UP`, `CROSSED_DOWN` or `NONE`.
    """
    if moving_average is None:
        raise ValueError("moving_average is undefined; gate on a full price history first")
    was_above = previous_price > moving_average
    is_above = current_price > moving_average
    if not was_above and is_above:
        return Crossover.CROSSED_UP
    if was_above and not is_above:
        return Crossover.CROSSED_DOWN
    return Crossover.NONE
