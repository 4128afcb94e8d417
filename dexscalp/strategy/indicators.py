"""
Price history and trailing moving average.

`PriceHistory` keeps the last ``window + 1`` prices: ``window`` samples
for the simple moving average plus the sample before them, which is
needed to tell whether the price has just crossed the average.
"""

from __future__ import annotations

from collections import deque
from decimal import Decimal
from typing import Deque, List, Optional

from ..errors import FeedError
from ..utils.fixedpoint import to_decimal


class PriceHistory:
    """Bounded FIFO buffer of recent prices with a simple moving average.

    Parameters
    ----------
    window : int
        Number of samples averaged by `moving_average()`.  The buffer
        holds ``window + 1`` prices; older ones are evicted first.
    """

    def __init__(self, window: int) -> None:
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")
        self.window = window
        self._prices: Deque[Decimal] = deque(maxlen=window + 1)

    @property
    def capacity(self) -> int:
        return self.window + 1

    def __len__(self) -> int:
        return len(self._prices)

    def append(self, price: Decimal) -> None:
        """Push a price, evicting the oldest one beyond capacity.

        Raises
        ------
        FeedError
            If the price is missing, not finite or not strictly positive.
            Such a price is never stored.
        """
        if price is None:
            raise FeedError("Price feed returned no price")
        if not isinstance(price, Decimal):
            try:
                price = to_decimal(price)
            except ValueError as exc:
                raise FeedError(f"Price is not a number: {price!r}") from exc
        if not price.is_finite() or price <= 0:
            raise FeedError(f"Price must be a positive finite number, got {price}")
        self._prices.append(price)

    def moving_average(self) -> Optional[Decimal]:
        """Mean of the most recent `window` prices, or `None` if fewer exist."""
        if len(self._prices) < self.window:
            return None
        recent = list(self._prices)[-self.window:]
        return sum(recent, Decimal(0)) / self.window

    @property
    def latest(self) -> Optional[Decimal]:
        return self._prices[-1] if self._prices else None

    @property
    def previous(self) -> Optional[Decimal]:
        return self._prices[-2] if len(self._prices) >= 2 else None

    @property
    def is_ready(self) -> bool:
        """True once both a current and a previous sample surround a full window."""
        return len(self._prices) >= self.capacity

    def to_list(self) -> List[Decimal]:
        return list(self._prices)
