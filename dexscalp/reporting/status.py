"""
Status line coalescing.

The loop polls every few seconds and most cycles change nothing, so
status lines are only logged when they differ from the previous one.
Unrealized profit lines are further held back until the percentage has
moved by a threshold since the last one that was logged.  None of this
feeds back into trading decisions.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from ..utils.fixedpoint import Number, to_decimal


logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


class StatusReporter:
    """Log status lines without repeating them.

    Parameters
    ----------
    threshold : Decimal
        Minimum change, in percentage points, of the unrealized profit
        before a new profit line is logged.
    log : logging.Logger, optional
        Logger to write to.  Defaults to this module's logger.
    """

    def __init__(self, threshold: Number = Decimal("0.1"), log: Optional[logging.Logger] = None) -> None:
        self.threshold = to_decimal(threshold)
        self.log = log or logger
        self.last_status: Optional[str] = None
        self.last_profit_percent: Optional[Decimal] = None

    def report(self, status: str, detail: str = "") -> bool:
        """Log `status` unless it equals the last one.  Returns True if logged."""
        if status == self.last_status:
            return False
        self.log.info("%s", f"{status} {detail}" if detail else status)
        self.last_status = status
        return True

    def report_profit(self, profit_percent: Number, status: str, detail: str = "") -> bool:
        """Log an unrealized profit line, coalescing small moves.

        The percentage is rounded to two places before being compared
        with the last logged value.
        """
        percent = to_decimal(profit_percent).quantize(_CENT)
        if self.last_profit_percent is not None and abs(percent - self.last_profit_percent) < self.threshold:
            return False
        emitted = self.report(status, detail)
        self.last_profit_percent = percent
        return emitted

    def reset_profit(self) -> None:
        self.last_profit_percent = None
