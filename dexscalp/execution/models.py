"""
Order, position and trade models.

These dataclasses represent the objects passed between the position
manager, the execution port and the reporting code.  Keeping them in a
separate module improves readability and makes unit testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

import pandas as pd


class Side(str, Enum):
    """Swap direction relative to the base asset."""
    BUY = "buy"    # quote in, base out
    SELL = "sell"  # base in, quote out


class PositionState(str, Enum):
    FLAT = "flat"
    LONG = "long"


class ExitReason(str, Enum):
    PROFIT_TARGET = "profit_target"
    STOP_LOSS = "stop_loss"
    CROSSOVER = "crossover"


@dataclass
class Position:
    """The single position of an engine instance.

    `FLAT` holds nothing: no entry price and a zero quantity.  `LONG`
    holds `quantity_held` of the base asset bought at `entry_price`
    for `entry_notional` of the quote asset.
    """
    state: PositionState = PositionState.FLAT
    entry_price: Optional[Decimal] = None
    quantity_held: Decimal = Decimal(0)
    entry_notional: Decimal = Decimal(0)
    entry_time: Optional[pd.Timestamp] = None

    @property
    def is_flat(self) -> bool:
        return self.state is PositionState.FLAT

    def open(self, price: Decimal, quantity: Decimal, notional: Decimal, when: pd.Timestamp) -> None:
        if quantity <= 0:
            raise ValueError(f"Cannot open a position with quantity {quantity}")
        self.state = PositionState.LONG
        self.entry_price = price
        self.quantity_held = quantity
        self.entry_notional = notional
        self.entry_time = when

    def close(self) -> None:
        self.state = PositionState.FLAT
        self.entry_price = None
        self.quantity_held = Decimal(0)
        self.entry_notional = Decimal(0)
        self.entry_time = None

    def is_consistent(self) -> bool:
        flat = self.state is PositionState.FLAT
        return flat == (self.quantity_held == 0) == (self.entry_price is None)


@dataclass
class SwapResult:
    """What the execution port reports back for a swap."""
    side: Side
    amount_in: Decimal
    amount_out: Decimal


@dataclass
class Trade:
    """Represents a completed round trip."""
    pair: str
    quantity: Decimal
    entry_price: Decimal
    exit_price: Decimal
    entry_time: pd.Timestamp
    exit_time: pd.Timestamp
    cost: Decimal      # quote spent on entry
    proceeds: Decimal  # quote received on exit
    profit: Decimal    # price change ratio from entry
    reason: ExitReason

    @property
    def pnl(self) -> Decimal:
        return self.proceeds - self.cost


@dataclass
class EquityPoint:
    """Quote‑asset equity at a given timestamp."""
    timestamp: pd.Timestamp
    equity: Decimal
