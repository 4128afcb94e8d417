"""
Dry‑run execution.

`DryRunExecution` satisfies the execution port without touching a
real venue: each swap is logged and booked against a
`SimulatedLedger`, and the minimum acceptable output is reported back
as the executed amount.  Actual fills can only be better than that
minimum, so the simulated balances are a conservative approximation.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Protocol

from ..config.schema import PairConfig
from ..errors import ExecutionError
from ..utils.fixedpoint import Asset
from .models import Side, SwapResult


logger = logging.getLogger(__name__)


class ExecutionPort(Protocol):
    """Anything that can submit a swap for the traded pair."""

    async def submit_swap(self, amount_in: Decimal, min_amount_out: Decimal, side: Side) -> SwapResult:
        """Swap `amount_in` and return the output, or raise `ExecutionError`."""


class SimulatedLedger:
    """Quote and base balances of a dry run.

    Parameters
    ----------
    quote : Asset
        The funding asset (e.g. USDC).
    base : Asset
        The traded asset (e.g. AERO).
    quote_balance : Decimal
        Initial quote balance.
    """

    def __init__(self, quote: Asset, base: Asset, quote_balance: Decimal) -> None:
        self.quote = quote
        self.base = base
        self.quote_balance = quote.quantize(quote_balance)
        self.base_balance = Decimal(0)

    def balance_of(self, side: Side) -> Decimal:
        """Balance of the asset a swap in direction `side` spends."""
        return self.quote_balance if side is Side.BUY else self.base_balance

    def apply(self, side: Side, amount_in: Decimal, amount_out: Decimal) -> None:
        """Book a swap.

        Raises
        ------
        ExecutionError
            If the spent asset's balance is smaller than `amount_in`.
            Balances are left unchanged in that case.
        """
        available = self.balance_of(side)
        if amount_in > available:
            asset = self.quote if side is Side.BUY else self.base
            raise ExecutionError(
                f"Insufficient simulated {asset.symbol} balance: "
                f"need {amount_in}, have {available}"
            )
        if side is Side.BUY:
            self.quote_balance = self.quote.quantize(self.quote_balance - amount_in)
            self.base_balance = self.base.quantize(self.base_balance + amount_out)
        else:
            self.base_balance = self.base.quantize(self.base_balance - amount_in)
            self.quote_balance = self.quote.quantize(self.quote_balance + amount_out)


class DryRunExecution:
    """Execution port that logs swaps and books them on a simulated ledger."""

    def __init__(self, pair: PairConfig, ledger: Optional[SimulatedLedger] = None) -> None:
        self.pair = pair
        self.ledger = ledger
        self.swaps = 0

    async def submit_swap(self, amount_in: Decimal, min_amount_out: Decimal, side: Side) -> SwapResult:
        asset_in, asset_out = (
            (self.pair.quote, self.pair.base) if side is Side.BUY else (self.pair.base, self.pair.quote)
        )
        if amount_in <= 0:
            raise ExecutionError(f"Refusing to swap non-positive amount {amount_in} {asset_in.symbol}")
        if self.ledger is not None:
            self.ledger.apply(side, amount_in, min_amount_out)
        self.swaps += 1
        logger.info(
            "[DRY RUN] Swap %s -> %s",
            asset_in.format(amount_in),
            asset_out.format(min_amount_out),
        )
        logger.debug(
            "[DRY RUN] Router arguments: amountIn=%d amountOutMinimum=%d",
            asset_in.to_base_units(amount_in),
            asset_out.to_base_units(min_amount_out),
        )
        return SwapResult(side=side, amount_in=amount_in, amount_out=min_amount_out)
