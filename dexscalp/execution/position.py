"""
Position state machine.

`PositionManager` owns the single position of an engine instance and
decides, tick by tick, whether to open or close it:

- FLAT and the price crossed above the average: buy with the notional
  given by the capital policy.
- LONG and the profit target is reached, the stop‑loss is breached or
  (when enabled) the price crossed below the average: sell the whole
  position.

The position is only mutated after the execution port has reported a
successful swap.  Any error raised while sizing or executing leaves it
exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import pandas as pd

from ..config.schema import CapitalPolicy, PairConfig, PriceConvention, StrategyConfig
from ..errors import ExecutionError
from ..reporting.status import StatusReporter
from ..strategy.signals import Crossover
from .dry_run import ExecutionPort, SimulatedLedger
from .models import ExitReason, Position, PositionState, Side, SwapResult, Trade
from .sizing import rate_direction, size_order


logger = logging.getLogger(__name__)


@dataclass
class TickDecision:
    """What the position manager did on one tick."""
    action: str  # 'buy', 'sell' or 'hold'
    state: PositionState
    profit: Optional[Decimal] = None
    reason: Optional[ExitReason] = None
    swap: Optional[SwapResult] = None
    trade: Optional[Trade] = None


class PositionManager:
    """Drive the FLAT/LONG state machine for one trading pair.

    Parameters
    ----------
    strategy : StrategyConfig
        Profit target, stop‑loss, slippage tolerance and capital policy.
    pair : PairConfig
        Assets and price convention of the traded pair.
    execution : ExecutionPort
        Where swaps are submitted.
    ledger : SimulatedLedger, optional
        Simulated balances.  Required by the ``full_balance`` policy and
        used to cap the ``fixed`` policy's trade amount.
    reporter : StatusReporter, optional
        Receives human‑readable status lines.
    """

    def __init__(
        self,
        strategy: StrategyConfig,
        pair: PairConfig,
        execution: ExecutionPort,
        ledger: Optional[SimulatedLedger] = None,
        reporter: Optional[StatusReporter] = None,
    ) -> None:
        if strategy.capital_policy is CapitalPolicy.FULL_BALANCE and ledger is None:
            raise ValueError("The full_balance capital policy needs a ledger to read the balance from")
        self.strategy = strategy
        self.pair = pair
        self.execution = execution
        self.ledger = ledger
        self.reporter = reporter or StatusReporter(strategy.profit_log_threshold)
        self.position = Position()
        self.trades: List[Trade] = []

    def trade_notional(self) -> Decimal:
        """Quote amount the next buy commits."""
        if self.strategy.capital_policy is CapitalPolicy.FULL_BALANCE:
            notional = self.ledger.quote_balance
        elif self.ledger is not None:
            notional = min(self.strategy.trade_amount, self.ledger.quote_balance)
        else:
            notional = self.strategy.trade_amount
        return self.pair.quote.quantize(notional)

    def profit_at(self, price: Decimal) -> Decimal:
        entry = self.position.entry_price
        return (price - entry) / entry

    def exit_reason(self, profit: Decimal, signal: Crossover) -> Optional[ExitReason]:
        """Return why the position should be closed, or None to keep it.

        The three triggers are independent; when several hold at once the
        stop‑loss is reported first, then the profit target.  A drawdown
        exactly at the stop‑loss ratio keeps the position open.
        """
        # Strict: a drawdown equal to stop_loss (e.g. -3 % at 97 from 100) holds
        if profit < self.strategy.stop_loss:
            return ExitReason.STOP_LOSS
        if profit >= self.strategy.profit_target:
            return ExitReason.PROFIT_TARGET
        if self.strategy.exit_on_crossover and signal is Crossover.CROSSED_DOWN:
            return ExitReason.CROSSOVER
        return None

    async def on_tick(
        self,
        price: Decimal,
        signal: Crossover,
        moving_average: Optional[Decimal] = None,
        when: Optional[pd.Timestamp] = None,
    ) -> TickDecision:
        """Advance the state machine with the latest price and crossover.

        Raises
        ------
        InvalidQuantityError
            If the order size is zero or negative.
        ExecutionError
            If the execution port fails or times out.
        """
        when = when if when is not None else pd.Timestamp.now(tz="UTC")
        if self.position.is_flat:
            if signal is Crossover.CROSSED_UP:
                return await self._enter(price, when)
            self.reporter.report("Waiting for buy signal...")
            return TickDecision(action="hold", state=self.position.state)

        profit = self.profit_at(price)
        reason = self.exit_reason(profit, signal)
        if reason is not None:
            logger.debug("Exit triggered by %s at profit %s", reason.value, profit)
            return await self._exit(price, profit, reason, when)

        percent = profit * 100
        self.reporter.report_profit(
            percent,
            f"Profit: {percent:.2f}%, waiting for {self._exit_summary()}...",
            f"Price: {price}" + (f", SMA({self.strategy.window}): {moving_average:.6f}" if moving_average is not None else ""),
        )
        return TickDecision(action="hold", state=self.position.state, profit=profit)

    async def _enter(self, price: Decimal, when: pd.Timestamp) -> TickDecision:
        notional = self.trade_notional()
        min_out = size_order(
            notional,
            price,
            self.strategy.slippage_tolerance,
            self.pair.base.decimals,
            rate_direction(Side.BUY, self.pair.price_convention),
        )
        swap = await self._submit(notional, min_out, Side.BUY)
        self.position.open(price, swap.amount_out, swap.amount_in, when)
        self.reporter.report(
            f"Bought at {price} {self._price_unit()}, "
            f"{self.pair.base.symbol}: {self.pair.base.quantize(swap.amount_out)}"
        )
        return TickDecision(action="buy", state=self.position.state, swap=swap)

    async def _exit(self, price: Decimal, profit: Decimal, reason: ExitReason, when: pd.Timestamp) -> TickDecision:
        quantity = self.position.quantity_held
        min_out = size_order(
            quantity,
            price,
            self.strategy.slippage_tolerance,
            self.pair.quote.decimals,
            rate_direction(Side.SELL, self.pair.price_convention),
        )
        swap = await self._submit(quantity, min_out, Side.SELL)
        trade = Trade(
            pair=self.pair.name,
            quantity=quantity,
            entry_price=self.position.entry_price,
            exit_price=price,
            entry_time=self.position.entry_time,
            exit_time=when,
            cost=self.position.entry_notional,
            proceeds=swap.amount_out,
            profit=profit,
            reason=reason,
        )
        self.trades.append(trade)
        self.position.close()
        self.reporter.reset_profit()
        self.reporter.report(
            f"Sold at {price} {self._price_unit()}, Profit: {profit * 100:.2f}% ({reason.value})"
        )
        return TickDecision(
            action="sell", state=self.position.state, profit=profit, reason=reason, swap=swap, trade=trade
        )

    async def _submit(self, amount_in: Decimal, min_out: Decimal, side: Side) -> SwapResult:
        try:
            swap = await asyncio.wait_for(
                self.execution.submit_swap(amount_in, min_out, side),
                timeout=self.strategy.call_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExecutionError(
                f"{side.value} swap timed out after {self.strategy.call_timeout}s"
            ) from exc
        if swap.amount_out <= 0:
            raise ExecutionError(f"{side.value} swap returned no output")
        return swap

    def _price_unit(self) -> str:
        base, quote = self.pair.base.symbol, self.pair.quote.symbol
        if self.pair.price_convention is PriceConvention.BASE_PER_QUOTE:
            return f"{base} per {quote}"
        return f"{quote} per {base}"

    def _exit_summary(self) -> str:
        target = f"{self.strategy.profit_target * 100:g}% profit"
        stop = f"{self.strategy.stop_loss * 100:g}% stop-loss"
        if self.strategy.exit_on_crossover:
            return f"SMA crossover, {target}, or {stop}"
        return f"{target} or {stop}"
