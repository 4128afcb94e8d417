"""
Strategy loop.

`StrategyLoop` is the polling driver of one trading pair.  Each cycle
it fetches a price, updates the price history and moving average,
classifies the crossover and hands the tick to the position manager.
Cycles never overlap: the next fetch starts only after the previous
cycle's state update and sleep have completed, so no locking is
needed.

Every error raised inside a cycle is logged and the loop carries on
after the normal poll interval.  There is deliberately no retry with
backoff: a failing feed or execution port is simply tried again on the
next cycle.  The loop stops when `stop()` is called (checked before
each cycle and interrupting the sleep) or after `max_cycles`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Protocol

import pandas as pd

from ..config.schema import Config
from ..errors import DexScalpError, FeedError
from ..reporting.status import StatusReporter
from ..strategy.indicators import PriceHistory
from ..strategy.signals import Crossover, classify
from .dry_run import DryRunExecution, ExecutionPort, SimulatedLedger
from .models import EquityPoint, Trade
from .position import PositionManager, TickDecision


logger = logging.getLogger(__name__)


class PriceFeed(Protocol):
    async def fetch_price(self) -> Decimal:
        """Return the current price or raise `FeedError`."""


@dataclass
class CycleResult:
    """Outcome of one cycle, mostly useful to tests and callers stepping the loop."""
    price: Optional[Decimal] = None
    moving_average: Optional[Decimal] = None
    signal: Optional[Crossover] = None
    decision: Optional[TickDecision] = None
    error: Optional[Exception] = None


def _utc_now() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


class StrategyLoop:
    """Run the SMA scalping strategy for one pair.

    Parameters
    ----------
    config : Config
        Strategy and pair configuration.
    feed : PriceFeed
        Source of prices.
    execution : ExecutionPort, optional
        Where swaps go.  Defaults to a `DryRunExecution` booking on the
        loop's simulated ledger.
    ledger : SimulatedLedger, optional
        Simulated balances.  Created from `strategy.starting_balance`
        when the default dry‑run execution is used.
    reporter : StatusReporter, optional
        Status line coalescing.
    sleep : callable, optional
        ``await sleep(seconds)`` between cycles.  Defaults to waiting on
        the stop signal with a timeout, so `stop()` cuts the wait short.
    clock : callable, optional
        Returns the timestamp recorded on trades and on the equity curve.
        Read after each fetch, so a replay clock sees the current row.
    """

    def __init__(
        self,
        config: Config,
        feed: PriceFeed,
        execution: Optional[ExecutionPort] = None,
        *,
        ledger: Optional[SimulatedLedger] = None,
        reporter: Optional[StatusReporter] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Callable[[], pd.Timestamp] = _utc_now,
    ) -> None:
        self.config = config
        self.strategy = config.strategy
        self.feed = feed
        if execution is None:
            if ledger is None:
                ledger = SimulatedLedger(config.pair.quote, config.pair.base, self.strategy.starting_balance)
            execution = DryRunExecution(config.pair, ledger)
        self.ledger = ledger
        self.execution = execution
        self.reporter = reporter or StatusReporter(self.strategy.profit_log_threshold)
        self.history = PriceHistory(self.strategy.window)
        self.positions = PositionManager(
            self.strategy, config.pair, execution, ledger=ledger, reporter=self.reporter
        )
        self.clock = clock
        self._sleep = sleep or self._wait_for_stop
        self._stop = asyncio.Event()
        self.cycles = 0
        self.errors = 0
        # Starts at the first fetched price
        self.equity_curve: List[EquityPoint] = []

    @property
    def trades(self) -> List[Trade]:
        return self.positions.trades

    def equity(self) -> Decimal:
        """Realized quote equity: the ledger balance, or starting balance plus P&L."""
        if self.ledger is not None:
            return self.ledger.quote_balance
        return self.strategy.starting_balance + sum((t.pnl for t in self.trades), Decimal(0))

    def stop(self) -> None:
        """Ask the loop to stop before its next cycle."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def _wait_for_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _fetch_price(self) -> Decimal:
        try:
            return await asyncio.wait_for(self.feed.fetch_price(), timeout=self.strategy.call_timeout)
        except asyncio.TimeoutError as exc:
            raise FeedError(f"Price feed timed out after {self.strategy.call_timeout}s") from exc

    async def run_cycle(self) -> CycleResult:
        """Fetch one price and act on it.  Never raises for cycle errors."""
        result = CycleResult()
        try:
            price = await self._fetch_price()
            if not self.equity_curve:
                self.equity_curve.append(EquityPoint(self.clock(), self.equity()))
            self.history.append(price)
            result.price = price
            result.moving_average = self.history.moving_average()
            if not self.history.is_ready:
                self.reporter.report(
                    "Waiting for enough data...",
                    f"({len(self.history)}/{self.history.capacity} samples)",
                )
                return result
            result.signal = classify(self.history.previous, price, result.moving_average)
            result.decision = await self.positions.on_tick(
                price, result.signal, result.moving_average, when=self.clock()
            )
            if result.decision.trade is not None:
                self.equity_curve.append(EquityPoint(result.decision.trade.exit_time, self.equity()))
        except DexScalpError as exc:
            self.errors += 1
            result.error = exc
            logger.error("Error: %s", exc)
        except Exception as exc:
            self.errors += 1
            result.error = exc
            logger.exception("Unexpected error in strategy cycle")
        finally:
            self.cycles += 1
        return result

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Run cycles until stopped or `max_cycles` cycles have completed."""
        logger.info(
            "Starting SMA(%d) loop for %s (poll every %ss)",
            self.strategy.window,
            self.config.pair.name,
            self.strategy.poll_interval,
        )
        completed = 0
        while not self._stop.is_set():
            await self.run_cycle()
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            if self._stop.is_set():
                break
            await self._sleep(self.strategy.poll_interval)
        logger.info("Strategy loop stopped after %d cycles (%d errors)", self.cycles, self.errors)
