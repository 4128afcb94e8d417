import asyncio
import os
import sys
from decimal import Decimal

import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dexscalp.config.schema import CapitalPolicy, Config, PairConfig, PriceConvention, StrategyConfig
from dexscalp.errors import ExecutionError, FeedError
from dexscalp.execution.engine import StrategyLoop
from dexscalp.execution.models import PositionState
from dexscalp.utils.fixedpoint import Asset

import unittest


def _config(**overrides) -> Config:
    params = dict(
        window=3,
        profit_target=Decimal("0.01"),
        stop_loss=Decimal("-0.02"),
        slippage_tolerance=Decimal("0.995"),
        poll_interval=5.0,
        capital_policy=CapitalPolicy.FULL_BALANCE,
        starting_balance=Decimal("25"),
        call_timeout=1.0,
    )
    params.update(overrides)
    pair = PairConfig(
        base=Asset("TKN", 8),
        quote=Asset("USDC", 6),
        price_convention=PriceConvention.QUOTE_PER_BASE,
    )
    return Config(strategy=StrategyConfig(**params), pair=pair)


class ListFeed:
    """Price feed returning a fixed sequence; `None` entries raise FeedError."""

    def __init__(self, prices) -> None:
        self.prices = list(prices)
        self.calls = 0

    async def fetch_price(self) -> Decimal:
        self.calls += 1
        price = self.prices.pop(0)
        if price is None:
            raise FeedError("pool not initialized")
        return Decimal(str(price))


class HangingFeed:
    async def fetch_price(self) -> Decimal:
        await asyncio.sleep(10)
        return Decimal(1)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _fixed_clock() -> pd.Timestamp:
    return pd.Timestamp("2024-05-01 10:00", tz="UTC")


class TestStrategyLoop(unittest.IsolatedAsyncioTestCase):
    async def test_one_buy_then_one_sell(self) -> None:
        # The last of window + 1 samples crosses above the average, then +1 %
        feed = ListFeed([10, 10, 10, 12, "12.12"])
        sleep = RecordingSleep()
        loop = StrategyLoop(_config(), feed, sleep=sleep, clock=_fixed_clock)

        results = [await loop.run_cycle() for _ in range(5)]
        actions = [r.decision.action if r.decision else None for r in results]

        self.assertEqual(actions, [None, None, None, "buy", "sell"])
        self.assertIs(loop.positions.position.state, PositionState.FLAT)
        self.assertEqual(len(loop.trades), 1)
        self.assertEqual(loop.trades[0].profit, Decimal("0.01"))
        self.assertEqual(len(loop.equity_curve), 2)
        self.assertEqual(loop.equity_curve[-1].equity, loop.ledger.quote_balance)

    async def test_equity_curve_starts_at_first_price(self) -> None:
        ticks = iter(pd.date_range("2024-05-01 10:00", periods=10, freq="5s", tz="UTC"))
        feed = ListFeed([None, 10, 10])
        loop = StrategyLoop(_config(), feed, sleep=RecordingSleep(), clock=lambda: next(ticks))
        self.assertEqual(loop.equity_curve, [])

        await loop.run_cycle()
        self.assertEqual(loop.equity_curve, [])

        await loop.run_cycle()
        await loop.run_cycle()
        self.assertEqual(len(loop.equity_curve), 1)
        self.assertEqual(loop.equity_curve[0].timestamp, pd.Timestamp("2024-05-01 10:00", tz="UTC"))
        self.assertEqual(loop.equity_curve[0].equity, Decimal("25"))

    async def test_run_sleeps_between_cycles(self) -> None:
        feed = ListFeed([10, 11, 12])
        sleep = RecordingSleep()
        loop = StrategyLoop(_config(), feed, sleep=sleep, clock=_fixed_clock)
        await loop.run(max_cycles=3)
        self.assertEqual(loop.cycles, 3)
        self.assertEqual(sleep.calls, [5.0, 5.0])

    async def test_errors_do_not_stop_the_loop(self) -> None:
        feed = ListFeed([10, None, 0, 10, 10, 12])
        loop = StrategyLoop(_config(), feed, sleep=RecordingSleep(), clock=_fixed_clock)
        with self.assertLogs("dexscalp.execution.engine", level="ERROR"):
            await loop.run(max_cycles=6)
        self.assertEqual(loop.cycles, 6)
        self.assertEqual(loop.errors, 2)
        # Degenerate prices are never stored
        self.assertEqual(loop.history.to_list(), [Decimal(10), Decimal(10), Decimal(10), Decimal(12)])
        self.assertIs(loop.positions.position.state, PositionState.LONG)

    async def test_failed_execution_leaves_state_untouched(self) -> None:
        class Broken:
            async def submit_swap(self, amount_in, min_amount_out, side):
                raise ExecutionError("nonce too low")

        config = _config(capital_policy=CapitalPolicy.FIXED, trade_amount=Decimal("25"))
        loop = StrategyLoop(config, ListFeed([10, 10, 10, 12]), Broken(), sleep=RecordingSleep())
        results = [await loop.run_cycle() for _ in range(4)]
        self.assertIsInstance(results[-1].error, ExecutionError)
        self.assertIs(loop.positions.position.state, PositionState.FLAT)
        self.assertEqual(len(loop.history), 4)

    async def test_feed_timeout_is_a_feed_error(self) -> None:
        loop = StrategyLoop(_config(call_timeout=0.01), HangingFeed(), sleep=RecordingSleep())
        result = await loop.run_cycle()
        self.assertIsInstance(result.error, FeedError)
        self.assertEqual(len(loop.history), 0)

    async def test_stop_before_next_cycle(self) -> None:
        feed = ListFeed([10] * 10)

        class StoppingSleep:
            async def __call__(self, seconds: float) -> None:
                loop.stop()

        loop = StrategyLoop(_config(), feed, sleep=StoppingSleep())
        await loop.run()
        self.assertEqual(loop.cycles, 1)
        self.assertEqual(feed.calls, 1)

    async def test_stop_interrupts_the_poll_interval(self) -> None:
        feed = ListFeed([10] * 10)
        loop = StrategyLoop(_config(poll_interval=60.0), feed)
        asyncio.get_running_loop().call_later(0.05, loop.stop)
        await asyncio.wait_for(loop.run(), timeout=5)
        self.assertTrue(loop.stopping)
        self.assertEqual(loop.cycles, 1)

    async def test_instances_are_independent(self) -> None:
        first = StrategyLoop(_config(), ListFeed([10, 10, 10, 12]), sleep=RecordingSleep())
        second = StrategyLoop(_config(), ListFeed([10, 10, 10, 9]), sleep=RecordingSleep())
        for _ in range(4):
            await first.run_cycle()
            await second.run_cycle()
        self.assertIs(first.positions.position.state, PositionState.LONG)
        self.assertIs(second.positions.position.state, PositionState.FLAT)
        self.assertEqual(second.ledger.quote_balance, Decimal("25"))


if __name__ == '__main__':
    unittest.main()
