import os
import sys
from decimal import Decimal

# Ensure the project root (one level above `tests`) is on sys.path so that
# `dexscalp` can be imported when running tests directly via `python`.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dexscalp.errors import FeedError
from dexscalp.strategy.indicators import PriceHistory

import unittest


class TestPriceHistory(unittest.TestCase):
    def test_average_undefined_below_window(self) -> None:
        history = PriceHistory(window=3)
        self.assertIsNone(history.moving_average())
        history.append(Decimal(10))
        history.append(Decimal(20))
        self.assertIsNone(history.moving_average())

    def test_average_and_eviction(self) -> None:
        history = PriceHistory(window=3)
        for price in (10, 20, 30):
            history.append(Decimal(price))
        self.assertEqual(history.moving_average(), Decimal(20))

        history.append(Decimal(40))
        # Capacity is window + 1, so 10 is still kept as the previous sample
        self.assertEqual(history.to_list(), [Decimal(10), Decimal(20), Decimal(30), Decimal(40)])
        self.assertEqual(history.moving_average(), Decimal(30))

        history.append(Decimal(50))
        self.assertEqual(history.to_list(), [Decimal(20), Decimal(30), Decimal(40), Decimal(50)])
        self.assertEqual(len(history), history.capacity)
        self.assertEqual(history.moving_average(), Decimal(40))

    def test_ready_needs_previous_sample(self) -> None:
        history = PriceHistory(window=2)
        history.append(Decimal(1))
        history.append(Decimal(2))
        self.assertIsNotNone(history.moving_average())
        self.assertFalse(history.is_ready)
        history.append(Decimal(3))
        self.assertTrue(history.is_ready)
        self.assertEqual(history.previous, Decimal(2))
        self.assertEqual(history.latest, Decimal(3))

    def test_rejects_degenerate_prices(self) -> None:
        history = PriceHistory(window=3)
        for bad in (Decimal(0), Decimal(-1), None, Decimal("NaN"), "abc"):
            with self.assertRaises(FeedError):
                history.append(bad)
        self.assertEqual(len(history), 0)

    def test_accepts_floats_without_binary_noise(self) -> None:
        history = PriceHistory(window=1)
        history.append(0.1)
        self.assertEqual(history.latest, Decimal("0.1"))


if __name__ == '__main__':
    unittest.main()
