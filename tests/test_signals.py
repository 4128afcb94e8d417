import os
import sys
from decimal import Decimal

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dexscalp.strategy.signals import Crossover, classify

import unittest


class TestCrossover(unittest.TestCase):
    def test_crossed_up(self) -> None:
        self.assertIs(classify(Decimal(9), Decimal(11), Decimal(10)), Crossover.CROSSED_UP)

    def test_already_above_does_not_retrigger(self) -> None:
        self.assertIs(classify(Decimal(11), Decimal(12), Decimal(10)), Crossover.NONE)

    def test_crossed_down(self) -> None:
        self.assertIs(classify(Decimal(11), Decimal(9), Decimal(10)), Crossover.CROSSED_DOWN)

    def test_staying_below(self) -> None:
        self.assertIs(classify(Decimal(8), Decimal(9), Decimal(10)), Crossover.NONE)

    def test_price_equal_to_average_is_not_above(self) -> None:
        # From the average upwards is a cross up
        self.assertIs(classify(Decimal(10), Decimal(11), Decimal(10)), Crossover.CROSSED_UP)
        # Falling onto the average is a cross down
        self.assertIs(classify(Decimal(11), Decimal(10), Decimal(10)), Crossover.CROSSED_DOWN)
        # Rising onto the average is not a cross up
        self.assertIs(classify(Decimal(9), Decimal(10), Decimal(10)), Crossover.NONE)

    def test_undefined_average_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            classify(Decimal(9), Decimal(11), None)


if __name__ == '__main__':
    unittest.main()
