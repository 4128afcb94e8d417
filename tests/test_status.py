import os
import sys
from decimal import Decimal

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dexscalp.reporting.status import StatusReporter

import unittest


class TestStatusReporter(unittest.TestCase):
    def test_identical_statuses_are_emitted_once(self) -> None:
        reporter = StatusReporter()
        with self.assertLogs("dexscalp.reporting.status", level="INFO") as logs:
            emitted = [reporter.report("Waiting for buy signal...") for _ in range(5)]
            emitted.append(reporter.report("Bought at 100"))
            emitted.append(reporter.report("Waiting for buy signal..."))
        self.assertEqual(emitted, [True, False, False, False, False, True, True])
        self.assertEqual(len(logs.output), 3)

    def test_detail_is_appended(self) -> None:
        reporter = StatusReporter()
        with self.assertLogs("dexscalp.reporting.status", level="INFO") as logs:
            reporter.report("Waiting for enough data...", "(1/4 samples)")
            # Only the status decides whether a line is repeated
            reporter.report("Waiting for enough data...", "(2/4 samples)")
        self.assertEqual(len(logs.output), 1)
        self.assertTrue(logs.output[0].endswith("Waiting for enough data... (1/4 samples)"))

    def test_profit_lines_are_coalesced(self) -> None:
        reporter = StatusReporter(threshold=Decimal("0.1"))
        self.assertTrue(reporter.report_profit(Decimal("0.50"), "Profit: 0.50%"))
        # Moved by less than the threshold
        self.assertFalse(reporter.report_profit(Decimal("0.55"), "Profit: 0.55%"))
        self.assertFalse(reporter.report_profit(Decimal("0.41"), "Profit: 0.41%"))
        # Moved by the threshold
        self.assertTrue(reporter.report_profit(Decimal("0.60"), "Profit: 0.60%"))
        self.assertEqual(reporter.last_profit_percent, Decimal("0.60"))

    def test_reset_profit_resumes_emission(self) -> None:
        reporter = StatusReporter()
        reporter.report_profit(Decimal("1.00"), "Profit: 1.00%")
        reporter.reset_profit()
        reporter.report("Sold at 101")
        self.assertTrue(reporter.report_profit(Decimal("1.00"), "Profit: 1.00%"))


if __name__ == '__main__':
    unittest.main()
