"""
Application entry point.

This module defines a simple command‑line interface for running the
SMA scalper in two modes:

- ``dry-run`` polls the configured on‑chain pool and simulates every
  swap on a ledger funded with `strategy.starting_balance`;
- ``replay`` feeds the prices of a CSV file through the same engine
  without sleeping between cycles.

Both modes write a session report when the loop stops (Ctrl+C in
``dry-run``, end of file in ``replay``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import List, Optional

import pandas as pd
from dotenv import load_dotenv

from .config.schema import Config, load_config
from .data.csv_data import CSVPriceFeed
from .data.pool_feed import PoolPriceFeed
from .errors import FeedError
from .execution.engine import StrategyLoop
from .reporting.report import generate_session_report


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


async def _no_sleep(_seconds: float) -> None:
    return None


def build_loop(config: Config) -> StrategyLoop:
    """Wire the feed matching `config.mode` into a strategy loop."""
    if config.mode == 'replay':
        feed = CSVPriceFeed(config.data.csv_path)

        def replay_clock() -> pd.Timestamp:
            return feed.last_timestamp or pd.Timestamp.now(tz="UTC")

        return StrategyLoop(config, feed, sleep=_no_sleep, clock=replay_clock)
    return StrategyLoop(config, PoolPriceFeed(config.pool))


async def run_session(config: Config, out_dir: str, max_cycles: Optional[int] = None) -> dict:
    """Run the loop until it stops, then write the session report."""
    loop = build_loop(config)
    feed = loop.feed
    if isinstance(feed, CSVPriceFeed):
        max_cycles = len(feed) if max_cycles is None else min(max_cycles, len(feed))
    else:
        try:
            await feed.describe_tokens()
        except FeedError as exc:
            logger.error("%s", exc)
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, loop.stop)
        except (NotImplementedError, RuntimeError):
            pass  # signal handlers are unavailable on Windows event loops

    logger.info(
        "Starting %s with SMA for %s (fee tier %s)...",
        config.mode,
        config.pair.name,
        config.strategy.fee_tier,
    )
    try:
        await loop.run(max_cycles=max_cycles)
    finally:
        try:
            metrics = generate_session_report(loop.trades, loop.equity_curve, out_dir=out_dir)
            logger.info(
                "Session finished: %d trades, total return %.2f%%. Report saved to '%s'.",
                metrics['num_trades'],
                metrics['total_return'] * 100,
                out_dir,
            )
        finally:
            if isinstance(feed, PoolPriceFeed):
                await feed.close()
    return metrics


def main(argv: Optional[List[str]] = None) -> None:
    """Parse command‑line arguments and dispatch to the appropriate mode."""
    parser = argparse.ArgumentParser(description="SMA crossover scalper for DEX pools")
    parser.add_argument('mode', choices=['dry-run', 'replay'], help="Operating mode")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('--out-dir', default='results', help="Directory for the session report")
    parser.add_argument('--max-cycles', type=int, default=None, help="Stop after this many cycles")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)
    # Secrets such as the RPC key live in the environment or a .env file
    load_dotenv()

    config = load_config(args.config)
    # Override mode from CLI if provided
    config.mode = args.mode

    try:
        asyncio.run(run_session(config, args.out_dir, args.max_cycles))
    except KeyboardInterrupt:
        logging.info("Interrupted, shutting down.")


if __name__ == '__main__':
    main()
