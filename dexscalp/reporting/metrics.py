"""
Performance metrics calculations.

This module provides helpers to compute summary statistics from the
trades and equity curve of a dry‑run or replay session.  Values are
returned as plain floats and ints so the result can be written to JSON
directly.
"""

from __future__ import annotations

from collections import Counter
from typing import List
import math

from ..execution.models import EquityPoint, Trade


def compute_metrics(trades: List[Trade], equity_curve: List[EquityPoint]) -> dict:
    """Compute a set of summary statistics for a session.

    Parameters
    ----------
    trades : list of Trade
        Completed round trips.
    equity_curve : list of EquityPoint
        Quote equity at the start of the session and after each trade.

    Returns
    -------
    dict
        Dictionary of performance metrics.
    """
    if not equity_curve:
        return {
            'total_return': 0.0,
            'max_drawdown': 0.0,
            'sharpe': 0.0,
            'win_rate': 0.0,
            'profit_factor': 0.0,
            'avg_trade': 0.0,
            'num_trades': 0,
            'exits': {},
        }

    starting_equity = float(equity_curve[0].equity)
    ending_equity = float(equity_curve[-1].equity)
    total_return = (ending_equity - starting_equity) / starting_equity if starting_equity else 0.0

    # Compute drawdown
    max_equity = starting_equity
    max_drawdown = 0.0
    for point in equity_curve:
        equity = float(point.equity)
        if equity > max_equity:
            max_equity = equity
        drawdown = (max_equity - equity) / max_equity if max_equity else 0.0
        if drawdown > max_drawdown:
            max_drawdown = drawdown

    # Per-trade returns on the quote committed
    returns: List[float] = [float(t.pnl / t.cost) for t in trades if t.cost]
    if returns:
        mean_ret = sum(returns) / len(returns)
        variance = sum((r - mean_ret) ** 2 for r in returns) / len(returns)
        std_dev = math.sqrt(variance)
        sharpe = (mean_ret / std_dev) * math.sqrt(len(returns)) if std_dev > 0 else 0.0
    else:
        sharpe = 0.0

    # Win rate and profit factor
    wins = [float(t.pnl) for t in trades if t.pnl > 0]
    losses = [float(t.pnl) for t in trades if t.pnl < 0]
    win_rate = len(wins) / len(trades) if trades else 0.0
    gross_profit = sum(wins)
    gross_loss = -sum(losses) if losses else 0.0
    profit_factor = gross_profit / gross_loss if gross_loss > 0 else 0.0

    avg_trade = sum(float(t.pnl) for t in trades) / len(trades) if trades else 0.0

    return {
        'total_return': total_return,
        'max_drawdown': max_drawdown,
        'sharpe': sharpe,
        'win_rate': win_rate,
        'profit_factor': profit_factor,
        'avg_trade': avg_trade,
        'num_trades': len(trades),
        'exits': dict(Counter(t.reason.value for t in trades)),
    }
