"""
Report generation utilities.

This module turns the results of a session into human‑readable
artefacts: CSV files of trades and equity curve, a JSON summary of
performance metrics and a PNG chart of the equity curve.
"""

from __future__ import annotations

import os
import json
from typing import List
import pandas as pd
import matplotlib

# Use non‑interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..execution.models import EquityPoint, Trade
from .metrics import compute_metrics


def trades_frame(trades: List[Trade]) -> pd.DataFrame:
    """Tabulate completed trades; amounts are kept as exact decimal strings.

    `price_change_pct` is the move of the quoted price between entry and
    exit, which the exit triggers compare against.  When the pair is quoted
    base per quote it moves against the position, so the realized result
    is only in `pnl`.
    """
    columns = [
        'timestamp_entry', 'timestamp_exit', 'pair', 'quantity', 'entry', 'exit',
        'cost', 'proceeds', 'pnl', 'price_change_pct', 'reason',
    ]
    rows = [
        {
            'timestamp_entry': t.entry_time.isoformat() if t.entry_time is not None else '',
            'timestamp_exit': t.exit_time.isoformat(),
            'pair': t.pair,
            'quantity': str(t.quantity),
            'entry': str(t.entry_price),
            'exit': str(t.exit_price),
            'cost': str(t.cost),
            'proceeds': str(t.proceeds),
            'pnl': str(t.pnl),
            'price_change_pct': f"{t.profit * 100:.2f}",
            'reason': t.reason.value,
        }
        for t in trades
    ]
    return pd.DataFrame(rows, columns=columns)


def generate_session_report(
    trades: List[Trade],
    equity_curve: List[EquityPoint],
    out_dir: str = "results",
) -> dict:
    """Generate report files for a session and return its metrics.

    Creates the output directory if it does not exist and writes the
    following files:

    - `trades.csv` – detailed list of trades
    - `equity_curve.csv` – quote equity after each trade
    - `summary.json` – performance metrics
    - `equity_curve.png` – line chart of the equity curve
    """
    os.makedirs(out_dir, exist_ok=True)

    trades_frame(trades).to_csv(os.path.join(out_dir, 'trades.csv'), index=False)

    # Equity curve CSV
    times = pd.DatetimeIndex([pt.timestamp for pt in equity_curve])
    equity = [float(pt.equity) for pt in equity_curve]
    df_eq = pd.DataFrame({'timestamp': [ts.isoformat() for ts in times], 'equity': equity})
    df_eq.to_csv(os.path.join(out_dir, 'equity_curve.csv'), index=False)

    # Summary JSON
    metrics = compute_metrics(trades, equity_curve)
    with open(os.path.join(out_dir, 'summary.json'), 'w', encoding='utf-8') as fh:
        json.dump(metrics, fh, indent=2, ensure_ascii=False)

    # Equity curve plot
    fig, ax = plt.subplots(figsize=(10, 4))
    if equity:
        ax.step(times, equity, where='post', linewidth=1.5)
        ax.set_title('Equity Curve')
        ax.set_xlabel('Time')
        ax.set_ylabel('Equity')
        fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(os.path.join(out_dir, 'equity_curve.png'))
    plt.close(fig)
    return metrics
