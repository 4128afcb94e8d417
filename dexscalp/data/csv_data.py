"""
CSV price replay.

This module provides a price feed that replays recorded prices from a
CSV file, one per cycle.  It lets the strategy loop run offline
against a captured session.  The expected schema is:

```
time,price
2024-05-01T10:00:00Z,1.2345
```

Only the `price` column is required; a `close` column is accepted in
its place so that OHLC exports can be replayed directly.  Additional
columns are ignored.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import pandas as pd

from ..errors import FeedError


class CSVPriceFeed:
    """Replay prices from a CSV file.

    Parameters
    ----------
    csv_path : str
        Path to the CSV file.
    """

    def __init__(self, csv_path: str) -> None:
        self.csv_path = Path(csv_path)
        self.prices = self._load()
        self._cursor = 0

    def _load(self) -> pd.Series:
        if not self.csv_path.exists():
            raise FileNotFoundError(f"CSV price file not found: {self.csv_path}")
        # Keep prices as text so that Decimal sees exactly what was recorded
        df = pd.read_csv(self.csv_path, dtype=str)
        df.columns = [c.strip().lower() for c in df.columns]
        column = "price" if "price" in df.columns else "close" if "close" in df.columns else None
        if column is None:
            raise ValueError(
                f"Unrecognized CSV format in {self.csv_path}. "
                f"Expected a 'price' or 'close' column, found {list(df.columns)}"
            )
        if "time" in df.columns:
            index = pd.DatetimeIndex(pd.to_datetime(df["time"], utc=True, errors="coerce"))
            return pd.Series(df[column].to_numpy(), index=index, name="price")
        return df[column].rename("price").reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self.prices)

    @property
    def last_timestamp(self) -> Optional[pd.Timestamp]:
        """Timestamp of the last replayed row, if the file has a `time` column."""
        if self._cursor == 0 or not isinstance(self.prices.index, pd.DatetimeIndex):
            return None
        ts = self.prices.index[self._cursor - 1]
        return None if pd.isna(ts) else ts

    async def fetch_price(self) -> Decimal:
        if self.exhausted:
            raise FeedError(f"Replay of {self.csv_path} is exhausted")
        raw = self.prices.iloc[self._cursor]
        self._cursor += 1
        if pd.isna(raw):
            raise FeedError(f"Missing price on row {self._cursor}")
        try:
            return Decimal(str(raw).strip())
        except InvalidOperation as exc:
            raise FeedError(f"Unparsable price {raw!r} on row {self._cursor}") from exc
