# marketsim/backtest/data/price_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from marketsim import logs
from marketsim.backtest.core.bar import PriceSeries


class MappingPriceLoader:
    """
    In-memory loader.

    Values may be a PriceSeries, a pandas DataFrame, a pyarrow Table or
    a list of {date, time, open, high, low, close} records.
    Unknown ticker -> KeyError (Exchange.load reports False).
    """

    def __init__(self, sources: Mapping[str, Any], tz: ZoneInfo | None = None) -> None:
        self._sources = dict(sources)
        self._tz = tz

    def __call__(self, ticker: str) -> PriceSeries:
        src = self._sources[ticker]

        if isinstance(src, PriceSeries):
            return src
        if isinstance(src, pd.DataFrame):
            return PriceSeries.from_frame(src, self._tz)
        if isinstance(src, pa.Table):
            return PriceSeries.from_arrow(src, self._tz)
        return PriceSeries.from_records(src, self._tz)


class ParquetPriceLoader:
    """
    Parquet loader（<root>/<TICKER>.parquet）

    Schema:
      - ts (epoch seconds) OR date (YYYYMMDD) + time (HHMMSS)
      - open / high / low / close

    Rows must already be ascending by time.
    """

    COLUMNS_TS = ["ts", "open", "high", "low", "close"]
    COLUMNS_DT = ["date", "time", "open", "high", "low", "close"]

    def __init__(self, root: Path | str, tz: ZoneInfo | None = None) -> None:
        self.root = Path(root)
        self._tz = tz

    def path_for(self, ticker: str) -> Path:
        return self.root / f"{ticker}.parquet"

    def __call__(self, ticker: str) -> PriceSeries:
        path = self.path_for(ticker)
        if not path.exists():
            raise FileNotFoundError(f"price history not found: {path}")

        names = pq.read_schema(path).names
        columns = self.COLUMNS_TS if "ts" in names else self.COLUMNS_DT
        missing = [c for c in columns if c not in names]
        if missing:
            raise ValueError(f"[ParquetPriceLoader] missing columns={missing} in {path}")

        table = pq.read_table(path, columns=columns)
        logs.debug(f"[ParquetPriceLoader] read ticker={ticker} rows={table.num_rows}")
        return PriceSeries.from_arrow(table, self._tz)
