from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from marketsim import logs
from marketsim.backtest.core.bar import Bar, PriceSeries, SearchPolicy
"""
{#!filepath: marketsim/backtest/core/exchange.py}

Exchange (ticker → PriceSeries registry)

Contract:
- load(ticker) / unload(ticker) are the ONLY mutations; both report success.
- quote / bar expose read access; "no data" is None, never a zero-price Bar.
- The mapping is lock-guarded; PriceSeries objects are immutable and shared.

Loading is delegated to an injected loader: ticker -> PriceSeries.
A loader signals an unavailable ticker with FileNotFoundError or KeyError.
"""

PriceSeriesLoader = Callable[[str], PriceSeries]


class Exchange:
    def __init__(self, loader: Optional[PriceSeriesLoader] = None):
        self._loader = loader
        self._series: Dict[str, PriceSeries] = {}
        self._lock = threading.RLock()

    # --------------------------------------------------
    # ownership map
    # --------------------------------------------------
    def load(self, ticker: str) -> bool:
        with self._lock:
            if ticker in self._series:
                return True

            if self._loader is None:
                logs.warning(f"[Exchange] no loader configured, cannot load ticker={ticker}")
                return False

            try:
                series = self._loader(ticker)
            except (FileNotFoundError, KeyError) as e:
                logs.warning(f"[Exchange] ticker unavailable ticker={ticker} reason={e}")
                return False

            self._series[ticker] = series
            logs.debug(f"[Exchange] loaded ticker={ticker} bars={len(series)}")
            return True

    def unload(self, ticker: str) -> bool:
        with self._lock:
            if self._series.pop(ticker, None) is None:
                return False
            logs.debug(f"[Exchange] unloaded ticker={ticker}")
            return True

    def install(self, ticker: str, series: PriceSeries) -> None:
        """Register an already-built series (replaces any loaded one)."""
        with self._lock:
            self._series[ticker] = series

    def is_loaded(self, ticker: str) -> bool:
        with self._lock:
            return ticker in self._series

    @property
    def tickers(self) -> List[str]:
        with self._lock:
            return sorted(self._series)

    # --------------------------------------------------
    # read access
    # --------------------------------------------------
    def series(self, ticker: str) -> Optional[PriceSeries]:
        with self._lock:
            return self._series.get(ticker)

    def bar(self, ticker: str, ts: int) -> Optional[Bar]:
        s = self.series(ticker)
        if s is None:
            return None
        return s.search(ts, SearchPolicy.AT_OR_BEFORE)

    def quote(self, ticker: str, ts: int) -> Optional[float]:
        b = self.bar(ticker, ts)
        return None if b is None else b.close
