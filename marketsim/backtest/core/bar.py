from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, TYPE_CHECKING
from zoneinfo import ZoneInfo

from marketsim.utils.datetime_utils import DateTimeUtils

if TYPE_CHECKING:
    import pandas as pd
    import pyarrow as pa
"""
{#!filepath: marketsim/backtest/core/bar.py}

Bar / PriceSeries

Invariants:
- Bar is an immutable price fact at ts (epoch seconds).
- PriceSeries is ascending by ts and read-only after construction.
- Ordering and uniqueness of input records are assumed, not verified.

Lookup never fabricates a Bar: out-of-range queries return None.
"""


@dataclass(frozen=True)
class Bar:
    ts: int
    open: float
    high: float
    low: float
    close: float

    def __str__(self) -> str:
        return f"{self.ts} : {DateTimeUtils.fmt(self.ts)} - {self.close}"


class SearchPolicy(str, Enum):
    AT_OR_BEFORE = "at_or_before"
    AT_OR_AFTER = "at_or_after"


# interpolation probes before falling back to bisection
_MAX_INTERPOLATION_PROBES = 16


class PriceSeries:
    """
    Time-ascending Bar sequence with interpolation-search lookup.

    Access pattern: many repeated lookups over a narrow moving window
    of densely and roughly uniformly sampled timestamps.
    """

    __slots__ = ("_bars", "_keys")

    def __init__(self, bars: Iterable[Bar] = ()):
        self._bars: tuple[Bar, ...] = tuple(bars)
        self._keys: tuple[int, ...] = tuple(b.ts for b in self._bars)

    # --------------------------------------------------
    # construction from price-history input
    # --------------------------------------------------
    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        tz: ZoneInfo | None = None,
    ) -> "PriceSeries":
        """
        records: {date, time, open, high, low, close}
          date = YYYYMMDD, time = HHMMSS (wall clock in tz)
        """
        return cls(
            Bar(
                ts=DateTimeUtils.bar_timestamp(r["date"], r["time"], tz),
                open=float(r["open"]),
                high=float(r["high"]),
                low=float(r["low"]),
                close=float(r["close"]),
            )
            for r in records
        )

    @classmethod
    def from_frame(cls, df: "pd.DataFrame", tz: ZoneInfo | None = None) -> "PriceSeries":
        """
        DataFrame with either a `ts` column (epoch seconds) or
        `date` + `time` columns, plus open/high/low/close.
        """
        if "ts" in df.columns:
            return cls(
                Bar(int(ts), float(o), float(h), float(l), float(c))
                for ts, o, h, l, c in zip(
                    df["ts"], df["open"], df["high"], df["low"], df["close"]
                )
            )
        return cls.from_records(df.to_dict("records"), tz)

    @classmethod
    def from_arrow(cls, table: "pa.Table", tz: ZoneInfo | None = None) -> "PriceSeries":
        if "ts" in table.schema.names:
            cols = [table[c].to_pylist() for c in ("ts", "open", "high", "low", "close")]
            return cls(
                Bar(int(ts), float(o), float(h), float(l), float(c))
                for ts, o, h, l, c in zip(*cols)
            )
        return cls.from_records(table.to_pylist(), tz)

    # --------------------------------------------------
    # sequence protocol
    # --------------------------------------------------
    def __len__(self) -> int:
        return len(self._bars)

    def __getitem__(self, i: int) -> Bar:
        return self._bars[i]

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars)

    def __bool__(self) -> bool:
        return bool(self._bars)

    def __repr__(self) -> str:
        if not self._bars:
            return "PriceSeries(empty)"
        return f"PriceSeries(n={len(self)}, first={self._keys[0]}, last={self._keys[-1]})"

    @property
    def timestamps(self) -> Sequence[int]:
        return self._keys

    @property
    def first(self) -> Optional[Bar]:
        return self._bars[0] if self._bars else None

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    # --------------------------------------------------
    # lookup
    # --------------------------------------------------
    def search(self, ts: int, policy: SearchPolicy = SearchPolicy.AT_OR_BEFORE) -> Optional[Bar]:
        i = self.search_index(ts, policy)
        return None if i is None else self._bars[i]

    def search_index(self, ts: int, policy: SearchPolicy = SearchPolicy.AT_OR_BEFORE) -> Optional[int]:
        keys = self._keys
        n = len(keys)
        if n == 0:
            return None

        ts = int(ts)
        lo, hi = 0, n - 1

        # out-of-range / boundary cases
        if ts < keys[lo]:
            return None if policy is SearchPolicy.AT_OR_BEFORE else lo
        if ts >= keys[hi]:
            if policy is SearchPolicy.AT_OR_BEFORE or ts == keys[hi]:
                return hi
            return None

        # bracket: keys[lo] <= ts < keys[hi]
        probes = 0
        while hi - lo > 1:
            if probes >= _MAX_INTERPOLATION_PROBES:
                # irregular spacing: finish with bisection on the bracket
                lo = bisect_right(keys, ts, lo, hi) - 1
                hi = lo + 1
                break

            k_lo, k_hi = keys[lo], keys[hi]
            pos = lo + (ts - k_lo) * (hi - lo) // (k_hi - k_lo)

            # probe strictly inside (lo, hi) so the bracket always shrinks
            if pos <= lo:
                pos = lo + 1
            elif pos >= hi:
                pos = hi - 1

            if keys[pos] <= ts:
                lo = pos
            else:
                hi = pos
            probes += 1

        if policy is SearchPolicy.AT_OR_BEFORE or keys[lo] == ts:
            return lo
        return hi
