#!filepath: tests/backtest/core/test_price_series.py
from __future__ import annotations

import random

import pandas as pd
import pyarrow as pa
import pytest

from marketsim.backtest.core.bar import Bar, PriceSeries, SearchPolicy


def _linear_at_or_before(keys, ts):
    found = None
    for i, k in enumerate(keys):
        if k <= ts:
            found = i
    return found


def _linear_at_or_after(keys, ts):
    for i, k in enumerate(keys):
        if k >= ts:
            return i
    return None


@pytest.fixture
def minute_series(make_series):
    # 1000 bars, 60s apart, starting at an arbitrary epoch
    return make_series([(1_231_165_800 + 60 * i, 100.0 + i) for i in range(1000)])


# ============================================================
# boundaries
# ============================================================
def test_empty_series_returns_none():
    s = PriceSeries()
    assert not s
    assert s.search(123) is None
    assert s.search(123, SearchPolicy.AT_OR_AFTER) is None
    assert s.first is None and s.last is None


def test_before_first_bar(minute_series):
    first = minute_series.first
    assert minute_series.search(first.ts - 1) is None
    assert minute_series.search(first.ts - 1, SearchPolicy.AT_OR_AFTER) == first


def test_after_last_bar(minute_series):
    last = minute_series.last
    assert minute_series.search(last.ts + 10_000) == last
    assert minute_series.search(last.ts + 1, SearchPolicy.AT_OR_AFTER) is None
    assert minute_series.search(last.ts, SearchPolicy.AT_OR_AFTER) == last


def test_exact_match_returns_that_bar(minute_series):
    b = minute_series[417]
    assert minute_series.search(b.ts) is b
    assert minute_series.search(b.ts, SearchPolicy.AT_OR_AFTER) is b


def test_between_bars(minute_series):
    b0, b1 = minute_series[10], minute_series[11]
    assert minute_series.search(b0.ts + 30) is b0
    assert minute_series.search(b0.ts + 30, SearchPolicy.AT_OR_AFTER) is b1


def test_single_bar(make_series):
    s = make_series([(100, 5.0)])
    assert s.search(99) is None
    assert s.search(100).close == 5.0
    assert s.search(1_000).close == 5.0
    assert s.search(99, SearchPolicy.AT_OR_AFTER).close == 5.0


# ============================================================
# agreement with a linear scan
# ============================================================
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_irregular_spacing_matches_linear_scan(make_series, seed):
    rng = random.Random(seed)
    keys, t = [], 0
    for _ in range(300):
        # mostly dense with occasional large gaps (nights, weekends)
        t += rng.choice([60, 60, 60, 120, 3_600, 63_000, 235_800])
        keys.append(t)
    s = make_series([(k, float(i)) for i, k in enumerate(keys)])

    for _ in range(500):
        q = rng.randint(keys[0] - 1_000, keys[-1] + 1_000)
        assert s.search_index(q) == _linear_at_or_before(keys, q)
        assert s.search_index(q, SearchPolicy.AT_OR_AFTER) == _linear_at_or_after(keys, q)


def test_pathological_spacing_terminates(make_series):
    # one huge gap skews every interpolation probe toward the low end
    keys = list(range(0, 500)) + [10**12]
    s = make_series([(k, 1.0) for k in keys])
    for q in (1, 250, 499, 500, 10**11, 10**12 - 1):
        assert s.search_index(q) == _linear_at_or_before(keys, q)


# ============================================================
# construction
# ============================================================
def test_from_records_uses_wall_clock(at):
    s = PriceSeries.from_records(
        [
            {"date": "20090105", "time": "083000", "open": 1, "high": 2, "low": 0.5, "close": 1.5},
            {"date": "20090105", "time": 83100, "open": 1.5, "high": 2, "low": 1, "close": 1.8},
        ]
    )
    assert s.timestamps == (at("20090105", "083000"), at("20090105", "083100"))
    assert s[1] == Bar(at("20090105", "083100"), 1.5, 2.0, 1.0, 1.8)


def test_from_frame_and_arrow_agree(at):
    df = pd.DataFrame(
        {
            "ts": [at("20090105"), at("20090106")],
            "open": [1.0, 2.0],
            "high": [1.0, 2.0],
            "low": [1.0, 2.0],
            "close": [1.0, 2.0],
        }
    )
    a = PriceSeries.from_frame(df)
    b = PriceSeries.from_arrow(pa.Table.from_pandas(df, preserve_index=False))
    assert list(a) == list(b)
    assert a.last.close == 2.0
