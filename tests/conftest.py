# tests/conftest.py
from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

import pytest
from loguru import logger

from marketsim.backtest.core.bar import Bar, PriceSeries
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.exchange import Exchange
from marketsim.backtest.core.ledger import Account, Broker
from marketsim.utils.datetime_utils import DateTimeUtils


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


# 2009-01-05 = Monday, 2009-01-10 = Saturday (Chicago)
@pytest.fixture(scope="session")
def at() -> Callable[[str, str], int]:
    """at("20090105", "083000") -> epoch seconds, Chicago wall clock."""

    def _at(day: str, clock: str = "083000") -> int:
        return DateTimeUtils.bar_timestamp(day, clock)

    return _at


@pytest.fixture
def calendar() -> TradingCalendar:
    return TradingCalendar()


@pytest.fixture
def make_series() -> Callable[[Sequence[Tuple[int, float]]], PriceSeries]:
    """[(ts, close), ...] -> PriceSeries with flat bars (o = h = l = c)."""

    def _make(points: Sequence[Tuple[int, float]]) -> PriceSeries:
        return PriceSeries(Bar(ts, px, px, px, px) for ts, px in points)

    return _make


@pytest.fixture
def make_account(make_series):
    """
    Factory fixture: in-memory Exchange + Broker + Account.

    Usage:
        acct = make_account({"AAA": [(ts, 10.0), ...]}, cash=1000.0)
        acct = make_account(prices, cash=1000.0, commission=0.0)
    """

    def _make(
        prices: Dict[str, List[Tuple[int, float]]],
        cash: float = 10_000.0,
        commission: float = 7.0,
        sell_commission: float | None = None,
    ) -> Account:
        exchange = Exchange()
        for ticker, points in prices.items():
            exchange.install(ticker, make_series(points))
        broker = Broker(exchange, commission, sell_commission)
        return broker.new_account(cash)

    return _make
