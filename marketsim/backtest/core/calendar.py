from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from marketsim.utils.datetime_utils import DateTimeUtils
from marketsim.utils.errors import ConfigurationError
"""
{#!filepath: marketsim/backtest/core/calendar.py}

TradingCalendar (pure)

Defines WHEN trading is allowed:
- day-of-week window [first_day, last_day]  (Monday=0, contiguous)
- time-of-day window [open_time, close_time] (inclusive)
- both evaluated in one reference timezone

next_trading_instant(ts) is idempotent on valid instants and has no
hidden state. The strategy loop calls it before the first step and
after every increment.
"""


@dataclass(frozen=True)
class TradingCalendar:
    first_day: int = 0
    last_day: int = 4
    open_time: time = time(8, 30)
    close_time: time = time(15, 0)
    timezone: str = "America/Chicago"

    _tz: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not (0 <= self.first_day <= self.last_day <= 6):
            raise ConfigurationError(
                f"invalid trading days window [{self.first_day}, {self.last_day}] "
                "(expect 0 <= first_day <= last_day <= 6)"
            )
        if not self.open_time < self.close_time:
            raise ConfigurationError(
                f"invalid trading hours window [{self.open_time}, {self.close_time}]"
            )
        try:
            tz = ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"unknown timezone: {self.timezone}") from e

        object.__setattr__(self, "_tz", tz)

    @classmethod
    def from_config(cls, cfg) -> "TradingCalendar":
        return cls(
            first_day=cfg.first_day,
            last_day=cfg.last_day,
            open_time=cfg.open_time,
            close_time=cfg.close_time,
            timezone=cfg.timezone,
        )

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    # --------------------------------------------------
    # predicates
    # --------------------------------------------------
    def is_trading_day(self, ts: int) -> bool:
        wd = DateTimeUtils.from_epoch(ts, self._tz).weekday()
        return self.first_day <= wd <= self.last_day

    def is_trading_hours(self, ts: int) -> bool:
        t = DateTimeUtils.from_epoch(ts, self._tz).time()
        return self.open_time <= t <= self.close_time

    def is_trading_instant(self, ts: int) -> bool:
        return self.is_trading_day(ts) and self.is_trading_hours(ts)

    # --------------------------------------------------
    # transitions
    # --------------------------------------------------
    def next_trading_instant(self, ts: int) -> int:
        local = DateTimeUtils.from_epoch(ts, self._tz)
        day = local.date()
        wd = local.weekday()
        t = local.time()

        if self.first_day <= wd <= self.last_day:
            if t < self.open_time:
                return DateTimeUtils.at(day, self.open_time, self._tz)
            if t <= self.close_time:
                return int(ts)

            # after close
            if wd == self.last_day:
                days = 7 - wd + self.first_day
            else:
                days = 1
        elif wd < self.first_day:
            days = self.first_day - wd
        else:
            days = 7 - wd + self.first_day

        return DateTimeUtils.at(DateTimeUtils.add_days(day, days), self.open_time, self._tz)

    def instants(self, start: int, end: int, step: int) -> Iterator[int]:
        """
        Deterministic clock over valid trading instants in [start, end].
        """
        if step <= 0:
            raise ConfigurationError(f"step must be > 0, got {step}")

        t = self.next_trading_instant(start)
        while t <= end:
            yield t
            t = self.next_trading_instant(t + step)
