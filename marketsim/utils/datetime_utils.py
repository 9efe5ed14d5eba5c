#!filepath: marketsim/utils/datetime_utils.py
from __future__ import annotations

from datetime import datetime, date, time, timedelta
from typing import Union
from zoneinfo import ZoneInfo

TimeLike = Union[int, float, str, datetime]

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3_600
SECONDS_PER_DAY = 86_400


class DateTimeUtils:
    """
    Simulation time helpers.

    Simulation time is always an int: epoch seconds.
    Wall-clock interpretation (trading windows, bar date/time fields)
    happens in a reference timezone, Chicago by default.
    """

    REF_TZ = ZoneInfo("America/Chicago")

    _STR_FORMATS = (
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
        "%Y-%m-%dT%H:%M:%S",
        "%Y/%m/%d %H:%M:%S",
        "%Y%m%d%H%M%S",
        "%Y-%m-%d",
        "%Y%m%d",
    )

    # ================================================================
    # parse(): int / str / datetime → aware datetime
    # ================================================================
    @classmethod
    def parse(cls, ts: TimeLike, tz: ZoneInfo | None = None) -> datetime:
        tz = tz or cls.REF_TZ

        if isinstance(ts, datetime):
            return ts.astimezone(tz) if ts.tzinfo else ts.replace(tzinfo=tz)

        if isinstance(ts, (int, float)):
            return datetime.fromtimestamp(int(ts), tz)

        if isinstance(ts, str):
            s = ts.strip()
            for fmt in cls._STR_FORMATS:
                try:
                    return datetime.strptime(s, fmt).replace(tzinfo=tz)
                except ValueError:
                    continue
            raise ValueError(f"cannot parse time string: {ts!r}")

        raise TypeError(f"unsupported time type: {type(ts)}")

    @classmethod
    def to_epoch(cls, ts: TimeLike, tz: ZoneInfo | None = None) -> int:
        """Any supported time → epoch seconds."""
        if isinstance(ts, int):
            return ts
        return int(cls.parse(ts, tz).timestamp())

    @classmethod
    def from_epoch(cls, ts: int, tz: ZoneInfo | None = None) -> datetime:
        return datetime.fromtimestamp(int(ts), tz or cls.REF_TZ)

    # ================================================================
    # Price-history record fields: date=YYYYMMDD, time=HHMMSS
    # ================================================================
    @classmethod
    def bar_timestamp(
        cls,
        day: Union[str, int],
        clock: Union[str, int],
        tz: ZoneInfo | None = None,
    ) -> int:
        d = str(day).strip()
        c = str(clock).strip().zfill(6)
        if len(d) != 8 or not d.isdigit():
            raise ValueError(f"bad record date: {day!r}")
        if len(c) != 6 or not c.isdigit():
            raise ValueError(f"bad record time: {clock!r}")

        local = datetime(
            int(d[:4]), int(d[4:6]), int(d[6:8]),
            int(c[:2]), int(c[2:4]), int(c[4:6]),
            tzinfo=tz or cls.REF_TZ,
        )
        return int(local.timestamp())

    # ---------------------------------------------------------------
    # wall-clock helpers used by the trading calendar
    # ---------------------------------------------------------------
    @classmethod
    def at(cls, d: date, t: time, tz: ZoneInfo | None = None) -> int:
        """Epoch seconds of local date d at local time t."""
        return int(datetime.combine(d, t, tzinfo=tz or cls.REF_TZ).timestamp())

    @classmethod
    def seconds_of_day(cls, t: time) -> int:
        return t.hour * SECONDS_PER_HOUR + t.minute * SECONDS_PER_MINUTE + t.second

    @classmethod
    def add_days(cls, d: date, days: int) -> date:
        return d + timedelta(days=days)

    @classmethod
    def fmt(cls, ts: int, tz: ZoneInfo | None = None) -> str:
        return cls.from_epoch(ts, tz).strftime("%Y-%m-%d %H:%M:%S")
