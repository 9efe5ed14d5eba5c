#!filepath: marketsim/config/calendar_config.py
from datetime import time

from pydantic import BaseModel, Field


class CalendarConfig(BaseModel):
    """
    Trading window（weekday: Monday=0 … Sunday=6）

    Default: Monday–Friday, 08:30–15:00 Chicago time.
    """
    timezone: str = "America/Chicago"
    first_day: int = Field(0, ge=0, le=6)
    last_day: int = Field(4, ge=0, le=6)
    open_time: time = time(8, 30)
    close_time: time = time(15, 0)
