#!filepath: marketsim/config/trial_config.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class TrialConfig(BaseModel):
    """
    One simulated trial.

    start / end are wall-clock strings in the calendar timezone
    (e.g. "2009-01-05 08:30:00").
    """
    tickers: List[str] = Field(..., min_length=1)
    start: Optional[str] = None
    end: Optional[str] = None
    step_seconds: int = Field(60, gt=0)
    initial_cash: float = Field(10_000.0, ge=0)

    # seeded batch trials: random window of this length inside the loaded
    # history (start/end above are ignored); None replays start..end
    period_seconds: Optional[int] = Field(None, gt=0)
    # seeded batch trials: one randomly drawn ticker per trial
    sample_ticker: bool = False

    # <data_dir>/<TICKER>.parquet
    data_dir: str = "data"

    # lucky_indicator only: CSV, index = percentile, columns = hold seconds
    lucky_table: Optional[str] = None
