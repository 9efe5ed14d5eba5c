# marketsim/backtest/strategy/lucky_table.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from marketsim.utils.errors import ConfigurationError


class LuckyPercentileTable:
    """
    Lucky percentile table

    rows    : percentile rank (ascending, e.g. 0..100)
    columns : hold duration in seconds (ascending)
    values  : required gain multiple (price / entry) at that rank & duration

    get() interpolates bilinearly; queries outside the grid are clamped
    to the nearest edge.
    """

    def __init__(
        self,
        percentiles: Sequence[float],
        hold_durations: Sequence[float],
        values: Sequence[Sequence[float]],
    ) -> None:
        p = np.asarray(percentiles, dtype=float)
        h = np.asarray(hold_durations, dtype=float)
        v = np.asarray(values, dtype=float)

        if p.ndim != 1 or h.ndim != 1 or p.size == 0 or h.size == 0:
            raise ConfigurationError("[LuckyPercentileTable] empty percentile or hold-duration axis")
        if v.shape != (p.size, h.size):
            raise ConfigurationError(
                f"[LuckyPercentileTable] values shape {v.shape} != ({p.size}, {h.size})"
            )
        if np.any(np.diff(p) <= 0) or np.any(np.diff(h) <= 0):
            raise ConfigurationError("[LuckyPercentileTable] axes must be strictly ascending")
        if not (np.all(np.isfinite(p)) and np.all(np.isfinite(h)) and np.all(np.isfinite(v))):
            raise ConfigurationError("[LuckyPercentileTable] table contains non-finite entries")

        self._p = p
        self._h = h
        self._v = v

    # --------------------------------------------------
    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "LuckyPercentileTable":
        """index = percentiles, columns = hold durations (seconds)."""
        try:
            percentiles = [float(x) for x in df.index]
            durations = [float(x) for x in df.columns]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"[LuckyPercentileTable] non-numeric axis: {e}") from e
        return cls(percentiles, durations, df.to_numpy(dtype=float))

    @classmethod
    def from_csv(cls, path: Path | str) -> "LuckyPercentileTable":
        """First column = percentile, header row = hold durations."""
        return cls.from_frame(pd.read_csv(path, index_col=0))

    @property
    def percentiles(self) -> np.ndarray:
        return self._p

    @property
    def hold_durations(self) -> np.ndarray:
        return self._h

    # --------------------------------------------------
    def get(self, percentile: float, hold: float, interpolate: bool = True) -> float:
        if not interpolate:
            i = max(int(np.searchsorted(self._p, percentile, side="right")) - 1, 0)
            j = max(int(np.searchsorted(self._h, hold, side="right")) - 1, 0)
            return float(self._v[i, j])

        # interpolate along hold duration for every row, then across percentiles
        by_row = np.array([np.interp(hold, self._h, row) for row in self._v])
        return float(np.interp(percentile, self._p, by_row))
