# marketsim/backtest/strategy/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from marketsim import logs
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.ledger import Account
from marketsim.utils.datetime_utils import DateTimeUtils
from marketsim.utils.errors import ConfigurationError


class Decision(str, Enum):
    """Loop-control result of one decide() call."""
    CONTINUE = "continue"
    ABORT = "abort"


@dataclass(frozen=True)
class RunOutcome:
    steps: int                    # trading instants processed
    last_ts: Optional[int]        # last instant processed (None: window had none)
    aborted: bool = False
    abort_ts: Optional[int] = None


class Strategy(ABC):
    """
    Strategy runtime

    run(start, end, step):
      t = next_trading_instant(start)
      while t <= end:
        amount_per_ticker = cash / n_tickers     (rebalanced every step)
        decide(ticker, t) for ticker in tickers  (fixed order)
        t = next_trading_instant(t + step)

    decide() returns Decision.ABORT to end the run immediately.
    """

    name: str = "strategy"

    def __init__(
        self,
        account: Account,
        tickers: Sequence[str],
        *,
        calendar: Optional[TradingCalendar] = None,
    ) -> None:
        tickers = list(tickers)
        if not tickers:
            raise ConfigurationError(f"[{type(self).__name__}] empty ticker list")

        self.account = account
        self.tickers = tickers
        self.calendar = calendar or TradingCalendar()
        self.amount_per_ticker = account.cash / len(tickers)

    @classmethod
    def from_params(
        cls,
        account: Account,
        tickers: Sequence[str],
        params: Dict[str, Any],
        *,
        calendar: Optional[TradingCalendar] = None,
        **deps: Any,
    ) -> "Strategy":
        """Factory hook: build from an opaque params dict (StrategyConfig.params)."""
        return cls(account, tickers, calendar=calendar, **params)

    # --------------------------------------------------
    @abstractmethod
    def decide(self, ticker: str, ts: int) -> Decision:
        ...

    def run(self, start: int, end: int, step: int) -> RunOutcome:
        if step <= 0:
            raise ConfigurationError(f"step must be > 0, got {step}")
        if end < start:
            raise ConfigurationError(f"end ({end}) precedes start ({start})")

        logs.debug(
            f"[{self.name}] run start={DateTimeUtils.fmt(start, self.calendar.tz)} "
            f"end={DateTimeUtils.fmt(end, self.calendar.tz)} step={step}s tickers={self.tickers}"
        )

        steps = 0
        last_ts: Optional[int] = None

        for t in self.calendar.instants(start, end, step):
            self.amount_per_ticker = self.account.cash / len(self.tickers)
            steps += 1
            last_ts = t

            for ticker in self.tickers:
                if self.decide(ticker, t) is Decision.ABORT:
                    logs.debug(f"[{self.name}] abort ts={t} steps={steps}")
                    return RunOutcome(steps=steps, last_ts=t, aborted=True, abort_ts=t)

        return RunOutcome(steps=steps, last_ts=last_ts)

    def reset(self) -> None:
        """Prepare for another independent trial on the same Account."""
        self.account.reset()
        self.amount_per_ticker = self.account.cash / len(self.tickers)

    # --------------------------------------------------
    def quote(self, ticker: str, ts: int) -> Optional[float]:
        return self.account.broker.quote(ticker, ts)

    def describe(self) -> str:
        return f"{self.name}: tickers={', '.join(self.tickers)}"

    def __str__(self) -> str:
        return f"{self.describe()}\n{self.account}"
