from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional, Sequence

from marketsim import logs
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.ledger import Account
from marketsim.backtest.strategy.base import Decision, Strategy
from marketsim.utils.errors import ConfigurationError


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"

    @classmethod
    def choose(cls, rng: random.Random) -> "Direction":
        """Draw a direction from a caller-owned random source."""
        return rng.choice([cls.LONG, cls.SHORT])


class Phase(IntEnum):
    FLAT = 0        # not entered yet
    SMALL = 1       # entered, small thresholds
    LARGE = 2       # entered, large risk tier
    DONE = 3        # exited, run aborted


@dataclass(frozen=True)
class ExpectationMeanParams:
    small_gain: float = 0.05
    large_gain: float = 0.10
    small_loss: float = -0.05
    large_loss: float = -0.10

    def __post_init__(self) -> None:
        if not (self.large_loss <= self.small_loss < 0 < self.small_gain <= self.large_gain):
            raise ConfigurationError(
                "expect large_loss <= small_loss < 0 < small_gain <= large_gain, got "
                f"{self.large_loss}/{self.small_loss}/{self.small_gain}/{self.large_gain}"
            )


@dataclass(frozen=True)
class Entry:
    price: float
    ts: int
    shares: int


class ExpectationMean(Strategy):
    """
    Expectation-mean round trip (one per trial)

    FLAT  -> enter (buy_max long / sell_short_max short) every ticker -> SMALL
    SMALL: gain >= small_gain | gain <= large_loss -> exit, ABORT
           gain <= small_loss                       -> LARGE
    LARGE: gain >= large_gain | gain <= large_loss -> exit, ABORT

    gain: long  price / entry - 1
          short entry / price - 1

    Direction is injected; the state machine itself is deterministic.
    """

    name = "expectation_mean"

    def __init__(
        self,
        account: Account,
        tickers: Sequence[str],
        params: ExpectationMeanParams,
        direction: Direction,
        *,
        calendar: Optional[TradingCalendar] = None,
    ) -> None:
        super().__init__(account, tickers, calendar=calendar)
        self.params = params
        self.direction = Direction(direction)

        self.phase = Phase.FLAT
        self.entries: Dict[str, Entry] = {}
        self.exit_ts: Optional[int] = None

    @classmethod
    def from_params(cls, account, tickers, params, *, calendar=None, rng=None, **_deps) -> "ExpectationMean":
        params = dict(params)
        direction = params.pop("direction", None)
        if direction is None:
            direction = Direction.choose(rng or random.Random())
        return cls(account, tickers, ExpectationMeanParams(**params), Direction(direction), calendar=calendar)

    # --------------------------------------------------
    def decide(self, ticker: str, ts: int) -> Decision:
        if self.phase is Phase.DONE:
            return Decision.ABORT

        if self.phase is Phase.FLAT:
            self._enter(ticker, ts)
            if all(t in self.entries for t in self.tickers):
                self.phase = Phase.SMALL
            return Decision.CONTINUE

        gain = self.current_gain(ticker, ts)
        if gain is None:
            return Decision.CONTINUE

        p = self.params
        if self.phase is Phase.SMALL:
            if gain >= p.small_gain or gain <= p.large_loss:
                return self._exit(ts)
            if gain <= p.small_loss:
                logs.debug(f"[{self.name}] ticker={ticker} gain={gain:.4f} -> large tier ts={ts}")
                self.phase = Phase.LARGE
        elif self.phase is Phase.LARGE:
            if gain >= p.large_gain or gain <= p.large_loss:
                return self._exit(ts)

        return Decision.CONTINUE

    def current_gain(self, ticker: str, ts: int) -> Optional[float]:
        entry = self.entries.get(ticker)
        price = self.quote(ticker, ts)
        if entry is None or price is None or price <= 0:
            return None

        if self.direction is Direction.LONG:
            return price / entry.price - 1
        return entry.price / price - 1

    # --------------------------------------------------
    def _enter(self, ticker: str, ts: int) -> None:
        if ticker in self.entries:
            return

        price = self.quote(ticker, ts)
        if price is None or price <= 0:
            # no data yet: retry at the next instant
            return

        if self.direction is Direction.LONG:
            shares = self.account.buy_max(ticker, ts, self.amount_per_ticker)
        else:
            shares = self.account.sell_short_max(ticker, ts, self.amount_per_ticker)

        self.entries[ticker] = Entry(price=price, ts=ts, shares=shares)
        logs.debug(f"[{self.name}] enter {self.direction.value} ticker={ticker} shares={shares} price={price} ts={ts}")

    def _exit(self, ts: int) -> Decision:
        for ticker, entry in self.entries.items():
            if self.direction is Direction.LONG:
                shares = self.account.sell_all(ticker, ts)
            else:
                shares = self.account.buy_to_cover(ticker, ts, entry.shares)
            logs.debug(f"[{self.name}] exit {self.direction.value} ticker={ticker} shares={shares} ts={ts}")

        self.exit_ts = ts
        self.phase = Phase.DONE
        return Decision.ABORT

    def reset(self, direction: Optional[Direction] = None) -> None:
        super().reset()
        if direction is not None:
            self.direction = Direction(direction)
        self.phase = Phase.FLAT
        self.entries = {}
        self.exit_ts = None

    def describe(self) -> str:
        p = self.params
        return (
            f"ExpectationMean: small gain/loss {p.small_gain}/{p.small_loss} ; "
            f"large gain/loss {p.large_gain}/{p.large_loss} ; mode: {self.direction.value}"
        )
