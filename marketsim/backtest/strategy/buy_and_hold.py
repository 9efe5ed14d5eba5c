from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Sequence

from marketsim import logs
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.ledger import Account
from marketsim.backtest.strategy.base import Decision, Strategy
from marketsim.utils.datetime_utils import DateTimeUtils


class HoldState(str, Enum):
    NOT_ENTERED = "not_entered"
    HOLDING = "holding"
    CLOSED = "closed"


class BuyAndHold(Strategy):
    """
    Buy-and-hold baseline

    Per ticker:
      NOT_ENTERED --(cash > 0, buy_max fills)--> HOLDING
      any         --(ts >= sell_at)-----------> CLOSED (sell all)
      CLOSED: no-op
    sell_at=None holds until the end of the run.
    """

    name = "buy_and_hold"

    def __init__(
        self,
        account: Account,
        tickers: Sequence[str],
        sell_at: Optional[int] = None,
        *,
        calendar: Optional[TradingCalendar] = None,
    ) -> None:
        super().__init__(account, tickers, calendar=calendar)
        self.sell_at = sell_at
        self._state: Dict[str, HoldState] = {}

    @classmethod
    def from_params(cls, account, tickers, params, *, calendar=None, **_deps) -> "BuyAndHold":
        calendar = calendar or TradingCalendar()
        sell_at = params.get("sell_at")
        if sell_at is not None:
            sell_at = DateTimeUtils.to_epoch(sell_at, calendar.tz)
        return cls(account, tickers, sell_at, calendar=calendar)

    def state(self, ticker: str) -> HoldState:
        return self._state.get(ticker, HoldState.NOT_ENTERED)

    def decide(self, ticker: str, ts: int) -> Decision:
        state = self.state(ticker)
        if state is HoldState.CLOSED:
            return Decision.CONTINUE

        if self.sell_at is not None and ts >= self.sell_at:
            sold = self.account.sell_all(ticker, ts)
            logs.debug(f"[{self.name}] close ticker={ticker} sold={sold} ts={ts}")
            self._state[ticker] = HoldState.CLOSED
            return Decision.CONTINUE

        if state is HoldState.NOT_ENTERED and self.account.cash > 0:
            bought = self.account.buy_max(ticker, ts, self.amount_per_ticker)
            if bought > 0:
                logs.debug(f"[{self.name}] enter ticker={ticker} bought={bought} ts={ts}")
                self._state[ticker] = HoldState.HOLDING

        return Decision.CONTINUE

    def reset(self) -> None:
        super().reset()
        self._state = {}

    def describe(self) -> str:
        return f"Buy-and-Hold: last bar to hold: {self.sell_at} ; tickers: {', '.join(self.tickers)}"
