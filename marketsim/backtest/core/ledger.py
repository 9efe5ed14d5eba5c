from __future__ import annotations

import math
from typing import Dict, List, Optional

from marketsim import logs
from marketsim.backtest.core.events import Fill, Side
from marketsim.backtest.core.exchange import Exchange
from marketsim.utils.errors import ConfigurationError, DataGapError
"""
{#!filepath: marketsim/backtest/core/ledger.py}

Ledger: Broker + Account

Semantics:
- Perfect fills at the quote (close of the last bar at or before ts).
- Friction is a fixed commission per trade (buy / sell).
- Every order is all-or-nothing and returns the units transacted.

Invariants:
- No data (missing / non-positive quote) => order fails with 0 units.
- Insufficient cash / holdings => no-op, 0 units, account unchanged.
- cash >= 0 is checked before any buy is authorised.
- Only short sales make holdings negative.
- Broker holds no per-trade state; mutations touch only the given Account.
"""

# currency tolerance for float comparisons in the ledger
_EPS = 1e-9


def _settle(cash: float) -> float:
    """Snap float residue around zero (e.g. -1e-12) to 0.0."""
    return 0.0 if abs(cash) < _EPS else cash


def _max_shares(amount: float, commission: float, price: float) -> int:
    # round first: 9993 / 99.93 must be 100, not 99.99999999999999
    shares = math.floor(round((amount - commission) / price, 9))
    # rounding may reach one share past the budget (large prices)
    if shares > 0 and shares * price + commission > amount + _EPS:
        shares -= 1
    return shares


class Broker:
    def __init__(
        self,
        exchange: Exchange,
        buy_commission: float,
        sell_commission: Optional[float] = None,
    ):
        if sell_commission is None:
            sell_commission = buy_commission
        if buy_commission < 0 or sell_commission < 0:
            raise ConfigurationError(
                f"commission must be >= 0 (buy={buy_commission}, sell={sell_commission})"
            )

        self.exchange = exchange
        self.buy_commission = float(buy_commission)
        self.sell_commission = float(sell_commission)

    @classmethod
    def from_config(cls, exchange: Exchange, cfg) -> "Broker":
        return cls(exchange, cfg.buy_commission, cfg.sell_commission)

    def new_account(self, cash: float) -> "Account":
        return Account(self, cash)

    # --------------------------------------------------
    # market access
    # --------------------------------------------------
    def quote(self, ticker: str, ts: int) -> Optional[float]:
        return self.exchange.quote(ticker, ts)

    def _tradable_quote(self, ticker: str, ts: int) -> Optional[float]:
        px = self.exchange.quote(ticker, ts)
        if px is None or not math.isfinite(px) or px <= 0.0:
            logs.debug(f"[Broker] no tradable quote ticker={ticker} price={px} ts={ts}")
            return None
        return px

    # --------------------------------------------------
    # long side
    # --------------------------------------------------
    def buy_max(
        self,
        account: "Account",
        ticker: str,
        ts: int,
        budget: Optional[float] = None,
    ) -> int:
        """Buy as many shares as the budget (clamped to cash) allows."""
        budget = account.cash if budget is None else min(budget, account.cash)

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0

        shares = _max_shares(budget, self.buy_commission, px)
        if shares <= 0:
            return 0
        return self._debit(account, ticker, shares, px, ts, Side.BUY)

    def buy(self, account: "Account", ticker: str, shares: int, ts: int) -> int:
        """Buy exactly `shares` or nothing."""
        shares = int(shares)
        if shares <= 0:
            return 0

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0
        return self._debit(account, ticker, shares, px, ts, Side.BUY)

    def sell_all(self, account: "Account", ticker: str, ts: int) -> int:
        return self.sell(account, ticker, account.holding(ticker), ts)

    def sell(self, account: "Account", ticker: str, shares: int, ts: int) -> int:
        """Sell up to `shares`, never more than the long holding."""
        held = account.holding(ticker)
        shares = min(int(shares), held)
        if held <= 0 or shares <= 0:
            return 0

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0
        return self._credit(account, ticker, shares, px, ts, Side.SELL)

    # --------------------------------------------------
    # short side
    # --------------------------------------------------
    def sell_short(self, account: "Account", ticker: str, shares: int, ts: int) -> int:
        shares = int(shares)
        if shares <= 0:
            return 0

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0
        return self._credit(account, ticker, shares, px, ts, Side.SELL_SHORT)

    def sell_short_max(
        self,
        account: "Account",
        ticker: str,
        ts: int,
        budget: Optional[float] = None,
    ) -> int:
        """Short as many shares as the budget (clamped to non-negative cash) covers."""
        cash = max(account.cash, 0.0)
        budget = cash if budget is None else min(budget, cash)

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0

        shares = _max_shares(budget, self.sell_commission, px)
        if shares <= 0:
            return 0
        return self._credit(account, ticker, shares, px, ts, Side.SELL_SHORT)

    def buy_to_cover(
        self,
        account: "Account",
        ticker: str,
        ts: int,
        shares: Optional[int] = None,
    ) -> int:
        """Buy back up to the open short quantity (all of it by default)."""
        short = -account.holding(ticker)
        if short <= 0:
            return 0

        shares = short if shares is None else min(int(shares), short)
        if shares <= 0:
            return 0

        px = self._tradable_quote(ticker, ts)
        if px is None:
            return 0
        return self._debit(account, ticker, shares, px, ts, Side.BUY_TO_COVER)

    # --------------------------------------------------
    # settlement
    # --------------------------------------------------
    def _debit(self, account: "Account", ticker: str, shares: int, px: float, ts: int, side: Side) -> int:
        cost = px * shares
        total = cost + self.buy_commission

        if account.cash < 0 or account.cash + _EPS < total:
            logs.debug(
                f"[Broker] reject {side.value} ticker={ticker} qty={shares} "
                f"need={total:.2f} cash={account.cash:.2f}"
            )
            return 0

        account.cash = _settle(account.cash - total)
        account.holdings[ticker] = account.holding(ticker) + shares
        account.commission_paid += self.buy_commission
        account.fills.append(Fill(ts, ticker, side, shares, px, self.buy_commission))

        logs.debug(f"[Broker] {side.value} ticker={ticker} qty={shares} price={px} ts={ts} cash={account.cash:.2f}")
        return shares

    def _credit(self, account: "Account", ticker: str, shares: int, px: float, ts: int, side: Side) -> int:
        proceeds = px * shares
        post_sale = account.cash + proceeds

        if proceeds < 0 or post_sale + _EPS < self.sell_commission:
            logs.debug(
                f"[Broker] reject {side.value} ticker={ticker} qty={shares} "
                f"proceeds={proceeds:.2f} cash={account.cash:.2f}"
            )
            return 0

        account.cash = _settle(post_sale - self.sell_commission)
        account.holdings[ticker] = account.holding(ticker) - shares
        account.commission_paid += self.sell_commission
        account.fills.append(Fill(ts, ticker, side, shares, px, self.sell_commission))

        logs.debug(f"[Broker] {side.value} ticker={ticker} qty={shares} price={px} ts={ts} cash={account.cash:.2f}")
        return shares


class Account:
    """
    Cash + holdings bookkeeping, one per running strategy.

    Order methods delegate to the Broker and return units transacted.
    reset() restores the opening balance so one Account can serve
    many sequential trials.
    """

    def __init__(self, broker: Broker, cash: float):
        if cash < 0:
            raise ConfigurationError(f"initial cash must be >= 0, got {cash}")

        self.broker = broker
        self.initial_cash = float(cash)
        self.cash = self.initial_cash
        self.holdings: Dict[str, int] = {}
        self.commission_paid = 0.0
        self.fills: List[Fill] = []

    def reset(self) -> None:
        self.cash = self.initial_cash
        self.holdings = {}
        self.commission_paid = 0.0
        self.fills = []

    def holding(self, ticker: str) -> int:
        return self.holdings.get(ticker, 0)

    @property
    def has_short(self) -> bool:
        return any(q < 0 for q in self.holdings.values())

    # --------------------------------------------------
    # orders
    # --------------------------------------------------
    def buy_max(self, ticker: str, ts: int, budget: Optional[float] = None) -> int:
        return self.broker.buy_max(self, ticker, ts, budget)

    def buy(self, ticker: str, shares: int, ts: int) -> int:
        return self.broker.buy(self, ticker, shares, ts)

    def sell_all(self, ticker: str, ts: int) -> int:
        return self.broker.sell_all(self, ticker, ts)

    def sell(self, ticker: str, shares: int, ts: int) -> int:
        return self.broker.sell(self, ticker, shares, ts)

    def sell_short(self, ticker: str, shares: int, ts: int) -> int:
        return self.broker.sell_short(self, ticker, shares, ts)

    def sell_short_max(self, ticker: str, ts: int, budget: Optional[float] = None) -> int:
        return self.broker.sell_short_max(self, ticker, ts, budget)

    def buy_to_cover(self, ticker: str, ts: int, shares: Optional[int] = None) -> int:
        return self.broker.buy_to_cover(self, ticker, ts, shares)

    # --------------------------------------------------
    # valuation
    # --------------------------------------------------
    def value(self, ts: int) -> float:
        """
        Mark-to-market: cash + sum(holdings[ticker] * quote(ticker, ts)).

        Raises DataGapError if a non-zero holding has no quote.
        """
        total = self.cash
        for ticker, qty in self.holdings.items():
            if qty == 0:
                continue
            px = self.broker.quote(ticker, ts)
            if px is None:
                raise DataGapError(f"no quote for held ticker={ticker} qty={qty} ts={ts}")
            total += qty * px
        return total

    def __str__(self) -> str:
        return (
            f"cash: {self.cash:.2f}\n"
            f"commission_paid: {self.commission_paid:.2f}\n"
            f"holdings: {dict(self.holdings)}"
        )
