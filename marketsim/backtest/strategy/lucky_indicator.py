from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from marketsim import logs
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.ledger import Account
from marketsim.backtest.strategy.base import Decision, Strategy
from marketsim.backtest.strategy.lucky_table import LuckyPercentileTable
from marketsim.utils.errors import ConfigurationError


@dataclass(frozen=True)
class LuckyIndicatorParams:
    lucky_percentile: float = 90.0
    hold_time_fraction: float = 0.25
    hold_time_exponent: float = 1.0
    price_drop_pct: float = 0.10

    def __post_init__(self) -> None:
        if self.hold_time_fraction < 0:
            raise ConfigurationError(f"hold_time_fraction must be >= 0, got {self.hold_time_fraction}")
        if self.hold_time_exponent < 0:
            raise ConfigurationError(f"hold_time_exponent must be >= 0, got {self.hold_time_exponent}")
        if not 0 <= self.price_drop_pct < 1:
            raise ConfigurationError(f"price_drop_pct must be in [0, 1), got {self.price_drop_pct}")


@dataclass(frozen=True)
class TradeMark:
    price: float
    ts: int


class LuckyIndicator(Strategy):
    """
    Lucky indicator (independent per-ticker state)

    flat & cash > 0, buy_max when any of:
      - never purchased
      - price <= (1 - price_drop_pct) * last_sale.price
      - time_since_last_sale >= hold_time_fraction * last_hold ** hold_time_exponent
    holding, sell_all when:
      - last_purchase missing or priced at 0
      - price / last_purchase.price >= lucky_gain(current_hold)

    All durations are seconds.
    """

    name = "lucky_indicator"

    def __init__(
        self,
        account: Account,
        tickers: Sequence[str],
        table: LuckyPercentileTable,
        params: LuckyIndicatorParams,
        *,
        calendar: Optional[TradingCalendar] = None,
    ) -> None:
        super().__init__(account, tickers, calendar=calendar)
        self.table = table
        self.params = params

        self.last_purchase: Dict[str, TradeMark] = {}
        self.last_sale: Dict[str, TradeMark] = {}

    @classmethod
    def from_params(cls, account, tickers, params, *, calendar=None, lucky_table=None, **_deps) -> "LuckyIndicator":
        if lucky_table is None:
            raise ConfigurationError("[lucky_indicator] requires a lucky percentile table")
        return cls(account, tickers, lucky_table, LuckyIndicatorParams(**params), calendar=calendar)

    # --------------------------------------------------
    def decide(self, ticker: str, ts: int) -> Decision:
        price = self.quote(ticker, ts)
        if price is None:
            return Decision.CONTINUE

        if self.account.holding(ticker) == 0:
            if self.account.cash > 0 and self._should_buy(ticker, price, ts):
                bought = self.account.buy_max(ticker, ts, self.amount_per_ticker)
                if bought > 0:
                    self.last_purchase[ticker] = TradeMark(price, ts)
                    logs.debug(f"[{self.name}] buy ticker={ticker} qty={bought} price={price} ts={ts}")
        elif self._should_sell(ticker, price, ts):
            sold = self.account.sell_all(ticker, ts)
            if sold > 0:
                self.last_sale[ticker] = TradeMark(price, ts)
                logs.debug(f"[{self.name}] sell ticker={ticker} qty={sold} price={price} ts={ts}")

        return Decision.CONTINUE

    def _should_buy(self, ticker: str, price: float, ts: int) -> bool:
        if ticker not in self.last_purchase:
            return True

        p = self.params
        sale = self.last_sale.get(ticker)
        if sale is not None and price <= (1.0 - p.price_drop_pct) * sale.price:
            return True

        cooldown = p.hold_time_fraction * self.last_hold_duration(ticker) ** p.hold_time_exponent
        return self.time_since_last_sale(ticker, ts) >= cooldown

    def _should_sell(self, ticker: str, price: float, ts: int) -> bool:
        purchase = self.last_purchase.get(ticker)
        if purchase is None or purchase.price == 0:
            return True
        return price / purchase.price >= self.lucky_gain(self.current_hold_duration(ticker, ts))

    # --------------------------------------------------
    def lucky_gain(self, hold_seconds: float) -> float:
        return self.table.get(self.params.lucky_percentile, hold_seconds, True)

    def time_since_last_sale(self, ticker: str, ts: int) -> int:
        sale = self.last_sale.get(ticker)
        return ts - sale.ts if sale is not None else 0

    def current_hold_duration(self, ticker: str, ts: int) -> int:
        purchase = self.last_purchase.get(ticker)
        return ts - purchase.ts if purchase is not None else 0

    def last_hold_duration(self, ticker: str) -> int:
        sale = self.last_sale.get(ticker)
        purchase = self.last_purchase.get(ticker)
        if sale is None or purchase is None:
            return 0
        return max(sale.ts - purchase.ts, 0)

    def reset(self) -> None:
        super().reset()
        self.last_purchase = {}
        self.last_sale = {}

    def describe(self) -> str:
        p = self.params
        return (
            f"Lucky: percentile {p.lucky_percentile} ; hold time fraction {p.hold_time_fraction} ; "
            f"hold time exponent {p.hold_time_exponent} ; price drop {p.price_drop_pct}"
        )
