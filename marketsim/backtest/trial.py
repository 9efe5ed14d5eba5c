#!filepath: marketsim/backtest/trial.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from marketsim import logs
from marketsim.backtest.core.bar import PriceSeries
from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.exchange import Exchange
from marketsim.backtest.core.ledger import Broker
from marketsim.backtest.data.price_loader import ParquetPriceLoader
from marketsim.backtest.strategy.base import RunOutcome, Strategy
from marketsim.backtest.strategy.factory import StrategyFactory
from marketsim.backtest.strategy.lucky_table import LuckyPercentileTable
from marketsim.config.app_config import AppConfig
from marketsim.config.trial_config import TrialConfig
from marketsim.pipeline.parallel.executor import ParallelExecutor
from marketsim.pipeline.parallel.types import ParallelKind
from marketsim.utils.datetime_utils import DateTimeUtils
from marketsim.utils.errors import ConfigurationError

"""
Trial = one strategy run over one window on a fresh account.

run_trial(strategy, spec):
  outcome = strategy.run(start, end, step)
  value at abort_ts if aborted, else at end

run_batch(jobs):
  every TrialJob builds its own Exchange / Broker / Account / Strategy,
  so jobs share nothing and can run in worker processes.
"""


@dataclass(frozen=True)
class TrialSpec:
    tickers: Tuple[str, ...]
    start: int
    end: int
    step: int

    def __post_init__(self) -> None:
        if not self.tickers:
            raise ConfigurationError("trial needs at least one ticker")
        if self.step <= 0:
            raise ConfigurationError(f"step must be > 0, got {self.step}")
        if self.end < self.start:
            raise ConfigurationError(f"end ({self.end}) precedes start ({self.start})")

    @classmethod
    def from_config(cls, cfg: TrialConfig, tz: Optional[ZoneInfo] = None) -> "TrialSpec":
        if cfg.start is None or cfg.end is None:
            raise ConfigurationError("trial.start and trial.end are required unless a window is sampled")
        return cls(
            tickers=tuple(cfg.tickers),
            start=DateTimeUtils.to_epoch(cfg.start, tz),
            end=DateTimeUtils.to_epoch(cfg.end, tz),
            step=cfg.step_seconds,
        )


@dataclass(frozen=True)
class TrialResult:
    strategy: str
    spec: TrialSpec
    initial_cash: float
    final_value: float
    commission_paid: float
    n_fills: int
    outcome: RunOutcome
    valuation_ts: int

    @property
    def gain(self) -> float:
        """final_value / initial_cash - 1 (0.0 for an unfunded account)."""
        if self.initial_cash == 0:
            return 0.0
        return self.final_value / self.initial_cash - 1.0


@logs.catch(msg="trial failed")
def run_trial(strategy: Strategy, spec: TrialSpec) -> TrialResult:
    account = strategy.account
    logs.info(
        f"[Trial] start strategy={strategy.name} tickers={list(spec.tickers)} "
        f"cash={account.cash:.2f}"
    )

    outcome = strategy.run(spec.start, spec.end, spec.step)
    valuation_ts = outcome.abort_ts if outcome.aborted else spec.end
    final_value = account.value(valuation_ts)

    result = TrialResult(
        strategy=strategy.name,
        spec=spec,
        initial_cash=account.initial_cash,
        final_value=final_value,
        commission_paid=account.commission_paid,
        n_fills=len(account.fills),
        outcome=outcome,
        valuation_ts=valuation_ts,
    )
    logs.info(
        f"[Trial] done strategy={strategy.name} steps={outcome.steps} aborted={outcome.aborted} "
        f"value={final_value:.2f} gain={result.gain:.4%}"
    )
    return result


# ============================================================
# config-driven trials
# ============================================================
def sample_window(series: PriceSeries, period: int, rng: random.Random) -> Tuple[int, int]:
    """
    Random [start, end] of `period` seconds inside the series:
      start = ts of a random bar
      end   = start + period, clamped to the last bar (start shifted back)
    """
    if not series:
        raise ConfigurationError("cannot sample a window from an empty price series")
    start = rng.choice(series.timestamps)
    end = start + period
    if end > series.last.ts:
        end = series.last.ts
        start = end - period
    return start, end


def build_trial(
    cfg: AppConfig,
    *,
    rng: Optional[random.Random] = None,
    exchange: Optional[Exchange] = None,
) -> Tuple[Strategy, TrialSpec]:
    """
    AppConfig -> (strategy, spec), every collaborator freshly built.

    rng + trial.period_seconds: the window is sampled from the first
    ticker's history (and the ticker itself when trial.sample_ticker);
    otherwise trial.start .. trial.end is replayed.

    exchange: pre-populated Exchange (tests / in-memory data); by default
    <trial.data_dir>/<TICKER>.parquet is loaded.
    """
    if cfg.strategy is None or cfg.trial is None:
        raise ConfigurationError("config needs both 'strategy' and 'trial' sections")

    trial = cfg.trial
    calendar = TradingCalendar.from_config(cfg.calendar)
    sampling = rng is not None and trial.period_seconds is not None

    tickers = list(trial.tickers)
    if sampling and trial.sample_ticker:
        # draw order: ticker, window, then strategy randomness
        tickers = [rng.choice(sorted(tickers))]

    if exchange is None:
        exchange = Exchange(ParquetPriceLoader(trial.data_dir, calendar.tz))
    for ticker in tickers:
        if not exchange.load(ticker):
            logs.warning(f"[Trial] no price history for ticker={ticker}, it will never trade")

    if sampling:
        series = exchange.series(tickers[0])
        if series is None:
            raise ConfigurationError(f"no price history to sample a window from, ticker={tickers[0]}")
        start, end = sample_window(series, trial.period_seconds, rng)
        spec = TrialSpec(tuple(tickers), start, end, trial.step_seconds)
    else:
        spec = TrialSpec.from_config(trial, calendar.tz)

    broker = Broker.from_config(exchange, cfg.broker)
    account = broker.new_account(trial.initial_cash)

    lucky_table = None
    if trial.lucky_table is not None:
        lucky_table = LuckyPercentileTable.from_csv(trial.lucky_table)

    strategy = StrategyFactory.build(
        cfg.strategy,
        account=account,
        tickers=spec.tickers,
        calendar=calendar,
        lucky_table=lucky_table,
        rng=rng,
    )
    return strategy, spec


@dataclass(frozen=True)
class TrialJob:
    """Picklable unit of work for run_batch."""
    config: AppConfig
    seed: Optional[int] = None


def plan_batch(cfg: AppConfig, trials: int, seed: int = 0) -> List[TrialJob]:
    """
    `trials` seeded jobs (seed, seed + 1, ...). With trial.sample_ticker the
    jobs are ordered by the ticker their seed draws, so a sequential batch
    visits tickers in sorted order.
    """
    jobs = [TrialJob(config=cfg, seed=seed + i) for i in range(trials)]
    trial = cfg.trial
    if trial is not None and trial.period_seconds is not None and trial.sample_ticker:
        tickers = sorted(trial.tickers)
        jobs.sort(key=lambda job: random.Random(job.seed).choice(tickers))
    return jobs


def execute_job(job: TrialJob) -> TrialResult:
    # module level: must be importable inside worker processes
    rng = random.Random(job.seed) if job.seed is not None else None
    strategy, spec = build_trial(job.config, rng=rng)
    return run_trial(strategy, spec)


def run_batch(jobs: Iterable[TrialJob], max_workers: Optional[int] = None) -> List[TrialResult]:
    """Results come back in job order."""
    return ParallelExecutor.run(
        kind=ParallelKind.TRIAL,
        items=list(jobs),
        handler=execute_job,
        max_workers=max_workers,
    )


def summarize(results: Sequence[TrialResult]) -> dict:
    if not results:
        return {"trials": 0}
    gains = [r.gain for r in results]
    return {
        "trials": len(results),
        "mean_gain": sum(gains) / len(gains),
        "min_gain": min(gains),
        "max_gain": max(gains),
        "aborted": sum(1 for r in results if r.outcome.aborted),
    }
