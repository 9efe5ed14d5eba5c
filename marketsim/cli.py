#!filepath: marketsim/cli.py
from typing import Optional

import typer
from rich import print
from rich.table import Table

from marketsim import __version__, init_logging
from marketsim.utils.datetime_utils import DateTimeUtils

app = typer.Typer(help="marketsim backtest CLI")


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def run(
    config: str = typer.Argument(..., help="YAML config with strategy + trial sections"),
    seed: Optional[int] = typer.Option(None, help="seed for randomized strategies"),
):
    """
    运行单次 trial，打印结果摘要
    """
    import random

    from marketsim.backtest.trial import build_trial, run_trial
    from marketsim.config.app_config import AppConfig

    cfg = AppConfig.load(config)
    init_logging(cfg.log)

    rng = random.Random(seed) if seed is not None else None
    strategy, spec = build_trial(cfg, rng=rng)

    print(f"[green]Running {strategy.describe()}[/green]")
    result = run_trial(strategy, spec)

    tz = strategy.calendar.tz
    table = Table(title=f"Trial: {result.strategy}")
    table.add_column("field")
    table.add_column("value", justify="right")
    table.add_row("tickers", ", ".join(spec.tickers))
    table.add_row("window", f"{DateTimeUtils.fmt(spec.start, tz)} -> {DateTimeUtils.fmt(spec.end, tz)}")
    table.add_row("steps", str(result.outcome.steps))
    table.add_row("aborted", str(result.outcome.aborted))
    table.add_row("valued at", DateTimeUtils.fmt(result.valuation_ts, tz))
    table.add_row("initial cash", f"{result.initial_cash:.2f}")
    table.add_row("final value", f"{result.final_value:.2f}")
    table.add_row("gain", f"{result.gain:.4%}")
    table.add_row("commission", f"{result.commission_paid:.2f}")
    table.add_row("fills", str(result.n_fills))
    print(table)


@app.command()
def batch(
    config: str,
    trials: int = typer.Option(10, min=1, help="number of independent trials"),
    workers: Optional[int] = typer.Option(None, help="process count (1 = sequential)"),
    seed: int = typer.Option(0, help="base seed; trial i uses seed + i"),
):
    """
    重复运行同一配置（随机窗口 / 随机 ticker 的分布统计）
    """
    from marketsim.backtest.trial import plan_batch, run_batch, summarize
    from marketsim.config.app_config import AppConfig

    cfg = AppConfig.load(config)
    init_logging(cfg.log)

    if cfg.trial is not None and cfg.trial.period_seconds is None:
        print("[yellow]trial.period_seconds not set: every trial replays trial.start .. trial.end[/yellow]")

    jobs = plan_batch(cfg, trials, seed)
    print(f"[blue]Running {trials} trials (workers={workers or 'auto'})[/blue]")

    results = run_batch(jobs, max_workers=workers)
    stats = summarize(results)

    print(
        f"trials={stats['trials']} aborted={stats['aborted']} "
        f"mean_gain={stats['mean_gain']:.4%} min={stats['min_gain']:.4%} max={stats['max_gain']:.4%}"
    )


if __name__ == "__main__":
    app()
