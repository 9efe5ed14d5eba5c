"""
Backtest System

A discrete-event market simulation for replaying trading rules over
historical price series.

Layer responsibilities:
- core     : WHAT the world is (bars, exchange, ledger, calendar)
- data     : WHERE price series come from (injected loaders)
- strategy : HOW decisions are made at each trading instant
- trial    : ONE run of a strategy over a window, and batches of them

Single trial = single thread, deterministic replay.
Randomness only selects which window / ticker / direction a trial uses,
and it is always resolved by the caller before the trial starts.
"""
