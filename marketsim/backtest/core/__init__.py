"""
Core World Model

Defines WHAT the simulated market is, independent of any strategy or driver.

Invariants:
- Time is represented as ts (int, epoch seconds).
- Bars and PriceSeries are immutable price facts.
- Account state evolves ONLY through Broker orders; each order is
  all-or-nothing and reports the units transacted.
- Exchange is the only owner of price data; callers get read access.

Core explicitly does NOT:
- Fetch or parse raw price files (loaders are injected)
- Decide what to trade (strategies do)
- Fabricate prices for data gaps

Time advancement is always external (TradingCalendar + Strategy.run).
"""
