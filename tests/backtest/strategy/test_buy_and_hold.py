#!filepath: tests/backtest/strategy/test_buy_and_hold.py
from __future__ import annotations

import pytest

from marketsim.backtest.strategy.buy_and_hold import BuyAndHold, HoldState


@pytest.fixture
def prices(at):
    return {
        "AAA": [(at("20090105", "083000"), 10.0), (at("20090106", "083000"), 12.0)],
        "BBB": [(at("20090105", "083000"), 20.0), (at("20090106", "083000"), 18.0)],
    }


def test_splits_cash_evenly_and_holds(make_account, prices, at):
    acct = make_account(prices, cash=2_014.0, commission=7.0)
    s = BuyAndHold(acct, ["AAA", "BBB"])
    s.run(at("20090105", "083000"), at("20090106", "150000"), 3_600)

    # 1007 each: 100 AAA, floor(1000 / 20) = 50 BBB
    assert acct.holding("AAA") == 100
    assert acct.holding("BBB") == 50
    assert acct.cash == pytest.approx(0.0)
    assert s.state("AAA") is HoldState.HOLDING
    assert len(acct.fills) == 2


def test_sells_at_first_instant_at_or_after_sell_at(make_account, prices, at):
    acct = make_account(prices, cash=2_014.0, commission=7.0)
    s = BuyAndHold(acct, ["AAA", "BBB"], sell_at=at("20090106", "100015"))
    s.run(at("20090105", "083000"), at("20090106", "150000"), 3_600)

    assert acct.holdings == {"AAA": 0, "BBB": 0}
    assert s.state("AAA") is HoldState.CLOSED
    # 100 * 12 - 7 + 50 * 18 - 7
    assert acct.cash == pytest.approx(2_086.0)
    assert {f.ts for f in acct.fills[2:]} == {at("20090106", "103000")}


def test_no_data_retries_later(make_account, at):
    acct = make_account({"AAA": [(at("20090106", "083000"), 10.0)]}, cash=1_007.0)
    s = BuyAndHold(acct, ["AAA"])
    s.run(at("20090105", "083000"), at("20090106", "090000"), 3_600)

    assert acct.holding("AAA") == 100
    assert acct.fills[0].ts == at("20090106", "083000")


def test_from_params_parses_sell_at(make_account, prices, calendar, at):
    acct = make_account(prices)
    s = BuyAndHold.from_params(acct, ["AAA"], {"sell_at": "2009-01-06 10:00:00"}, calendar=calendar)
    assert s.sell_at == at("20090106", "100000")
    assert "Buy-and-Hold" in s.describe()


def test_reset_clears_state(make_account, prices, at):
    acct = make_account(prices, cash=2_014.0)
    s = BuyAndHold(acct, ["AAA", "BBB"])
    s.run(at("20090105", "083000"), at("20090105", "090000"), 3_600)
    s.reset()

    assert s.state("AAA") is HoldState.NOT_ENTERED
    assert acct.holdings == {}
