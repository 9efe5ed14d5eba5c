#!filepath: tests/backtest/core/test_ledger.py
from __future__ import annotations

import math

import pytest

from marketsim.backtest.core.events import Side
from marketsim.backtest.core.exchange import Exchange
from marketsim.backtest.core.ledger import Broker
from marketsim.utils.errors import ConfigurationError, DataGapError

T0 = 1_000
T1 = 2_000


# ============================================================
# long side
# ============================================================
def test_buy_max_spends_cash_exactly(make_account):
    acct = make_account({"AAA": [(T0, 99.93)]}, cash=10_000.0, commission=7.0)

    assert acct.buy_max("AAA", T0) == 100
    assert acct.holding("AAA") == 100
    assert acct.cash == 0.0
    assert acct.commission_paid == 7.0


def test_buy_max_cannot_cover_commission_is_noop(make_account):
    acct = make_account({"AAA": [(T0, 1.0)]}, cash=5.0, commission=7.0)

    assert acct.buy_max("AAA", T0) == 0
    assert acct.cash == 5.0
    assert acct.holdings == {}
    assert acct.fills == []


def test_buy_max_rounding_never_overshoots_cash(make_account):
    # (cash - 7) / 1000 = 99.9999999996 rounds to 100, only 99 are affordable
    cash = 7.0 + 99.9999999996 * 1_000.0
    acct = make_account({"AAA": [(T0, 1_000.0)]}, cash=cash, commission=7.0)

    assert acct.buy_max("AAA", T0) == 99
    assert acct.cash == pytest.approx(cash - 99_007.0)
    assert acct.cash >= 0


def test_sell_short_max_rounding_never_overshoots_budget(make_account):
    cash = 7.0 + 99.9999999996 * 1_000.0
    acct = make_account({"AAA": [(T0, 1_000.0)]}, cash=cash, commission=7.0)

    assert acct.sell_short_max("AAA", T0) == 99


def test_buy_max_budget_is_clamped_to_cash(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=107.0, commission=7.0)
    assert acct.buy_max("AAA", T0, budget=1_000_000.0) == 10
    assert acct.cash == 0.0


def test_buy_exact_is_all_or_nothing(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=100.0, commission=7.0)

    assert acct.buy("AAA", 10, T0) == 0  # needs 107
    assert acct.cash == 100.0
    assert acct.buy("AAA", 9, T0) == 9
    assert acct.cash == pytest.approx(3.0)


def test_sell_all_credits_proceeds_less_commission(make_account):
    acct = make_account({"AAA": [(T0, 10.0), (T1, 20.0)]}, cash=507.0, commission=7.0)
    assert acct.buy("AAA", 50, T0) == 50
    assert acct.cash == 0.0

    assert acct.sell_all("AAA", T1) == 50
    assert acct.cash == pytest.approx(993.0)
    assert acct.holding("AAA") == 0
    assert [f.side for f in acct.fills] == [Side.BUY, Side.SELL]


def test_sell_never_exceeds_holding(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=1_000.0, commission=0.0)
    acct.buy("AAA", 5, T0)

    assert acct.sell("AAA", 50, T0) == 5
    assert acct.sell("AAA", 1, T0) == 0


def test_sell_all_when_flat_is_noop(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]})
    assert acct.sell_all("AAA", T0) == 0
    assert acct.cash == 10_000.0


def test_sell_rejected_when_proceeds_cannot_pay_commission(make_account):
    acct = make_account({"AAA": [(T0, 1.0), (T1, 0.01)]}, cash=8.0, commission=7.0)
    assert acct.buy("AAA", 1, T0) == 1
    assert acct.cash == 0.0

    # proceeds 0.01 < commission 7
    assert acct.sell_all("AAA", T1) == 0
    assert acct.holding("AAA") == 1


# ============================================================
# short side
# ============================================================
def test_short_and_cover_round_trip(make_account):
    acct = make_account({"AAA": [(T0, 50.0), (T1, 40.0)]}, cash=1_000.0, commission=5.0)

    assert acct.sell_short("AAA", 10, T0) == 10
    assert acct.holding("AAA") == -10
    assert acct.cash == pytest.approx(1_495.0)
    assert acct.has_short

    assert acct.buy_to_cover("AAA", T1) == 10
    assert acct.holding("AAA") == 0
    assert acct.cash == pytest.approx(1_090.0)
    assert [f.side for f in acct.fills] == [Side.SELL_SHORT, Side.BUY_TO_COVER]


def test_sell_short_max_is_bounded_by_cash(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=1_007.0, commission=7.0)
    assert acct.sell_short_max("AAA", T0) == 100
    assert acct.holding("AAA") == -100
    assert acct.cash == pytest.approx(2_000.0)


def test_buy_to_cover_partial_and_without_short(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=1_000.0, commission=0.0)
    assert acct.buy_to_cover("AAA", T0) == 0

    acct.sell_short("AAA", 10, T0)
    assert acct.buy_to_cover("AAA", T0, shares=4) == 4
    assert acct.holding("AAA") == -6
    assert acct.buy_to_cover("AAA", T0, shares=100) == 6
    assert acct.holding("AAA") == 0


def test_cover_rejected_when_cash_short(make_account):
    acct = make_account({"AAA": [(T0, 10.0), (T1, 1_000.0)]}, cash=100.0, commission=0.0)
    acct.sell_short("AAA", 10, T0)
    assert acct.cash == pytest.approx(200.0)

    assert acct.buy_to_cover("AAA", T1) == 0
    assert acct.holding("AAA") == -10
    assert acct.cash >= 0


# ============================================================
# no data / invalid quotes
# ============================================================
@pytest.mark.parametrize("bad", [0.0, -1.0, math.nan, math.inf])
def test_invalid_quote_fails_every_order(make_account, bad):
    acct = make_account({"AAA": [(T0, bad)]}, cash=1_000.0, commission=0.0)

    assert acct.buy_max("AAA", T0) == 0
    assert acct.buy("AAA", 1, T0) == 0
    assert acct.sell_short("AAA", 1, T0) == 0
    assert acct.sell_short_max("AAA", T0) == 0
    assert acct.cash == 1_000.0
    assert acct.fills == []


def test_order_before_first_bar_is_noop(make_account):
    acct = make_account({"AAA": [(T1, 10.0)]})
    assert acct.buy_max("AAA", T0) == 0
    assert acct.buy_max("UNKNOWN", T1) == 0
    assert acct.cash == 10_000.0


# ============================================================
# valuation
# ============================================================
def test_value_conserved_at_trade_instant(make_account):
    acct = make_account({"AAA": [(T0, 12.5)], "BBB": [(T0, 3.0)]}, cash=10_000.0, commission=7.0)

    before = acct.value(T0)
    acct.buy_max("AAA", T0, 5_000.0)
    assert acct.value(T0) == pytest.approx(before - 7.0)

    before = acct.value(T0)
    acct.sell_short("BBB", 100, T0)
    assert acct.value(T0) == pytest.approx(before - 7.0)


def test_value_marks_to_market(make_account):
    acct = make_account({"AAA": [(T0, 10.0), (T1, 15.0)]}, cash=100.0, commission=0.0)
    acct.buy("AAA", 10, T0)
    assert acct.value(T1) == pytest.approx(150.0)


def test_value_raises_on_data_gap(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=100.0, commission=0.0)
    acct.buy("AAA", 1, T0)
    acct.broker.exchange.unload("AAA")

    with pytest.raises(DataGapError):
        acct.value(T0)


def test_reset_restores_opening_balance(make_account):
    acct = make_account({"AAA": [(T0, 10.0)]}, cash=500.0, commission=7.0)
    acct.buy_max("AAA", T0)
    acct.reset()

    assert acct.cash == 500.0
    assert acct.holdings == {}
    assert acct.commission_paid == 0.0
    assert acct.fills == []


def test_cash_never_negative_over_random_orders(make_account):
    import random

    rng = random.Random(7)
    points = [(t, rng.uniform(1.0, 200.0)) for t in range(0, 2_000, 10)]
    acct = make_account({"AAA": points}, cash=1_000.0, commission=7.0)

    for t, _ in points:
        op = rng.choice(["buy_max", "sell_all", "short", "cover"])
        if op == "buy_max":
            acct.buy_max("AAA", t)
        elif op == "sell_all":
            acct.sell_all("AAA", t)
        elif op == "short":
            acct.sell_short_max("AAA", t, acct.cash / 2)
        else:
            acct.buy_to_cover("AAA", t)
        assert acct.cash >= 0


# ============================================================
# configuration
# ============================================================
def test_negative_commission_rejected():
    with pytest.raises(ConfigurationError):
        Broker(Exchange(), -1.0)


def test_negative_cash_rejected():
    with pytest.raises(ConfigurationError):
        Broker(Exchange(), 7.0).new_account(-1.0)
