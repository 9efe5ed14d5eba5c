from marketsim.backtest.strategy.base import Decision, RunOutcome, Strategy
from marketsim.backtest.strategy.buy_and_hold import BuyAndHold, HoldState
from marketsim.backtest.strategy.expectation_mean import (
    Direction,
    ExpectationMean,
    ExpectationMeanParams,
    Phase,
)
from marketsim.backtest.strategy.lucky_indicator import LuckyIndicator, LuckyIndicatorParams
from marketsim.backtest.strategy.lucky_table import LuckyPercentileTable
from marketsim.backtest.strategy.factory import StrategyFactory

__all__ = [
    "Decision",
    "RunOutcome",
    "Strategy",
    "BuyAndHold",
    "HoldState",
    "Direction",
    "ExpectationMean",
    "ExpectationMeanParams",
    "Phase",
    "LuckyIndicator",
    "LuckyIndicatorParams",
    "LuckyPercentileTable",
    "StrategyFactory",
]
