# marketsim/backtest/strategy/factory.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence, Type, Union

from marketsim.backtest.core.calendar import TradingCalendar
from marketsim.backtest.core.ledger import Account
from marketsim.backtest.strategy.base import Strategy
from marketsim.backtest.strategy.buy_and_hold import BuyAndHold
from marketsim.backtest.strategy.expectation_mean import ExpectationMean
from marketsim.backtest.strategy.lucky_indicator import LuckyIndicator
from marketsim.config.strategy_config import StrategyConfig
from marketsim.utils.errors import ConfigurationError


class StrategyFactory:
    """
    StrategyFactory (FINAL / FROZEN)

    注册式 Strategy 构造器

    All strategies are registered explicitly in StrategyFactory._REGISTRY.
    Registration is centralized and static: no dynamic discovery, no
    import side-effect registration.
    """

    _REGISTRY: Dict[str, Type[Strategy]] = {
        "buy_and_hold": BuyAndHold,
        "expectation_mean": ExpectationMean,
        "lucky_indicator": LuckyIndicator,
        # 未来只在这里注册
    }

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._REGISTRY)

    @classmethod
    def resolve(cls, name: str) -> Type[Strategy]:
        try:
            return cls._REGISTRY[name]
        except KeyError:
            raise ConfigurationError(
                f"[StrategyFactory] unknown strategy: {name!r} (known: {', '.join(cls.names())})"
            ) from None

    # --------------------------------------------------
    @classmethod
    def build(
        cls,
        cfg: Union[StrategyConfig, Mapping[str, Any]],
        *,
        account: Account,
        tickers: Sequence[str],
        calendar: Optional[TradingCalendar] = None,
        **deps: Any,
    ) -> Strategy:
        """
        cfg:
          StrategyConfig or {"name": ..., "params": {...}}

        deps are strategy collaborators (lucky_table, rng) passed through
        to from_params; strategies ignore the ones they do not use.
        """
        if not isinstance(cfg, StrategyConfig):
            if "name" not in cfg:
                raise ConfigurationError("[StrategyFactory] missing 'name' in strategy config")
            cfg = StrategyConfig(**cfg)

        strategy_cls = cls.resolve(cfg.name)
        try:
            return strategy_cls.from_params(account, tickers, dict(cfg.params), calendar=calendar, **deps)
        except TypeError as e:
            # unexpected keyword in params
            raise ConfigurationError(f"[StrategyFactory] bad params for {cfg.name}: {e}") from e
