#!filepath: marketsim/config/strategy_config.py
from typing import Any, Dict

from pydantic import BaseModel, Field


class StrategyConfig(BaseModel):
    """
    Strategy selection.

    - name: registry key (buy_and_hold / expectation_mean / lucky_indicator)
    - params: opaque, interpreted by the strategy's parameter object
    """
    name: str
    params: Dict[str, Any] = Field(default_factory=dict)
