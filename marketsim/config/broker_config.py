#!filepath: marketsim/config/broker_config.py
from typing import Optional

from pydantic import BaseModel, Field


class BrokerConfig(BaseModel):
    """
    Fixed per-trade commission schedule.
    sell_commission falls back to buy_commission when omitted.
    """
    buy_commission: float = Field(7.0, ge=0)
    sell_commission: Optional[float] = Field(None, ge=0)
