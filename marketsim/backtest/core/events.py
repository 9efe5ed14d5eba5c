from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


# -------------------------
# Side
# -------------------------
class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    SELL_SHORT = "SELL_SHORT"
    BUY_TO_COVER = "BUY_TO_COVER"


# -------------------------
# Fill
# -------------------------
@dataclass(frozen=True)
class Fill:
    """
    Immutable execution fact appended to Account.fills.

    qty is always positive; Side carries the direction.
    """
    ts: int
    symbol: str
    side: Side
    qty: int
    price: float
    commission: float
