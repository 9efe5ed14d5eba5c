# marketsim/pipeline/parallel/types.py
from enum import Enum


class ParallelKind(str, Enum):
    TRIAL = "trial"
    TICKER = "ticker"
