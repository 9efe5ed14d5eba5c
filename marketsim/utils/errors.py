# marketsim/utils/errors.py
class MarketSimError(RuntimeError):
    """Base class for every error raised by marketsim."""


class ConfigurationError(MarketSimError):
    """
    Raised for invalid simulation setup (ticker lists, step sizes,
    calendar windows, strategy parameters, lookup tables).
    Surfaces at construction time, never mid-trial.
    """


class DataGapError(MarketSimError, LookupError):
    """
    Raised when a non-zero holding has no observable quote.
    Order paths never raise this; they transact zero units instead.
    """
