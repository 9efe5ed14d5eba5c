#!filepath: marketsim/__init__.py

from .utils.logger import Logging, logs, init_logging
from .utils.datetime_utils import DateTimeUtils
from .utils.errors import MarketSimError, ConfigurationError, DataGapError
from .config.app_config import AppConfig

__version__ = "0.1.0"

# alias 简化调用
datetime_utils = DateTimeUtils

__all__ = [
    "logs", "Logging", "init_logging",
    "datetime_utils",
    "MarketSimError", "ConfigurationError", "DataGapError",
    "AppConfig",
    "__version__",
]
