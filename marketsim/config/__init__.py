from .app_config import AppConfig
from .log_config import LogConfig
from .calendar_config import CalendarConfig
from .broker_config import BrokerConfig
from .strategy_config import StrategyConfig
from .trial_config import TrialConfig

__all__ = [
    "AppConfig",
    "LogConfig",
    "CalendarConfig",
    "BrokerConfig",
    "StrategyConfig",
    "TrialConfig",
]
