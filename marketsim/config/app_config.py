#!filepath: marketsim/config/app_config.py
from __future__ import annotations

import os
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .calendar_config import CalendarConfig
from .broker_config import BrokerConfig
from .strategy_config import StrategyConfig
from .trial_config import TrialConfig


def default_config_path() -> str:
    """
    marketsim/config/app_config.py → marketsim/config/base.yml
    """
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    broker: BrokerConfig = Field(default_factory=BrokerConfig)
    strategy: Optional[StrategyConfig] = None
    trial: Optional[TrialConfig] = None

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - path 优先；否则 MARKETSIM_CONFIG；否则包内 base.yml
        - 不依赖当前工作目录
        """
        # 1) .env（当前目录向上查找）
        load_dotenv()

        # 2) 决定配置文件路径
        if path is None:
            path = os.getenv("MARKETSIM_CONFIG") or default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        return cls(**raw)
