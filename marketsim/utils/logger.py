#!filepath: marketsim/utils/logger.py
from __future__ import annotations

import os
import sys
import json
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Optional

from loguru import logger


class Logging:
    """
    Simulation logging facade (loguru)
    ---------------------------------------
    - stderr sink always
    - optional file sink with rotation / retention
    - catch() decorator for function-level logging
    ---------------------------------------
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ):
        self.reconfigure(log_dir, rotation, retention, log_level)

    def reconfigure(
        self,
        log_dir: Optional[str] = None,
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ) -> "Logging":
        """替换 sink 配置，保持同一实例（已 import 的 logs 引用仍有效）"""
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.level = log_level
        self._configure()
        return self

    def _configure(self) -> None:
        """
        配置全局 logger（每次调用都会替换已有 sink）
        """
        logger.remove()

        logger.add(
            sink=sys.stderr,
            level=self.level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            backtrace=True,
            diagnose=False,
        )

        if self.log_dir:
            os.makedirs(self.log_dir, exist_ok=True)
            logger.add(
                sink=f"{self.log_dir}/{{time:YYYY-MM-DD}}.log",
                rotation=self.rotation,
                retention=self.retention,
                level=self.level,
                format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
                enqueue=True,  # 多进程安全
                backtrace=True,
                diagnose=True,
            )

    # ----------- 日志方法 -----------
    def debug(self, msg: str, *args, **kwargs):
        logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.exception(msg, *args, **kwargs)

    # ---------- 日志装饰器 ----------
    def catch(
        self,
        msg: str = "Exception occurred",
        log_inputs: bool = False,
        log_outputs: bool = False,
        log_time: bool = True,
    ) -> Callable:

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):

                if log_inputs:
                    logger.debug(
                        f"[CALL] {func.__name__} args={args}, "
                        f"kwargs={json.dumps(kwargs, ensure_ascii=False, default=str)}"
                    )

                start = perf_counter()

                try:
                    result = func(*args, **kwargs)
                except Exception:
                    logger.exception(f"[ERROR] {func.__name__}: {msg}")
                    raise

                if log_outputs:
                    logger.debug(f"[RETURN] {func.__name__} result={result}")

                if log_time:
                    cost = perf_counter() - start
                    logger.debug(f"[TIME] {func.__name__} took {cost:.4f}s")

                return result

            return wrapper

        return decorator


def init_logging(cfg: Any) -> Logging:
    """
    Reconfigure the global `logs` in place from a LogConfig-like object
    (attributes: dir, rotation, retention, level).
    """
    return logs.reconfigure(
        log_dir=cfg.dir,
        rotation=cfg.rotation,
        retention=cfg.retention,
        log_level=cfg.level,
    )


# 默认全局 logs（init_logging 原地重配置）
logs = Logging(log_level=os.getenv("MARKETSIM_LOG_LEVEL", "INFO"))
