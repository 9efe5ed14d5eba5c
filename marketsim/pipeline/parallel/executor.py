# marketsim/pipeline/parallel/executor.py
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from marketsim import logs
from marketsim.pipeline.parallel.types import ParallelKind

T = TypeVar("T")
R = TypeVar("R")


class ParallelExecutor:
    """
    ParallelExecutor

    - 统一的 ProcessPoolExecutor 封装
    - workers == 1 时顺序执行（同进程，便于测试 / 调试）
    - 结果顺序与输入顺序一致
    - 任一 item 失败 -> 异常向上传播
    - handler 与 items 必须可 pickle（多进程模式）
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind,
            items: Iterable[T],
            handler: Callable[[T], R],
            max_workers: Optional[int] = None,
    ) -> List[R]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        logs.info(f"[ParallelExecutor] start kind={kind.value} total={len(items)}")

        workers = ParallelExecutor._resolve_workers(items, max_workers)

        if workers == 1:
            return ParallelExecutor._run_sequential(items, handler)
        return ParallelExecutor._run_parallel(items, handler, workers)

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: Optional[int]) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(items: list, handler: Callable[[Any], Any]) -> list:
        return [handler(item) for item in items]

    @staticmethod
    def _run_parallel(items: list, handler: Callable[[Any], Any], workers: int) -> list:
        logs.info(f"[ParallelExecutor] run parallel | workers={workers}")

        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(handler, item) for item in items]
            # 按提交顺序取结果
            return [fut.result() for fut in futures]
