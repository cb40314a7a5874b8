"""Parallel-for over independent work items with a join before returning."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# held while a pool is active; nested calls from inside a worker run inline
_POOL_LOCK = threading.Lock()


def work_on_items(
    items: Iterable[T],
    worker: Callable[[T], R],
    threads: int = 1,
) -> List[R]:
    """
    Apply ``worker`` to every item and return the results in input order.

    Uses up to ``threads`` worker threads. Exceptions raised by the worker are
    re-raised after all submitted items have finished.
    """
    todo = list(items)
    max_threads = min(len(todo), threads)

    if max_threads <= 1 or not _POOL_LOCK.acquire(blocking=False):
        return [worker(item) for item in todo]

    try:
        logger.debug("Processing %d items with %d threads", len(todo), max_threads)
        with ThreadPoolExecutor(max_workers=max_threads) as pool:
            futures = [pool.submit(worker, item) for item in todo]
            return [future.result() for future in futures]
    finally:
        _POOL_LOCK.release()


__all__ = ["work_on_items"]
