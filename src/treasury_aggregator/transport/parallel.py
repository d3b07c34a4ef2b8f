"""Fail-open parallel execution of independent upstream calls."""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WORKERS = 8


def run_parallel(tasks: Sequence[Callable[[], T]], default: T, max_workers: int = MAX_WORKERS) -> list[T]:
    """
    Run tasks concurrently and collect their results in submission order.

    A task that raises resolves to ``default`` without affecting its siblings.

    Parameters
    ----------
    tasks : Sequence[Callable[[], T]]
        Zero-argument callables
    default : T
        Sentinel returned for a failed task
    max_workers : int
        Upper bound on threads

    Returns
    -------
    list[T]
        One result per task

    """
    if not tasks:
        return []
    if len(tasks) == 1:
        return [_call(tasks[0], default)]

    with ThreadPoolExecutor(max_workers=min(len(tasks), max_workers)) as executor:
        futures = [executor.submit(task) for task in tasks]
        return [_result(future, default) for future in futures]


def submit_background(executor: ThreadPoolExecutor, task: Callable[[], T]) -> Future[T]:
    """Start a task whose result is only needed later (e.g. a fallback source)."""
    return executor.submit(task)


def collect(future: Future[T], default: T) -> T:
    """Wait for a background task, resolving a failure to ``default``."""
    return _result(future, default)


def _call(task: Callable[[], T], default: T) -> T:
    try:
        return task()
    except Exception:
        logger.exception("Parallel task failed")
        return default


def _result(future: Future[T], default: T) -> T:
    try:
        return future.result()
    except Exception:
        logger.exception("Parallel task failed")
        return default
