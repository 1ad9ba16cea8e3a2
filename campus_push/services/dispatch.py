"""Detached execution of notification work.

Callers hand work to :class:`BackgroundDispatcher` and return immediately.
They do not await the result and must not treat a failure as a failure of
the action that triggered the notification; failures are only logged.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

from campus_push.log import get_logger

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Thread pool for fire-and-forget tasks."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notify"
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, task: Callable[..., Any], *args: Any, label: str = "task") -> Future:
        future = self._executor.submit(task, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(lambda f: self._on_done(f, label))
        return future

    def _on_done(self, future: Future, label: str) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            logger.warning("Background %s was cancelled", label)
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Background %s failed", label, exc_info=(type(exc), exc, exc.__traceback__)
            )
        else:
            logger.debug("Background %s finished: %r", label, future.result())

    def drain(self, timeout: float | None = None) -> None:
        """Block until every task submitted so far has finished."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
