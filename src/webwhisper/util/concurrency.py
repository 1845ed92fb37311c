import threading
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from typing import TypeVar

import structlog

from webwhisper.errors import OperationTimeout

_logger = structlog.get_logger()

T = TypeVar("T")

_executor = ThreadPoolExecutor(max_workers=32, thread_name_prefix="webwhisper-io")


def run_with_timeout(fn: Callable[[], T], timeout: float | None, operation: str) -> T:
    """Run *fn* and give up waiting after *timeout* seconds.

    The call keeps running in the worker thread after a timeout; only the
    caller is released. ``None`` or a non-positive timeout runs inline.
    """
    if timeout is None or timeout <= 0:
        return fn()

    future = _executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        _logger.warning("operation_timed_out", operation=operation, timeout=timeout)
        raise OperationTimeout(operation, timeout) from None


class KeyedLock:
    """One mutex per key; callers holding different keys never block each other."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._holders[key] = self._holders.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._holders[key] -= 1
                if self._holders[key] == 0:
                    del self._holders[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
