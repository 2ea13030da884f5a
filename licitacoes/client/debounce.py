from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Callable, Tuple


DEFAULT_DELAY_SECONDS = 0.3


class Debouncer:
    """Coalesce bursts of calls into the last one.

    ``submit`` (re)starts the quiet window. A call superseded before its timer
    fires has its future cancelled; only the latest call runs.
    """

    def __init__(self, delay_seconds: float = DEFAULT_DELAY_SECONDS, timer_factory: Callable[..., Any] | None = None) -> None:
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: Tuple[Any, Future] | None = None

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        with self._lock:
            self._cancel_pending_locked()
            self._generation += 1
            token = self._generation
            timer = self._timer_factory(self.delay_seconds, self._fire, args=(token, future, fn, args, kwargs))
            if isinstance(timer, threading.Thread):
                timer.daemon = True
            self._pending = (timer, future)
        timer.start()
        return future

    def cancel(self) -> None:
        with self._lock:
            self._cancel_pending_locked()
            self._generation += 1

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def _cancel_pending_locked(self) -> None:
        if self._pending is None:
            return
        timer, future = self._pending
        self._pending = None
        timer.cancel()
        future.cancel()

    def _fire(self, token: int, future: Future, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        with self._lock:
            if token != self._generation:
                return
            self._pending = None
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
