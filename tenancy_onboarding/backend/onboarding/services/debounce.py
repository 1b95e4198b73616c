# backend/onboarding/services/debounce.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Hashable, Optional

log = logging.getLogger(__name__)


class Debouncer:
    """
    Keyed schedule-replace-on-edit timer.

    schedule(key, fn) arms a timer that runs fn after `delay_seconds` of quiet;
    scheduling the same key again cancels the armed timer first, so only the
    last fn per key ever runs. Timers run on their own daemon threads.

    flush(key) runs the pending fn right away on the calling thread (used at
    shutdown and in tests); cancel(key) drops it.
    """

    def __init__(
        self,
        delay_seconds: float,
        *,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.delay_seconds = float(delay_seconds)
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timers: dict[Hashable, threading.Timer] = {}
        self._pending: dict[Hashable, Callable[[], None]] = {}

    def schedule(self, key: Hashable, fn: Callable[[], None]) -> None:
        with self._lock:
            old = self._timers.pop(key, None)
            if old is not None:
                old.cancel()

            timer = self._timer_factory(self.delay_seconds, self._fire, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            self._pending[key] = fn
            timer.start()

    def pending(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._pending

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
            fn = self._pending.pop(key, None)
        if timer is not None:
            timer.cancel()
        return fn is not None

    def flush(self, key: Hashable) -> bool:
        fn = self._take(key)
        if fn is None:
            return False
        self._run(key, fn)
        return True

    def flush_all(self) -> int:
        with self._lock:
            keys = list(self._pending.keys())
        return sum(1 for k in keys if self.flush(k))

    def shutdown(self, *, flush: bool = False) -> None:
        if flush:
            self.flush_all()
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self._pending.clear()
        for t in timers:
            t.cancel()

    def _take(self, key: Hashable) -> Optional[Callable[[], None]]:
        with self._lock:
            timer = self._timers.pop(key, None)
            fn = self._pending.pop(key, None)
        if timer is not None:
            timer.cancel()
        return fn

    def _fire(self, key: Hashable) -> None:
        with self._lock:
            # A newer schedule() may have replaced us between expiry and here.
            current = self._timers.get(key)
            if current is not None and current is not threading.current_thread():
                return
            self._timers.pop(key, None)
            fn = self._pending.pop(key, None)
        if fn is not None:
            self._run(key, fn)

    @staticmethod
    def _run(key: Hashable, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:
            # No caller to report to on a timer thread.
            log.exception("debounced call failed", extra={"debounce_key": str(key)})
