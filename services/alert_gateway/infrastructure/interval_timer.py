"""Daemon-thread repeating timers backing the reply poller."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class _IntervalTimer:
    def __init__(self, interval_sec: float, callback: Callable[[], None]) -> None:
        self._interval_sec = interval_sec
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval_sec):
            try:
                self._callback()
            except Exception:
                logger.exception("Interval timer callback failed")


class ThreadingScheduler:
    """Scheduler whose handles are background threads firing every interval."""

    def call_every(
        self,
        interval_sec: float,
        callback: Callable[[], None],
    ) -> object:
        timer = _IntervalTimer(interval_sec=interval_sec, callback=callback)
        timer.start()
        return timer

    def cancel(self, handle: object) -> None:
        if isinstance(handle, _IntervalTimer):
            handle.stop()
