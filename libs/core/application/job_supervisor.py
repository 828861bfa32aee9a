"""At-most-one-concurrent, deadline-bounded recurring job runner."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Repeating timer backend."""

    def call_every(
        self,
        interval_sec: float,
        callback: Callable[[], None],
    ) -> object: ...

    def cancel(self, handle: object) -> None: ...


@dataclass
class JobSupervisorState:
    """Shared schedule record of one named job."""

    timer_handle: object | None = None
    running_until: float = 0.0
    is_running: bool = False


class JobAlreadyRunningError(RuntimeError):
    """Raised when a run is requested while another is still in flight."""


def spawn_daemon(target: Callable[[], None]) -> None:
    thread = threading.Thread(target=target, daemon=True)
    thread.start()


class RecurringJobSupervisor:
    """Runs ``action`` every ``interval_sec`` until the campaign deadline lapses.

    Overlapping ``start`` calls coalesce into one timer and only push the
    deadline forward. A firing that finds the previous run still in flight
    is dropped, never queued.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], object],
        scheduler: Scheduler,
        clock: Callable[[], float] = time.monotonic,
        spawn: Callable[[Callable[[], None]], None] = spawn_daemon,
    ) -> None:
        self.name = name
        self._action = action
        self._scheduler = scheduler
        self._clock = clock
        self._spawn = spawn
        self._state_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._state = JobSupervisorState()
        # Run counters are written under _state_lock only.
        self.completed_runs = 0
        self.failed_runs = 0
        self.skipped_runs = 0

    @property
    def state(self) -> JobSupervisorState:
        with self._state_lock:
            return JobSupervisorState(
                timer_handle=self._state.timer_handle,
                running_until=self._state.running_until,
                is_running=self._state.is_running,
            )

    @property
    def is_armed(self) -> bool:
        with self._state_lock:
            return self._state.timer_handle is not None

    def start(self, duration_sec: float, interval_sec: float) -> None:
        with self._state_lock:
            deadline = self._clock() + duration_sec
            self._state.running_until = max(self._state.running_until, deadline)
            if self._state.timer_handle is not None:
                logger.info(
                    "Job %s already armed, deadline extended to %.1f",
                    self.name,
                    self._state.running_until,
                )
                return
            self._state.timer_handle = self._scheduler.call_every(
                interval_sec, self._on_tick
            )
            logger.info(
                "Job %s armed every %.1fs until %.1f",
                self.name,
                interval_sec,
                self._state.running_until,
            )
        self._spawn(self._run_once)

    def reset(self) -> None:
        with self._state_lock:
            handle = self._state.timer_handle
            self._state.timer_handle = None
            self._state.running_until = 0.0
            self.completed_runs = 0
            self.failed_runs = 0
            self.skipped_runs = 0
        if handle is not None:
            self._scheduler.cancel(handle)

    def run_now(self) -> object:
        """Runs the action on the caller's thread under the single-flight guard.

        Raises ``JobAlreadyRunningError`` when another run is in flight. Errors
        from the action propagate to the caller.
        """
        if not self._run_lock.acquire(blocking=False):
            with self._state_lock:
                self.skipped_runs += 1
            raise JobAlreadyRunningError(f"Job {self.name} is already running")
        with self._state_lock:
            self._state.is_running = True
        try:
            result = self._action()
        except Exception:
            with self._state_lock:
                self.failed_runs += 1
            raise
        else:
            with self._state_lock:
                self.completed_runs += 1
            return result
        finally:
            with self._state_lock:
                self._state.is_running = False
            self._run_lock.release()

    def _on_tick(self) -> None:
        with self._state_lock:
            if self._state.timer_handle is None:
                return
            if self._clock() > self._state.running_until:
                handle = self._state.timer_handle
                self._state.timer_handle = None
                self._scheduler.cancel(handle)
                logger.info("Job %s deadline lapsed, timer stopped", self.name)
                return
        self._spawn(self._run_once)

    def _run_once(self) -> None:
        try:
            self.run_now()
        except JobAlreadyRunningError:
            logger.debug("Job %s still running, tick dropped", self.name)
        except Exception:
            logger.exception("Job %s run failed", self.name)
