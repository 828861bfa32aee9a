"""Threading scheduler tests."""

import threading

from services.alert_gateway.infrastructure.interval_timer import ThreadingScheduler


def test_timer_fires_repeatedly_until_cancelled() -> None:
    fired = threading.Semaphore(0)
    calls: list[int] = []

    def callback() -> None:
        calls.append(1)
        fired.release()

    scheduler = ThreadingScheduler()
    handle = scheduler.call_every(0.01, callback)

    assert fired.acquire(timeout=2.0)
    assert fired.acquire(timeout=2.0)

    scheduler.cancel(handle)
    handle._thread.join(2.0)
    count = len(calls)

    assert not handle._thread.is_alive()
    assert count >= 2
    assert len(calls) == count


def test_failing_callback_does_not_stop_timer(caplog) -> None:
    recovered = threading.Event()
    attempts: list[int] = []

    def callback() -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("reply service down")
        recovered.set()

    scheduler = ThreadingScheduler()
    handle = scheduler.call_every(0.01, callback)

    assert recovered.wait(2.0)
    scheduler.cancel(handle)
    handle._thread.join(2.0)

    assert len(attempts) >= 2
    assert "Interval timer callback failed" in caplog.text


def test_cancel_ignores_foreign_handles() -> None:
    ThreadingScheduler().cancel(object())
