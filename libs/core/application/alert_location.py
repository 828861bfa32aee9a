"""Process-wide holder of the latest alerted incident coordinates."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from libs.core.domain.entities import AlertLocation


class AlertLocationCache:
    """Last-write-wins location record, shared by all request handlers."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._location: AlertLocation | None = None

    def set_location(self, lat: float, lng: float) -> AlertLocation:
        location = AlertLocation(lat=lat, lng=lng, updated_at=self._clock())
        with self._lock:
            self._location = location
        return location

    def get_location(self) -> AlertLocation | None:
        with self._lock:
            return self._location

    def clear(self) -> None:
        with self._lock:
            self._location = None
