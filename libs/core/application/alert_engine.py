"""Per-session alert decision state machine."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from libs.core.application.contracts import AlertSender, RemoteServiceError
from libs.core.domain.entities import (
    AlertRequest,
    AlertResult,
    AlertState,
    AlertStatus,
    Detection,
)

logger = logging.getLogger(__name__)

HAZARD_LABELS = frozenset({"fire", "flame", "smoke"})
HAZARD_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_RADIUS_KM = 50.0

_BLOCKING_STATUSES = ("sending", "sent")


def has_hazard(
    detections: Iterable[Detection],
    threshold: float = HAZARD_CONFIDENCE_THRESHOLD,
) -> bool:
    return any(
        item.label.lower() in HAZARD_LABELS and item.confidence > threshold
        for item in detections
    )


class AlertDecisionEngine:
    """Turns detection batches and a late location into at most one alert.

    Every entry point runs under one session lock, so detection batches,
    location updates and manual triggers are applied in arrival order. The
    lock is released while the outbound call is in flight; the ``sending``
    status blocks any other attempt until it resolves.
    """

    def __init__(
        self,
        sender: AlertSender,
        radius_km: float = DEFAULT_RADIUS_KM,
        on_transition: Callable[[AlertStatus, AlertStatus], None] | None = None,
    ) -> None:
        self._sender = sender
        self._radius_km = radius_km
        self._on_transition = on_transition
        self._lock = threading.Lock()
        self._state = AlertState()
        self._location: tuple[float, float] | None = None
        self._pending_image: bytes | None = None
        self.history: list[AlertStatus] = [self._state.status]

    @property
    def state(self) -> AlertState:
        with self._lock:
            return AlertState(status=self._state.status, error=self._state.error)

    @property
    def location(self) -> tuple[float, float] | None:
        with self._lock:
            return self._location

    @property
    def pending_image(self) -> bytes | None:
        with self._lock:
            return self._pending_image

    def on_detections(
        self,
        detections: list[Detection],
        image: bytes | None = None,
    ) -> AlertStatus:
        if not has_hazard(detections):
            with self._lock:
                return self._state.status
        return self._request_send(image=image, trigger="detection")

    def on_location(self, lat: float, lng: float) -> AlertStatus:
        with self._lock:
            self._location = (lat, lng)
            if self._state.status != "queued_for_location":
                return self._state.status
            image = self._pending_image
            self._pending_image = None
            request = self._begin_sending((lat, lng), image)
        return self._dispatch(request)

    def request_manual_send(self, image: bytes | None = None) -> AlertStatus:
        return self._request_send(image=image, trigger="manual")

    def _request_send(self, image: bytes | None, trigger: str) -> AlertStatus:
        with self._lock:
            if self._state.status in _BLOCKING_STATUSES:
                logger.debug(
                    "Ignoring %s trigger while alert is %s",
                    trigger,
                    self._state.status,
                )
                return self._state.status
            if self._location is None:
                if image is not None:
                    self._pending_image = image
                self._transition("queued_for_location")
                return self._state.status
            if image is None:
                image = self._pending_image
            self._pending_image = None
            request = self._begin_sending(self._location, image)
        return self._dispatch(request)

    def _begin_sending(
        self,
        location: tuple[float, float],
        image: bytes | None,
    ) -> AlertRequest:
        lat, lng = location
        self._state.error = None
        self._transition("sending")
        return AlertRequest(lat=lat, lng=lng, radius_km=self._radius_km, image=image)

    def _dispatch(self, request: AlertRequest) -> AlertStatus:
        try:
            result = self._sender.send(request)
        except RemoteServiceError as error:
            result = AlertResult(
                ok=False,
                error=str(error),
                status_code=error.status_code,
            )
        except Exception as error:
            logger.exception("Alert sender raised unexpectedly")
            result = AlertResult(ok=False, error=str(error) or type(error).__name__)

        with self._lock:
            if result.ok:
                self._transition("sent")
                return self._state.status
            self._state.error = result.error or "Failed to send alert"
            logger.warning("Alert send failed: %s", self._state.error)
            self._transition("error")
            # Failed sends roll back so a later detection can retry.
            self._transition("idle")
            return self._state.status

    def _transition(self, status: AlertStatus) -> None:
        previous = self._state.status
        if previous == status:
            return
        self._state.status = status
        self.history.append(status)
        logger.info("Alert state %s -> %s", previous, status)
        if self._on_transition is not None:
            self._on_transition(previous, status)
