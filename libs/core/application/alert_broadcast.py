"""Public fire alert broadcast use case."""

from __future__ import annotations

import logging

from libs.core.application.alert_location import AlertLocationCache
from libs.core.application.contracts import (
    MapRenderer,
    RemoteServiceError,
    SocialClient,
)
from libs.core.application.job_supervisor import RecurringJobSupervisor
from libs.core.domain.entities import AlertRequest, AlertResult, PostRef

logger = logging.getLogger(__name__)

REPLY_CAMPAIGN_DURATION_SEC = 10 * 60
REPLY_POLL_INTERVAL_SEC = 5.0


class AlertBroadcastError(Exception):
    """Raised when the public alert could not be posted."""


def build_alert_text(lat: float | None, lng: float | None) -> str:
    if lat is None or lng is None:
        return (
            "🔥 FIRE ALERT 🔥\n \n \nLocation: unknown\n"
            "Stay safe and follow official guidance."
        )
    return (
        "🔥 FIRE ALERT 🔥\n \n \n"
        f"Location: {lat}, {lng}\n"
        f"Google Maps: https://www.google.com/maps/search/?api=1&query={lat},{lng} \n"
        "Stay safe and follow official guidance."
    )


class AlertBroadcastService:
    """Posts the alert, records its location and starts the reply campaign."""

    def __init__(
        self,
        social: SocialClient,
        map_renderer: MapRenderer,
        location_cache: AlertLocationCache,
        reply_supervisor: RecurringJobSupervisor,
        campaign_duration_sec: float = REPLY_CAMPAIGN_DURATION_SEC,
        poll_interval_sec: float = REPLY_POLL_INTERVAL_SEC,
    ) -> None:
        self._social = social
        self._maps = map_renderer
        self._locations = location_cache
        self._supervisor = reply_supervisor
        self._campaign_duration_sec = campaign_duration_sec
        self._poll_interval_sec = poll_interval_sec

    def broadcast(self, request: AlertRequest) -> PostRef:
        lat, lng = request.lat, request.lng
        try:
            self._social.login()
            images: list[tuple[dict[str, object], str]] = []
            if lat is not None and lng is not None:
                map_png = self._maps.render_circle(lat, lng, request.radius_km)
                map_blob = self._social.upload_image(map_png, "image/png")
                images.append(
                    (
                        map_blob,
                        f"Map showing fire affected area at coordinates {lat}, {lng}",
                    )
                )
            if request.image:
                webcam_blob = self._social.upload_image(request.image, "image/jpeg")
                images.insert(0, (webcam_blob, "Fire detected by webcam"))
            post = self._social.publish(build_alert_text(lat, lng), images=images)
        except RemoteServiceError as error:
            logger.warning("Fire alert broadcast failed: %s", error)
            raise AlertBroadcastError(str(error)) from error

        logger.info("Fire alert posted as %s", post.uri)
        if lat is not None and lng is not None:
            self._locations.set_location(lat, lng)
        self._supervisor.start(
            duration_sec=self._campaign_duration_sec,
            interval_sec=self._poll_interval_sec,
        )
        return post


class BroadcastAlertSender:
    """In-process alert sender backed by the broadcast service."""

    def __init__(self, service: AlertBroadcastService) -> None:
        self._service = service

    def send(self, request: AlertRequest) -> AlertResult:
        try:
            self._service.broadcast(request)
        except AlertBroadcastError as error:
            return AlertResult(ok=False, error=str(error), status_code=500)
        return AlertResult(ok=True)
