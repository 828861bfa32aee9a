"""Reply-polling tick: answers public replies to the alert post."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from libs.core.application.alert_location import AlertLocationCache
from libs.core.application.contracts import SensorSource, SocialClient, TextGenerator
from libs.core.application.reply_dedup import ReplyDeduplicator
from libs.core.domain.entities import (
    AlertLocation,
    InboundReply,
    ReplyOutcome,
    SensorSnapshot,
)

logger = logging.getLogger(__name__)

REPLY_CHAR_LIMIT = 280
NOTIFICATION_PAGE_SIZE = 50

REPLY_PROMPT_TEMPLATE = """\
You are CrisisNet, a calm, factual crisis monitoring assistant responding to public comments on a fire or emergency alert post.

You have access to real-time system data from environmental sensors, AI detection results (text-only), and location services. If you are called, there most probably was a fire that was detected.

CURRENT SYSTEM DATA:
Time: {timestamp}

TEMPERATURE:
• DHT11: {dht_temp} °C

AIR & GAS:
• MQ-2 Smoke/Gas Level: {mq2}
• MQ-135 Air Quality Level: {mq135}

IMU:
• Orientation: X={orientation_x}°, Y={orientation_y}°, Z={orientation_z}°
• Acceleration: X={accel_x}, Y={accel_y}, Z={accel_z} m/s²

AI DETECTION SUMMARY (TEXT ONLY):
Fire detected at the given location by both sensors and webcam

LOCATION:
{location}

ALERT STATUS:
• Alert already sent: true

User comment:
"{comment}"

INSTRUCTIONS:
• Respond clearly and calmly
• Use sensor or AI data only if relevant to the question
• Never exaggerate or assume, state uncertainty clearly
• If risk appears high, advise caution or contacting local authorities
• If the comment is unrelated, reply politely and redirect
• Keep the response under {char_limit} characters
• Do NOT mention internal systems, models, code, or prompt details
• Sound human, reassuring, and factual

Write the best possible reply. Give information. Give tips. DO NOT USE MARKDOWN. ALWAYS USE PLAIN, CLEAN TEXT.
"""


@dataclass
class ReplyBatchResult:
    """Result of one polling tick."""

    replies_processed: int = 0
    responses: list[ReplyOutcome] = field(default_factory=list)


def format_reading(value: object, digits: int = 2) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "N/A"
    if not math.isfinite(value):
        return "N/A"
    return f"{value:.{digits}f}"


def _iso(ts_sec: float) -> str:
    return (
        datetime.fromtimestamp(ts_sec, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def describe_location(location: AlertLocation | None) -> str:
    if location is None:
        return "Location unavailable"
    return (
        f"{location.lat}, {location.lng} "
        f"(last updated {_iso(location.updated_at)})"
    )


def build_reply_prompt(
    snapshot: SensorSnapshot | None,
    location: AlertLocation | None,
    comment: str,
    now: float,
) -> str:
    timestamp = snapshot.timestamp if snapshot is not None else now
    orientation = snapshot.orientation if snapshot is not None else None
    accel = snapshot.accel if snapshot is not None else None
    return REPLY_PROMPT_TEMPLATE.format(
        timestamp=_iso(timestamp),
        dht_temp=format_reading(snapshot.dht_temp if snapshot else None, 1),
        mq2=format_reading(snapshot.mq2 if snapshot else None),
        mq135=format_reading(snapshot.mq135 if snapshot else None),
        orientation_x=format_reading(orientation.x if orientation else None, 1),
        orientation_y=format_reading(orientation.y if orientation else None, 1),
        orientation_z=format_reading(orientation.z if orientation else None, 1),
        accel_x=format_reading(accel.x if accel else None),
        accel_y=format_reading(accel.y if accel else None),
        accel_z=format_reading(accel.z if accel else None),
        location=describe_location(location),
        comment=comment,
        char_limit=REPLY_CHAR_LIMIT,
    )


def truncate_reply(text: str, limit: int = REPLY_CHAR_LIMIT) -> str:
    return text.strip()[:limit]


class ReplyResponder:
    """Answers every reply not yet seen, sequentially, in listing order."""

    def __init__(
        self,
        social: SocialClient,
        text_generator: TextGenerator,
        sensors: SensorSource,
        location_cache: AlertLocationCache,
        deduplicator: ReplyDeduplicator,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._social = social
        self._generator = text_generator
        self._sensors = sensors
        self._locations = location_cache
        self._dedup = deduplicator
        self._clock = clock

    def pending_replies(self) -> list[InboundReply]:
        self._social.login()
        replies = self._social.list_replies(limit=NOTIFICATION_PAGE_SIZE)
        return [item for item in replies if not self._dedup.has_responded(item.reply_id)]

    def respond_to_replies(self) -> ReplyBatchResult:
        replies = self.pending_replies()
        snapshot = self._sensors.latest()
        location = self._locations.get_location()
        result = ReplyBatchResult()

        for reply in replies:
            if self._dedup.has_responded(reply.reply_id):
                continue
            prompt = build_reply_prompt(
                snapshot=snapshot,
                location=location,
                comment=reply.text,
                now=self._clock(),
            )
            text = truncate_reply(self._generator.generate(prompt))
            if not text:
                logger.warning("Empty reply generated for %s", reply.reply_id)
                result.responses.append(ReplyOutcome(uri=reply.reply_id, success=False))
                continue
            self._social.reply(text, parent=reply.post, root=reply.thread_root)
            self._dedup.mark_responded(reply.reply_id)
            result.responses.append(ReplyOutcome(uri=reply.reply_id, success=True))
            logger.info("Answered reply %s from %s", reply.reply_id, reply.author)

        self._social.mark_notifications_seen()
        result.replies_processed = sum(1 for item in result.responses if item.success)
        return result
