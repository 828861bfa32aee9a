from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from libs.core.application.alert_broadcast import (
    AlertBroadcastService,
    BroadcastAlertSender,
)
from libs.core.application.alert_engine import AlertDecisionEngine
from libs.core.application.alert_location import AlertLocationCache
from libs.core.application.contracts import (
    InferenceClient,
    MapRenderer,
    SocialClient,
    TextGenerator,
)
from libs.core.application.job_supervisor import (
    RecurringJobSupervisor,
    Scheduler,
    spawn_daemon,
)
from libs.core.application.reply_dedup import ReplyDeduplicator
from libs.core.application.reply_responder import ReplyResponder
from libs.infra.bluesky.client import BlueskyClient
from libs.infra.geoapify.static_map import GeoapifyMapRenderer
from libs.infra.groq.text_generator import GroqTextGenerator
from libs.infra.roboflow.workflow import RoboflowWorkflowClient
from services.alert_gateway.infrastructure.interval_timer import ThreadingScheduler
from services.alert_gateway.infrastructure.memory_store import (
    InMemorySensorStore,
    InMemorySessionStore,
)
from services.alert_gateway.settings import Settings

REPLY_POLLER_NAME = "reply-poller"


@dataclass
class GatewayContext:
    """Process-wide collaborators shared by every request handler."""

    settings: Settings
    location_cache: AlertLocationCache
    deduplicator: ReplyDeduplicator
    sensors: InMemorySensorStore
    sessions: InMemorySessionStore
    social: SocialClient
    inference: InferenceClient
    responder: ReplyResponder
    reply_supervisor: RecurringJobSupervisor
    broadcaster: AlertBroadcastService


def build_context(
    settings: Settings,
    social: SocialClient | None = None,
    text_generator: TextGenerator | None = None,
    map_renderer: MapRenderer | None = None,
    inference: InferenceClient | None = None,
    scheduler: Scheduler | None = None,
    spawn: Callable[[Callable[[], None]], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> GatewayContext:
    social = social or BlueskyClient(
        identifier=settings.bluesky_identifier,
        password=settings.bluesky_password,
        service_url=settings.bluesky_service_url,
    )
    text_generator = text_generator or GroqTextGenerator(
        api_key=settings.groq_api_key,
        model=settings.groq_model,
    )
    map_renderer = map_renderer or GeoapifyMapRenderer(settings.geoapify_api_key)
    inference = inference or RoboflowWorkflowClient(
        api_key=settings.roboflow_api_key,
        workflow_url=settings.roboflow_workflow_url,
    )

    location_cache = AlertLocationCache()
    deduplicator = ReplyDeduplicator()
    sensors = InMemorySensorStore()
    responder = ReplyResponder(
        social=social,
        text_generator=text_generator,
        sensors=sensors,
        location_cache=location_cache,
        deduplicator=deduplicator,
    )
    reply_supervisor = RecurringJobSupervisor(
        name=REPLY_POLLER_NAME,
        action=responder.respond_to_replies,
        scheduler=scheduler or ThreadingScheduler(),
        clock=clock,
        spawn=spawn or spawn_daemon,
    )
    broadcaster = AlertBroadcastService(
        social=social,
        map_renderer=map_renderer,
        location_cache=location_cache,
        reply_supervisor=reply_supervisor,
        campaign_duration_sec=settings.reply_poll_duration_sec,
        poll_interval_sec=settings.reply_poll_interval_sec,
    )
    sender = BroadcastAlertSender(broadcaster)
    sessions = InMemorySessionStore(
        engine_factory=lambda: AlertDecisionEngine(
            sender=sender,
            radius_km=settings.alert_radius_km,
        )
    )
    return GatewayContext(
        settings=settings,
        location_cache=location_cache,
        deduplicator=deduplicator,
        sensors=sensors,
        sessions=sessions,
        social=social,
        inference=inference,
        responder=responder,
        reply_supervisor=reply_supervisor,
        broadcaster=broadcaster,
    )


_context = build_context(Settings.from_env())


def get_context() -> GatewayContext:
    return _context


def install_context(context: GatewayContext) -> None:
    global _context
    _context = context


def reset_state() -> None:
    _context.location_cache.clear()
    _context.deduplicator.clear()
    _context.sensors.clear()
    _context.sessions.clear()
    _context.reply_supervisor.reset()
