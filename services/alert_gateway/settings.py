"""Environment-driven gateway configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from libs.core.application.alert_broadcast import (
    REPLY_CAMPAIGN_DURATION_SEC,
    REPLY_POLL_INTERVAL_SEC,
)
from libs.core.application.alert_engine import DEFAULT_RADIUS_KM
from libs.infra.groq.text_generator import DEFAULT_MODEL
from libs.infra.roboflow.workflow import DEFAULT_WORKFLOW_URL


@dataclass(frozen=True)
class Settings:
    bluesky_service_url: str = "https://bsky.social"
    bluesky_identifier: str = ""
    bluesky_password: str = ""
    groq_api_key: str = ""
    groq_model: str = DEFAULT_MODEL
    geoapify_api_key: str = ""
    roboflow_api_key: str = ""
    roboflow_workflow_url: str = DEFAULT_WORKFLOW_URL
    reply_poll_duration_sec: float = REPLY_CAMPAIGN_DURATION_SEC
    reply_poll_interval_sec: float = REPLY_POLL_INTERVAL_SEC
    alert_radius_km: float = DEFAULT_RADIUS_KM
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        env = os.environ
        return cls(
            bluesky_service_url=env.get("BLUESKY_SERVICE_URL", cls.bluesky_service_url),
            bluesky_identifier=env.get("BLUESKY_IDENTIFIER", ""),
            bluesky_password=env.get("BLUESKY_PASSWORD", ""),
            groq_api_key=env.get("GROQ_API_KEY", ""),
            groq_model=env.get("GROQ_MODEL", cls.groq_model),
            geoapify_api_key=env.get("GEOAPIFY_API_KEY", ""),
            roboflow_api_key=env.get("ROBOFLOW_API_KEY", ""),
            roboflow_workflow_url=env.get(
                "ROBOFLOW_WORKFLOW_URL", cls.roboflow_workflow_url
            ),
            reply_poll_duration_sec=float(
                env.get("REPLY_POLL_DURATION_SEC", cls.reply_poll_duration_sec)
            ),
            reply_poll_interval_sec=float(
                env.get("REPLY_POLL_INTERVAL_SEC", cls.reply_poll_interval_sec)
            ),
            alert_radius_km=float(env.get("ALERT_RADIUS_KM", cls.alert_radius_km)),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
