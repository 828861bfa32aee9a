"""In-memory storage for sensor readings and dashboard sessions."""

from __future__ import annotations

import threading
from collections.abc import Callable
from uuid import uuid4

from libs.core.application.alert_engine import AlertDecisionEngine
from libs.core.domain.entities import SensorSnapshot


class InMemorySensorStore:
    """Latest sensor snapshot, last write wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: SensorSnapshot | None = None

    def save(self, snapshot: SensorSnapshot) -> None:
        with self._lock:
            self._latest = snapshot

    def latest(self) -> SensorSnapshot | None:
        with self._lock:
            return self._latest

    def clear(self) -> None:
        with self._lock:
            self._latest = None


class InMemorySessionStore:
    """Alert decision engines keyed by dashboard session id."""

    def __init__(self, engine_factory: Callable[[], AlertDecisionEngine]) -> None:
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._sessions: dict[str, AlertDecisionEngine] = {}

    def create(self) -> tuple[str, AlertDecisionEngine]:
        session_id = str(uuid4())
        engine = self._engine_factory()
        with self._lock:
            self._sessions[session_id] = engine
        return session_id, engine

    def get(self, session_id: str) -> AlertDecisionEngine | None:
        with self._lock:
            return self._sessions.get(session_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
