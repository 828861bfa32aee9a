from typing import Protocol

from libs.core.domain.entities import (
    AlertRequest,
    AlertResult,
    InboundReply,
    InferenceResult,
    PostRef,
    SensorSnapshot,
)


class RemoteServiceError(Exception):
    """Network or HTTP failure raised by a remote collaborator."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message
        self.status_code = status_code


class AlertSender(Protocol):
    """Outbound alert call used by the decision engine."""

    def send(self, request: AlertRequest) -> AlertResult: ...


class SocialClient(Protocol):
    """Social posting and notification contract."""

    def login(self) -> None: ...

    def upload_image(self, data: bytes, mime_type: str) -> dict[str, object]: ...

    def publish(
        self,
        text: str,
        images: list[tuple[dict[str, object], str]] | None = None,
    ) -> PostRef: ...

    def reply(self, text: str, parent: PostRef, root: PostRef) -> PostRef: ...

    def list_replies(self, limit: int = 50) -> list[InboundReply]: ...

    def mark_notifications_seen(self) -> None: ...


class TextGenerator(Protocol):
    """Text-generation contract used to compose reply text."""

    def generate(self, prompt: str) -> str: ...


class MapRenderer(Protocol):
    """Static map image contract."""

    def render_circle(self, lat: float, lng: float, radius_km: float) -> bytes: ...


class SensorSource(Protocol):
    """Read access to the latest sensor snapshot."""

    def latest(self) -> SensorSnapshot | None: ...


class InferenceClient(Protocol):
    """Frame inference contract."""

    def infer(self, image_base64: str) -> InferenceResult: ...
