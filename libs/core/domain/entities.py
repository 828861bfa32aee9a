from dataclasses import dataclass, field
from typing import Literal, Optional

AlertStatus = Literal["idle", "queued_for_location", "sending", "sent", "error"]


@dataclass
class Detection:
    """Single labeled object produced by one inference cycle."""

    label: str
    confidence: float


@dataclass
class AlertState:
    """Alert lifecycle state of one dashboard session."""

    status: AlertStatus = "idle"
    error: Optional[str] = None


@dataclass
class AlertLocation:
    """Most recent incident coordinates written by a successful alert."""

    lat: float
    lng: float
    updated_at: float


@dataclass
class AlertRequest:
    """Outbound alert call payload."""

    lat: float | None
    lng: float | None
    radius_km: float
    image: bytes | None = None


@dataclass
class AlertResult:
    """Outcome of an outbound alert call."""

    ok: bool
    error: str | None = None
    status_code: int | None = None


@dataclass
class PostRef:
    """Strong reference to a social post."""

    uri: str
    cid: str


@dataclass
class InboundReply:
    """Reply to the alert post returned by the notification service."""

    reply_id: str
    author: str
    text: str
    post: PostRef
    thread_root: PostRef
    indexed_at: str | None = None


@dataclass
class ReplyOutcome:
    """Per-reply result of one polling tick."""

    uri: str
    success: bool


@dataclass
class Vector3:
    x: float
    y: float
    z: float


@dataclass
class Calibration:
    sys: int
    gyro: int
    accel: int
    mag: int


@dataclass
class SensorSnapshot:
    """Latest environmental reading pushed by the sensor board."""

    mq2: float
    mq135: float
    dht_temp: float
    bno_temp: float
    orientation: Vector3
    gyro: Vector3
    accel: Vector3
    calibration: Calibration
    timestamp: float


@dataclass
class InferencePrediction:
    """Bounding box prediction returned by the inference workflow."""

    x: float
    y: float
    width: float
    height: float
    confidence: float
    label: str


@dataclass
class InferenceResult:
    predictions: list[InferencePrediction] = field(default_factory=list)
    image: dict[str, int] | None = None
