import base64
import binascii
import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from libs.core.application.alert_broadcast import AlertBroadcastError
from libs.core.application.alert_engine import AlertDecisionEngine
from libs.core.application.contracts import RemoteServiceError
from libs.core.application.job_supervisor import JobAlreadyRunningError
from libs.core.domain.entities import (
    AlertRequest,
    Calibration,
    Detection,
    SensorSnapshot,
    Vector3,
)
from services.alert_gateway.dependencies import get_context

logger = logging.getLogger(__name__)

router = APIRouter()


class VectorModel(BaseModel):
    x: float
    y: float
    z: float


class CalibrationModel(BaseModel):
    sys: int
    gyro: int
    accel: int
    mag: int


class SensorReadingRequest(BaseModel):
    mq2: float
    mq135: float
    dht_temp: float
    bno_temp: float
    orientation: VectorModel
    gyro: VectorModel
    accel: VectorModel
    calibration: CalibrationModel


class FireAlertRequest(BaseModel):
    lat: float | None = None
    lng: float | None = None
    radius_km: float | None = Field(default=None, gt=0.0)
    image: str | None = None


class InferenceRequest(BaseModel):
    image_base64: str | None = None


class DetectionRequest(BaseModel):
    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class DetectionBatchRequest(BaseModel):
    detections: list[DetectionRequest] = Field(default_factory=list)
    image: str | None = None


class LocationRequest(BaseModel):
    lat: float
    lng: float


class ManualSendRequest(BaseModel):
    image: str | None = None


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict[str, str]:
    return {"status": "ready"}


@router.get("/version")
def version() -> dict[str, str]:
    return {"version": "0.1.0"}


@router.post("/v1/sensors")
def ingest_sensor_reading(payload: SensorReadingRequest) -> dict[str, bool]:
    context = get_context()
    context.sensors.save(
        SensorSnapshot(
            mq2=payload.mq2,
            mq135=payload.mq135,
            dht_temp=payload.dht_temp,
            bno_temp=payload.bno_temp,
            orientation=Vector3(**payload.orientation.model_dump()),
            gyro=Vector3(**payload.gyro.model_dump()),
            accel=Vector3(**payload.accel.model_dump()),
            calibration=Calibration(**payload.calibration.model_dump()),
            timestamp=time.time(),
        )
    )
    return {"success": True}


@router.get("/v1/sensors")
def get_latest_sensor_reading() -> dict[str, object]:
    snapshot = get_context().sensors.latest()
    if snapshot is None:
        return {"error": "No data received yet"}
    return asdict(snapshot)


@router.post("/v1/inference")
def run_inference(payload: InferenceRequest) -> dict[str, object]:
    if not payload.image_base64:
        raise HTTPException(status_code=400, detail="Missing image_base64")
    try:
        result = get_context().inference.infer(payload.image_base64)
    except RemoteServiceError as error:
        logger.warning("Inference request failed: %s", error)
        raise HTTPException(
            status_code=error.status_code or 500,
            detail=error.message,
        ) from error
    return {
        "predictions": [
            {
                "x": item.x,
                "y": item.y,
                "width": item.width,
                "height": item.height,
                "confidence": item.confidence,
                "class": item.label,
            }
            for item in result.predictions
        ],
        "image": result.image,
    }


@router.post("/v1/fire-detection")
def post_fire_alert(payload: FireAlertRequest) -> JSONResponse:
    context = get_context()
    request = AlertRequest(
        lat=payload.lat,
        lng=payload.lng,
        radius_km=payload.radius_km or context.settings.alert_radius_km,
        image=_decode_image(payload.image),
    )
    try:
        context.broadcaster.broadcast(request)
    except AlertBroadcastError:
        return JSONResponse(status_code=500, content={"error": "Failed to post alert"})
    return JSONResponse(content={"success": True})


@router.post("/v1/replies/poll")
def poll_replies() -> JSONResponse:
    try:
        result = get_context().reply_supervisor.run_now()
    except JobAlreadyRunningError:
        return JSONResponse(
            status_code=409,
            content={"success": False, "skipped": True},
        )
    except RemoteServiceError:
        logger.exception("Reply polling failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process comments"},
        )
    return JSONResponse(
        content={
            "success": True,
            "replies_processed": result.replies_processed,
            "responses": [asdict(item) for item in result.responses],
        }
    )


@router.get("/v1/replies")
def list_unanswered_replies() -> JSONResponse:
    try:
        replies = get_context().responder.pending_replies()
    except RemoteServiceError:
        logger.exception("Reply listing failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch comments"},
        )
    return JSONResponse(
        content={
            "unread_count": len(replies),
            "notifications": [
                {
                    "uri": item.reply_id,
                    "author": item.author,
                    "indexed_at": item.indexed_at,
                }
                for item in replies
            ],
        }
    )


@router.get("/v1/replies/poller")
def get_reply_poller_status() -> dict[str, object]:
    supervisor = get_context().reply_supervisor
    state = supervisor.state
    return {
        "armed": state.timer_handle is not None,
        "running_until": state.running_until,
        "is_running": state.is_running,
        "completed_runs": supervisor.completed_runs,
        "failed_runs": supervisor.failed_runs,
        "skipped_runs": supervisor.skipped_runs,
        "answered_replies": len(get_context().deduplicator),
    }


@router.post("/v1/sessions")
def create_session() -> dict[str, object]:
    session_id, engine = get_context().sessions.create()
    return _session_to_dict(session_id, engine)


@router.get("/v1/sessions/{session_id}/alert")
def get_session_alert(session_id: str) -> dict[str, object]:
    return _session_to_dict(session_id, _get_engine(session_id))


@router.post("/v1/sessions/{session_id}/detections")
def ingest_detection_batch(
    session_id: str,
    payload: DetectionBatchRequest,
) -> dict[str, object]:
    engine = _get_engine(session_id)
    detections = [
        Detection(label=item.label, confidence=item.confidence)
        for item in payload.detections
    ]
    engine.on_detections(detections, image=_decode_image(payload.image))
    return _session_to_dict(session_id, engine)


@router.post("/v1/sessions/{session_id}/location")
def resolve_session_location(
    session_id: str,
    payload: LocationRequest,
) -> dict[str, object]:
    engine = _get_engine(session_id)
    engine.on_location(lat=payload.lat, lng=payload.lng)
    return _session_to_dict(session_id, engine)


@router.post("/v1/sessions/{session_id}/alert/send")
def send_session_alert(
    session_id: str,
    payload: ManualSendRequest,
) -> dict[str, object]:
    engine = _get_engine(session_id)
    engine.request_manual_send(image=_decode_image(payload.image))
    return _session_to_dict(session_id, engine)


def _get_engine(session_id: str) -> AlertDecisionEngine:
    engine = get_context().sessions.get(session_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return engine


def _session_to_dict(session_id: str, engine: AlertDecisionEngine) -> dict[str, object]:
    state = engine.state
    location = engine.location
    return {
        "session_id": session_id,
        "status": state.status,
        "error": state.error,
        "location": (
            {"lat": location[0], "lng": location[1]} if location is not None else None
        ),
        "has_pending_image": engine.pending_image is not None,
    }


def _decode_image(value: str | None) -> bytes | None:
    if not value:
        return None
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as error:
        raise HTTPException(status_code=400, detail="Invalid base64 image") from error
