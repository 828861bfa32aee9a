"""Gateway alert flow API tests."""

import base64
from typing import Any

from fakes import (
    BlockingTextGenerator,
    FakeClock,
    FakeInferenceClient,
    FakeMapRenderer,
    FakeSocialClient,
    FakeTextGenerator,
    ManualScheduler,
    ThreadSpawner,
    inline_spawn,
    make_reply,
)
from fastapi.testclient import TestClient

from services.alert_gateway.app import app
from services.alert_gateway.dependencies import (
    build_context,
    install_context,
    reset_state,
)
from services.alert_gateway.settings import Settings

client = TestClient(app)

social = FakeSocialClient()
generator = FakeTextGenerator()
maps = FakeMapRenderer()
scheduler = ManualScheduler()
clock = FakeClock()

FRAME = base64.b64encode(b"webcam-frame").decode("ascii")
SENSOR_READING = {
    "mq2": 412.0,
    "mq135": 230.5,
    "dht_temp": 48.0,
    "bno_temp": 46.5,
    "orientation": {"x": 0.0, "y": 1.0, "z": -0.5},
    "gyro": {"x": 0.0, "y": 0.0, "z": 0.0},
    "accel": {"x": 0.01, "y": 0.02, "z": 9.81},
    "calibration": {"sys": 3, "gyro": 3, "accel": 3, "mag": 2},
}


def setup_function() -> None:
    global social, generator, maps, scheduler, clock
    social = FakeSocialClient()
    generator = FakeTextGenerator()
    maps = FakeMapRenderer()
    scheduler = ManualScheduler()
    clock = FakeClock()
    install_context(
        build_context(
            Settings(reply_poll_duration_sec=600.0, reply_poll_interval_sec=5.0),
            social=social,
            text_generator=generator,
            map_renderer=maps,
            inference=FakeInferenceClient(),
            scheduler=scheduler,
            spawn=inline_spawn,
            clock=clock,
        )
    )
    reset_state()


def test_gateway_status_endpoints() -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/ready").json() == {"status": "ready"}
    assert client.get("/version").json() == {"version": "0.1.0"}

    poller = client.get("/v1/replies/poller")

    assert poller.status_code == 200
    assert poller.json() == {
        "armed": False,
        "running_until": 0.0,
        "is_running": False,
        "completed_runs": 0,
        "failed_runs": 0,
        "skipped_runs": 0,
        "answered_replies": 0,
    }


def _create_session() -> str:
    response = client.post("/v1/sessions")
    assert response.status_code == 200
    assert response.json()["status"] == "idle"
    return response.json()["session_id"]


def _post_detections(session_id: str, detections: list[dict[str, Any]]) -> dict[str, Any]:
    response = client.post(
        f"/v1/sessions/{session_id}/detections",
        json={"detections": detections, "image": FRAME},
    )
    assert response.status_code == 200
    return response.json()


def test_fire_alert_posts_images_records_location_and_arms_poller() -> None:
    response = client.post(
        "/v1/fire-detection",
        json={"lat": 12.5, "lng": 77.25, "radius_km": 5, "image": FRAME},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    text, images = social.published[0]
    assert "Location: 12.5, 77.25" in text
    assert "query=12.5,77.25" in text
    assert [alt for _, alt in images] == [
        "Fire detected by webcam",
        "Map showing fire affected area at coordinates 12.5, 77.25",
    ]
    assert social.uploads[0] == (b"map-png", "image/png")
    assert social.uploads[1] == (b"webcam-frame", "image/jpeg")
    assert maps.calls == [(12.5, 77.25, 5.0)]

    poller = client.get("/v1/replies/poller").json()
    assert poller["armed"] is True
    assert poller["running_until"] == 600.0
    assert poller["completed_runs"] == 1


def test_repeated_alerts_share_one_poller() -> None:
    client.post("/v1/fire-detection", json={"lat": 1.0, "lng": 2.0})
    clock.now = 100.0
    client.post("/v1/fire-detection", json={"lat": 3.0, "lng": 4.0})

    poller = client.get("/v1/replies/poller").json()
    assert scheduler.armed_total == 1
    assert poller["running_until"] == 700.0
    assert len(social.published) == 2


def test_fire_alert_failure_returns_500_and_leaves_state_untouched() -> None:
    social.fail_publish = True

    response = client.post("/v1/fire-detection", json={"lat": 1.0, "lng": 2.0})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to post alert"}
    assert client.get("/v1/replies/poller").json()["armed"] is False


def test_fire_alert_rejects_bad_image() -> None:
    response = client.post(
        "/v1/fire-detection",
        json={"lat": 1.0, "lng": 2.0, "image": "not base64!"},
    )
    assert response.status_code == 400


def test_session_queues_fire_until_location_resolves() -> None:
    session_id = _create_session()

    queued = _post_detections(session_id, [{"label": "fire", "confidence": 0.9}])
    assert queued["status"] == "queued_for_location"
    assert queued["has_pending_image"] is True
    assert social.published == []

    response = client.post(
        f"/v1/sessions/{session_id}/location",
        json={"lat": 1.0, "lng": 2.0},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "sent"
    assert len(social.published) == 1
    assert "Location: 1.0, 2.0" in social.published[0][0]
    assert (b"webcam-frame", "image/jpeg") in social.uploads


def test_sent_session_ignores_further_triggers() -> None:
    session_id = _create_session()
    client.post(f"/v1/sessions/{session_id}/location", json={"lat": 1.0, "lng": 2.0})
    _post_detections(session_id, [{"label": "Flame", "confidence": 0.8}])

    _post_detections(session_id, [{"label": "fire", "confidence": 0.95}])
    manual = client.post(f"/v1/sessions/{session_id}/alert/send", json={})

    assert manual.json()["status"] == "sent"
    assert len(social.published) == 1


def test_failed_session_send_surfaces_error_and_allows_retry() -> None:
    session_id = _create_session()
    client.post(f"/v1/sessions/{session_id}/location", json={"lat": 1.0, "lng": 2.0})
    social.fail_publish = True

    failed = _post_detections(session_id, [{"label": "smoke", "confidence": 0.7}])
    assert failed["status"] == "idle"
    assert "rate limited" in failed["error"]

    social.fail_publish = False
    retried = client.post(f"/v1/sessions/{session_id}/alert/send", json={})

    assert retried.json()["status"] == "sent"
    assert retried.json()["error"] is None
    assert len(social.published) == 1


def test_unknown_session_returns_404() -> None:
    response = client.get("/v1/sessions/missing/alert")
    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found"


def test_sensor_reading_roundtrip() -> None:
    assert client.get("/v1/sensors").json() == {"error": "No data received yet"}

    response = client.post("/v1/sensors", json=SENSOR_READING)
    latest = client.get("/v1/sensors").json()

    assert response.json() == {"success": True}
    assert latest["dht_temp"] == 48.0
    assert latest["calibration"]["mag"] == 2
    assert "timestamp" in latest


def test_sensor_reading_validation() -> None:
    response = client.post("/v1/sensors", json={"mq2": "high"})
    assert response.status_code == 422


def test_poll_replies_answers_and_dedups() -> None:
    client.post("/v1/sensors", json=SENSOR_READING)
    social.replies = [make_reply(1), make_reply(2)]

    first = client.post("/v1/replies/poll")
    second = client.post("/v1/replies/poll")

    assert first.json()["replies_processed"] == 2
    assert first.json()["responses"] == [
        {"uri": "at://comment/1", "success": True},
        {"uri": "at://comment/2", "success": True},
    ]
    assert second.json()["replies_processed"] == 0
    assert len(social.posted_replies) == 2
    assert "DHT11: 48.0 °C" in generator.prompts[0]


def test_poll_replies_failure_returns_500() -> None:
    social.fail_listing = True

    response = client.post("/v1/replies/poll")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process comments"}


def test_list_unanswered_replies() -> None:
    social.replies = [make_reply(1), make_reply(2)]
    client.post("/v1/replies/poll")
    social.replies.append(make_reply(3))

    response = client.get("/v1/replies")

    assert response.status_code == 200
    assert response.json() == {
        "unread_count": 1,
        "notifications": [
            {
                "uri": "at://comment/3",
                "author": "user3.bsky.social",
                "indexed_at": "2026-10-16T12:00:00Z",
            }
        ],
    }


def test_supervised_ticks_answer_new_replies_until_deadline() -> None:
    client.post("/v1/fire-detection", json={"lat": 1.0, "lng": 2.0})
    social.replies = [make_reply(1)]

    clock.now = 5.0
    scheduler.fire()
    assert len(social.posted_replies) == 1
    assert "1.0, 2.0" in generator.prompts[0]

    social.replies.append(make_reply(2))
    clock.now = 601.0
    scheduler.fire()

    assert len(social.posted_replies) == 1
    assert client.get("/v1/replies/poller").json()["armed"] is False


def test_inference_proxy() -> None:
    missing = client.post("/v1/inference", json={})
    response = client.post("/v1/inference", json={"image_base64": FRAME})

    assert missing.status_code == 400
    assert response.status_code == 200
    assert response.json()["predictions"][0]["class"] == "fire"
    assert response.json()["image"] == {"width": 512, "height": 288}


def test_manual_poll_is_skipped_while_supervised_run_in_flight() -> None:
    blocking = BlockingTextGenerator()
    spawner = ThreadSpawner()
    install_context(
        build_context(
            Settings(reply_poll_duration_sec=600.0, reply_poll_interval_sec=5.0),
            social=social,
            text_generator=blocking,
            map_renderer=maps,
            inference=FakeInferenceClient(),
            scheduler=scheduler,
            spawn=spawner,
            clock=clock,
        )
    )
    social.replies = [make_reply(1)]

    client.post("/v1/fire-detection", json={"lat": 1.0, "lng": 2.0})
    assert blocking.entered.wait(2.0)

    response = client.post("/v1/replies/poll")

    assert response.status_code == 409
    assert response.json() == {"success": False, "skipped": True}

    blocking.release.set()
    spawner.join_all()

    poller = client.get("/v1/replies/poller").json()
    assert len(social.posted_replies) == 1
    assert poller["skipped_runs"] == 1
    assert poller["completed_runs"] == 1
