"""Remote adapter parsing tests."""

import pytest

from libs.core.application.contracts import RemoteServiceError
from libs.core.domain.entities import PostRef
from libs.infra.bluesky.client import BlueskyClient, reply_from_notification
from libs.infra.geoapify.static_map import build_static_map_url
from libs.infra.groq.text_generator import GroqTextGenerator
from libs.infra.roboflow.workflow import RoboflowWorkflowClient, parse_workflow_output


def test_reply_notification_keeps_thread_root() -> None:
    reply = reply_from_notification(
        {
            "uri": "at://did:plc:abc/app.bsky.feed.post/1",
            "cid": "cid-1",
            "reason": "reply",
            "author": {"handle": "neighbor.bsky.social"},
            "record": {
                "text": "Which roads are closed?",
                "reply": {
                    "root": {"uri": "at://alert/1", "cid": "cid-alert"},
                    "parent": {"uri": "at://alert/1", "cid": "cid-alert"},
                },
            },
            "indexedAt": "2026-10-16T12:00:00Z",
        }
    )

    assert reply.reply_id == "at://did:plc:abc/app.bsky.feed.post/1"
    assert reply.author == "neighbor.bsky.social"
    assert reply.text == "Which roads are closed?"
    assert reply.post == PostRef(uri="at://did:plc:abc/app.bsky.feed.post/1", cid="cid-1")
    assert reply.thread_root == PostRef(uri="at://alert/1", cid="cid-alert")


def test_reply_notification_without_root_is_its_own_root() -> None:
    reply = reply_from_notification({"uri": "at://x/1", "cid": "c1", "record": {}})

    assert reply.thread_root == reply.post
    assert reply.text == ""


def test_static_map_url_puts_longitude_first() -> None:
    url = build_static_map_url(lat=12.5, lng=77.25, radius_km=50, api_key="key")

    assert url.startswith("https://maps.geoapify.com/v1/staticmap?style=osm-bright-grey")
    assert "geometry=circle:77.25,12.5,50;fillcolor:%23ff4444;fillopacity:0.5" in url
    assert url.endswith("&apiKey=key")


def test_workflow_output_parsing() -> None:
    result = parse_workflow_output(
        {
            "outputs": [
                {
                    "predictions": {
                        "image": {"width": 512, "height": 288},
                        "predictions": [
                            {
                                "x": 1,
                                "y": 2,
                                "width": 3,
                                "height": 4,
                                "confidence": 0.8,
                                "class": "flame",
                            }
                        ],
                    }
                }
            ]
        }
    )

    assert result.image == {"width": 512, "height": 288}
    assert result.predictions[0].label == "flame"
    assert result.predictions[0].confidence == 0.8


def test_workflow_output_tolerates_empty_payload() -> None:
    result = parse_workflow_output({})

    assert result.predictions == []
    assert result.image is None


def test_adapters_refuse_calls_without_credentials() -> None:
    with pytest.raises(RemoteServiceError):
        BlueskyClient(identifier="", password="").login()
    with pytest.raises(RemoteServiceError):
        GroqTextGenerator(api_key="").generate("hello")
    with pytest.raises(RemoteServiceError):
        RoboflowWorkflowClient(api_key="").infer("aGVsbG8=")


def test_bluesky_malformed_responses_raise_remote_errors(monkeypatch) -> None:
    monkeypatch.setattr(
        "libs.infra.bluesky.client.request_json",
        lambda *args, **kwargs: {},
    )
    client = BlueskyClient(identifier="alerts.bsky.social", password="app-pass")

    with pytest.raises(RemoteServiceError, match="invalid session response"):
        client.login()

    client._access_jwt = "jwt"
    with pytest.raises(RemoteServiceError, match="invalid createRecord response"):
        client.publish("Fire detected")
