"""Bluesky adapter speaking AT Protocol XRPC over plain HTTP."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from libs.core.application.contracts import RemoteServiceError, SocialClient
from libs.core.domain.entities import InboundReply, PostRef
from libs.infra.http_json import request_bytes, request_json

SERVICE_NAME = "bluesky"
POST_COLLECTION = "app.bsky.feed.post"
POST_LANGS = ["en-US"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def reply_from_notification(item: dict[str, Any]) -> InboundReply:
    record = item.get("record") or {}
    post = PostRef(uri=item["uri"], cid=item["cid"])
    root_ref = (record.get("reply") or {}).get("root") or {}
    if root_ref.get("uri") and root_ref.get("cid"):
        root = PostRef(uri=root_ref["uri"], cid=root_ref["cid"])
    else:
        root = post
    return InboundReply(
        reply_id=item["uri"],
        author=(item.get("author") or {}).get("handle", ""),
        text=record.get("text", ""),
        post=post,
        thread_root=root,
        indexed_at=item.get("indexedAt"),
    )


class BlueskyClient(SocialClient):
    """Session-based client for posting alerts and reading replies."""

    def __init__(
        self,
        identifier: str,
        password: str,
        service_url: str = "https://bsky.social",
    ) -> None:
        self._identifier = identifier
        self._password = password
        self._service_url = service_url.rstrip("/")
        self._access_jwt: str | None = None
        self._did: str | None = None

    def login(self) -> None:
        if not self._identifier or not self._password:
            raise RemoteServiceError(SERVICE_NAME, "credentials are not configured")
        session = request_json(
            self._xrpc("com.atproto.server.createSession"),
            service=SERVICE_NAME,
            method="POST",
            payload={"identifier": self._identifier, "password": self._password},
        )
        try:
            self._access_jwt = str(session["accessJwt"])
            self._did = str(session["did"])
        except KeyError as error:
            raise RemoteServiceError(SERVICE_NAME, "invalid session response") from error

    def upload_image(self, data: bytes, mime_type: str) -> dict[str, object]:
        raw = request_bytes(
            self._xrpc("com.atproto.repo.uploadBlob"),
            service=SERVICE_NAME,
            method="POST",
            body=data,
            headers={"Content-Type": mime_type, **self._auth_headers()},
        )
        try:
            return json.loads(raw.decode("utf-8"))["blob"]
        except (ValueError, KeyError) as error:
            raise RemoteServiceError(SERVICE_NAME, "invalid upload response") from error

    def publish(
        self,
        text: str,
        images: list[tuple[dict[str, object], str]] | None = None,
    ) -> PostRef:
        record: dict[str, object] = {
            "$type": POST_COLLECTION,
            "text": text,
            "langs": POST_LANGS,
            "createdAt": _now_iso(),
        }
        if images:
            record["embed"] = {
                "$type": "app.bsky.embed.images",
                "images": [{"alt": alt, "image": blob} for blob, alt in images],
            }
        return self._create_post(record)

    def reply(self, text: str, parent: PostRef, root: PostRef) -> PostRef:
        record: dict[str, object] = {
            "$type": POST_COLLECTION,
            "text": text,
            "reply": {
                "root": {"uri": root.uri, "cid": root.cid},
                "parent": {"uri": parent.uri, "cid": parent.cid},
            },
            "langs": POST_LANGS,
            "createdAt": _now_iso(),
        }
        return self._create_post(record)

    def list_replies(self, limit: int = 50) -> list[InboundReply]:
        query = urlencode({"limit": limit})
        payload = request_json(
            f"{self._xrpc('app.bsky.notification.listNotifications')}?{query}",
            service=SERVICE_NAME,
            headers=self._auth_headers(),
        )
        notifications = payload.get("notifications") or []
        return [
            reply_from_notification(item)
            for item in notifications
            if item.get("reason") == "reply"
        ]

    def mark_notifications_seen(self) -> None:
        request_json(
            self._xrpc("app.bsky.notification.updateSeen"),
            service=SERVICE_NAME,
            method="POST",
            payload={"seenAt": _now_iso()},
            headers=self._auth_headers(),
        )

    def _create_post(self, record: dict[str, object]) -> PostRef:
        created = request_json(
            self._xrpc("com.atproto.repo.createRecord"),
            service=SERVICE_NAME,
            method="POST",
            payload={
                "repo": self._did,
                "collection": POST_COLLECTION,
                "record": record,
            },
            headers=self._auth_headers(),
        )
        try:
            return PostRef(uri=str(created["uri"]), cid=str(created["cid"]))
        except KeyError as error:
            raise RemoteServiceError(SERVICE_NAME, "invalid createRecord response") from error

    def _auth_headers(self) -> dict[str, str]:
        if self._access_jwt is None:
            raise RemoteServiceError(SERVICE_NAME, "not logged in")
        return {"Authorization": f"Bearer {self._access_jwt}"}

    def _xrpc(self, method: str) -> str:
        return f"{self._service_url}/xrpc/{method}"
