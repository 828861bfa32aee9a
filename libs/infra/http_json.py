"""Small JSON-over-HTTP helpers shared by remote adapters."""

from __future__ import annotations

import json
from urllib import request
from urllib.error import HTTPError, URLError

from libs.core.application.contracts import RemoteServiceError

DEFAULT_TIMEOUT_SEC = 15.0


def request_bytes(
    url: str,
    service: str,
    method: str = "GET",
    body: bytes | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> bytes:
    req = request.Request(url=url, data=body, headers=headers or {}, method=method)
    try:
        with request.urlopen(req, timeout=timeout) as response:
            return response.read()
    except HTTPError as error:
        detail = error.read().decode("utf-8", errors="replace")[:200]
        raise RemoteServiceError(
            service=service,
            message=detail or error.reason,
            status_code=error.code,
        ) from error
    except (URLError, OSError) as error:
        raise RemoteServiceError(service=service, message=str(error)) from error


def request_json(
    url: str,
    service: str,
    method: str = "GET",
    payload: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> dict[str, object]:
    all_headers = {"Content-Type": "application/json", **(headers or {})}
    body = json.dumps(payload).encode("utf-8") if payload is not None else None
    raw = request_bytes(
        url,
        service=service,
        method=method,
        body=body,
        headers=all_headers,
        timeout=timeout,
    )
    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError as error:
        raise RemoteServiceError(service=service, message="invalid JSON") from error
