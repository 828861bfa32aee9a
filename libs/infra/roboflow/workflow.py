"""Roboflow serverless workflow inference adapter."""

from __future__ import annotations

from typing import Any

from libs.core.application.contracts import InferenceClient, RemoteServiceError
from libs.core.domain.entities import InferencePrediction, InferenceResult
from libs.infra.http_json import request_json

SERVICE_NAME = "roboflow"
DEFAULT_WORKFLOW_URL = (
    "https://serverless.roboflow.com/namanb/workflows/find-people-candles-and-flames"
)


def parse_workflow_output(payload: dict[str, Any]) -> InferenceResult:
    outputs = payload.get("outputs") or []
    output = (outputs[0] if outputs else {}).get("predictions") or {}
    predictions = [
        InferencePrediction(
            x=float(item.get("x", 0.0)),
            y=float(item.get("y", 0.0)),
            width=float(item.get("width", 0.0)),
            height=float(item.get("height", 0.0)),
            confidence=float(item.get("confidence", 0.0)),
            label=str(item.get("class", "")),
        )
        for item in output.get("predictions") or []
    ]
    return InferenceResult(predictions=predictions, image=output.get("image"))


class RoboflowWorkflowClient(InferenceClient):
    """Forwards one base64 frame to the detection workflow."""

    def __init__(self, api_key: str, workflow_url: str = DEFAULT_WORKFLOW_URL) -> None:
        self._api_key = api_key
        self._workflow_url = workflow_url

    def infer(self, image_base64: str) -> InferenceResult:
        if not self._api_key:
            raise RemoteServiceError(SERVICE_NAME, "ROBOFLOW_API_KEY is not set")
        payload = request_json(
            self._workflow_url,
            service=SERVICE_NAME,
            method="POST",
            payload={
                "api_key": self._api_key,
                "inputs": {"image": {"type": "base64", "value": image_base64}},
            },
        )
        return parse_workflow_output(payload)
