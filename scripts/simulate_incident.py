from __future__ import annotations

import argparse
import base64
import json
import time
from pathlib import Path
from urllib import request


def post_json(url: str, payload: dict) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url=url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with request.urlopen(req, timeout=30) as resp:
        return json.loads(resp.read().decode("utf-8"))


def sample_sensor_reading(temperature: float) -> dict:
    return {
        "mq2": 412.0,
        "mq135": 230.5,
        "dht_temp": temperature,
        "bno_temp": temperature - 1.5,
        "orientation": {"x": 0.0, "y": 1.2, "z": -0.4},
        "gyro": {"x": 0.0, "y": 0.0, "z": 0.0},
        "accel": {"x": 0.01, "y": 0.02, "z": 9.81},
        "calibration": {"sys": 3, "gyro": 3, "accel": 3, "mag": 2},
    }


def load_image(path: str) -> str | None:
    if not path:
        return None
    image_path = Path(path)
    if not image_path.exists():
        raise SystemExit(f"image not found: {image_path}")
    return base64.b64encode(image_path.read_bytes()).decode("ascii")


def print_state(tag: str, state: dict) -> None:
    print(
        f"[{tag}] status={state['status']} error={state['error']} "
        f"pending_image={state['has_pending_image']}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Drive a running gateway through a detection-before-location incident",
    )
    parser.add_argument("--api-base", default="http://127.0.0.1:8000")
    parser.add_argument("--lat", type=float, default=12.94949)
    parser.add_argument("--lng", type=float, default=77.62081)
    parser.add_argument("--image", default="", help="Optional JPEG webcam frame")
    parser.add_argument("--confidence", type=float, default=0.9)
    parser.add_argument("--temperature", type=float, default=48.0)
    parser.add_argument(
        "--location-delay",
        type=float,
        default=1.0,
        help="Seconds between the fire detection and location resolution",
    )
    args = parser.parse_args()

    image = load_image(args.image)
    post_json(
        f"{args.api_base}/v1/sensors",
        sample_sensor_reading(args.temperature),
    )

    session = post_json(f"{args.api_base}/v1/sessions", {})
    session_id = session["session_id"]
    print(f"[INFO] session_id={session_id}")

    state = post_json(
        f"{args.api_base}/v1/sessions/{session_id}/detections",
        {
            "detections": [{"label": "fire", "confidence": args.confidence}],
            "image": image,
        },
    )
    print_state("DETECTION", state)

    time.sleep(args.location_delay)
    state = post_json(
        f"{args.api_base}/v1/sessions/{session_id}/location",
        {"lat": args.lat, "lng": args.lng},
    )
    print_state("LOCATION", state)

    print(f"[DONE] session_id={session_id}")
    print("Check poller: " f"{args.api_base}/v1/replies/poller")


if __name__ == "__main__":
    main()
