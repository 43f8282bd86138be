#!/usr/bin/env python3
"""Publish a sample feed or theme payload for manual kiosk testing.

Examples::

    python scripts/publish_sample.py --topic kiosk/data
    python scripts/publish_sample.py --topic neiam/sync/theme --theme solarized
    python scripts/publish_sample.py --topic kiosk/data --file payload.json

Broker settings default to the same ``MQTT_*`` environment variables the
kiosk reads.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

try:
    import paho.mqtt.client as mqtt
except ImportError as exc:  # pragma: no cover - environment/setup issue
    raise SystemExit(
        "Missing dependency 'paho-mqtt'. Install with: pip install paho-mqtt",
    ) from exc

_LOG = logging.getLogger("publish_sample")

SAMPLE_DATA: dict[str, Any] = {
    "weather-home": [
        {"temp": 72.5, "feel": 70.1, "weather": "Clear", "wind": {"speed": 5}, "hum": 40},
    ],
    "gtfs-downtown": {
        "data": [
            {
                "route": "N",
                "dest": "Downtown",
                "dir": "Inbound",
                "times": ["12:04", "12:19"],
                "times_live": ["12:06", None],
            }
        ],
        "query": {"name": "Downtown trains", "stop": "4021"},
    },
    "gbfs-corner": [
        {"name": "5th & Main", "avail_std": 4, "avail_elec": 2, "docks_avail": 9},
    ],
    "tidal-harbor": [{"first_h": "03:12", "first_l": "09:40"}],
    "ephem-home": [{"name": "Sun", "periods": {"sunrise": "06:41", "sunset": "19:02"}}],
    "cronos-jobs": {"nightly": "ok"},
}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish a sample payload to the kiosk broker.")
    parser.add_argument("--host", default=os.environ.get("MQTT_HOST", "localhost"), help="Broker host.")
    parser.add_argument("--port", type=int, default=1883, help="Broker port.")
    parser.add_argument("--username", default=os.environ.get("MQTT_USERNAME"), help="Broker username.")
    parser.add_argument("--password", default=os.environ.get("MQTT_PASSWORD"), help="Broker password.")
    parser.add_argument("--topic", default=os.environ.get("MQTT_TOPIC"), help="Topic to publish to.")
    parser.add_argument("--theme", help="Publish {\"theme\": THEME} instead of feed data.")
    parser.add_argument("--file", type=Path, help="Publish the JSON object stored in this file.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _build_payload(args: argparse.Namespace) -> dict[str, Any]:
    if args.theme:
        return {"theme": args.theme}
    if args.file:
        loaded = json.loads(args.file.read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            raise SystemExit(f"{args.file} must contain a JSON object")
        return loaded
    return SAMPLE_DATA


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.topic:
        print("[publish] --topic or MQTT_TOPIC is required", file=sys.stderr)
        return 2

    payload = json.dumps(_build_payload(args))

    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id="apollos-kiosk-sample",
        protocol=mqtt.MQTTv311,
    )
    client.enable_logger(_LOG)
    if args.username:
        client.username_pw_set(args.username, args.password)

    try:
        client.connect(args.host, args.port, keepalive=20)
    except OSError as exc:  # pragma: no cover - network/system interaction
        print(f"[publish] Connect failed: {exc}", file=sys.stderr)
        return 2

    client.loop_start()
    try:
        info = client.publish(args.topic, payload, qos=1)
        info.wait_for_publish(timeout=10)
        print(f"[publish] Sent {len(payload)} bytes to {args.topic}")
    finally:
        client.disconnect()
        client.loop_stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
