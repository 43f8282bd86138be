from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import paho.mqtt.client as mqtt
import pytest

_ENV_VARS = (
    "MQTT_HOST",
    "MQTT_USERNAME",
    "MQTT_PASSWORD",
    "MQTT_TOPIC",
    "MQTT_THEME_SYNC",
    "MQTT_THEME_HOST",
    "MQTT_THEME_USERNAME",
    "MQTT_THEME_PASSWORD",
    "MQTT_THEME_TOPIC",
    "APOLLOS_KIOSK_CONFIG_DIR",
)


@dataclass
class FakeReasonCode:
    is_failure: bool = False

    def __str__(self) -> str:
        return "Failure" if self.is_failure else "Success"


class FakeClient:
    """Stands in for ``paho.mqtt.client.Client``; fire_* drive the callbacks."""

    def __init__(
        self,
        client_id: str,
        *,
        connect_error: Exception | None = None,
        subscribe_result: Any = mqtt.MQTT_ERR_SUCCESS,
    ) -> None:
        self.client_id = client_id
        self.connect_error = connect_error
        self.subscribe_result = subscribe_result
        self.credentials: tuple[str, str | None] | None = None
        self.reconnect_delay: tuple[int, int] | None = None
        self.connected_to: tuple[str, int, int] | None = None
        self.subscriptions: list[tuple[str, int]] = []
        self.loop_started = False
        self.loop_stopped = False
        self.disconnect_calls = 0
        self.on_pre_connect: Any = None
        self.on_connect: Any = None
        self.on_subscribe: Any = None
        self.on_message: Any = None
        self.on_disconnect: Any = None

    def enable_logger(self, logger: Any = None) -> None:
        pass

    def username_pw_set(self, username: str, password: str | None = None) -> None:
        self.credentials = (username, password)

    def reconnect_delay_set(self, min_delay: int = 1, max_delay: int = 120) -> None:
        self.reconnect_delay = (min_delay, max_delay)

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnect_calls += 1

    def subscribe(self, topic: str, qos: int = 0) -> tuple[Any, int]:
        # Same check paho runs before sending SUBSCRIBE.
        if not topic:
            raise ValueError("Invalid subscription filter.")
        self.subscriptions.append((topic, qos))
        return self.subscribe_result, len(self.subscriptions)

    # Network-thread simulation

    def fire_connect(self, *, failure: bool = False) -> None:
        self.on_pre_connect(self, None)
        self.on_connect(self, None, None, FakeReasonCode(failure), None)

    def fire_suback(self, *, failure: bool = False) -> None:
        self.on_subscribe(self, None, 1, [FakeReasonCode(failure)], None)

    def fire_disconnect(self) -> None:
        self.on_disconnect(self, None, None, FakeReasonCode(True), None)

    def fire_message(self, topic: str, payload: bytes) -> None:
        msg = mqtt.MQTTMessage(topic=topic.encode("utf-8"))
        msg.payload = payload
        self.on_message(self, None, msg)


@dataclass
class FakeClientFactory:
    connect_error: Exception | None = None
    subscribe_result: Any = mqtt.MQTT_ERR_SUCCESS
    created: list[FakeClient] = field(default_factory=list)

    def __call__(self, client_id: str) -> FakeClient:
        client = FakeClient(
            client_id,
            connect_error=self.connect_error,
            subscribe_result=self.subscribe_result,
        )
        self.created.append(client)
        return client


@pytest.fixture
def fake_clients() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class PersistCounter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


@pytest.fixture
def persist() -> PersistCounter:
    return PersistCounter()
