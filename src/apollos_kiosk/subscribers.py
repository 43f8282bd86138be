"""Data and theme channel subscribers.

Both are producers only: they push onto an unbounded FIFO queue and
request a repaint. Neither touches the feed store or the configuration
record.
"""

from __future__ import annotations

import json
import logging
import queue
from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt

from apollos_kiosk._mqtt import BrokerEndpoint, ClientFactory, MqttSubscription, parse_broker
from apollos_kiosk.config import KioskSettings
from apollos_kiosk.models.config import KioskConfig

_logger = logging.getLogger(__name__)

DEFAULT_DATA_CLIENT_ID = "apollos-kiosk"
DEFAULT_THEME_USERNAME = "kiosk-theme"


def data_endpoint(settings: KioskSettings) -> BrokerEndpoint:
    host, port = parse_broker(settings.mqtt_host)
    return BrokerEndpoint(
        host=host,
        port=port,
        topic=settings.mqtt_topic,
        client_id=settings.mqtt_username or DEFAULT_DATA_CLIENT_ID,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
    )


def theme_endpoint(config: KioskConfig) -> BrokerEndpoint:
    host, port = parse_broker(config.mqtt_theme_host)
    username = config.mqtt_theme_username or DEFAULT_THEME_USERNAME
    return BrokerEndpoint(
        host=host,
        port=port,
        topic=config.mqtt_theme_topic,
        client_id=f"{username}-client",
        username=username,
        password=config.mqtt_theme_password or "",
    )


def extract_theme_name(payload: bytes) -> str | None:
    """Return the ``theme`` string of a theme-channel payload, if any."""
    try:
        parsed: Any = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    theme = parsed.get("theme")
    return theme if isinstance(theme, str) else None


class DataSubscriber(MqttSubscription):
    """Forwards every data-channel payload, unparsed, to the consumer."""

    def __init__(
        self,
        endpoint: BrokerEndpoint,
        *,
        outbox: queue.Queue[bytes],
        wake: Callable[[], None],
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(endpoint, name="Data MQTT", client_factory=client_factory, logger=logger or _logger)
        self._outbox = outbox
        self._wake = wake

    def handle_message(self, msg: mqtt.MQTTMessage) -> None:
        self._outbox.put(msg.payload)
        self._wake()


class ThemeSubscriber(MqttSubscription):
    """Forwards theme names from the theme sync channel to the consumer."""

    def __init__(
        self,
        endpoint: BrokerEndpoint,
        *,
        outbox: queue.Queue[str],
        wake: Callable[[], None],
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(endpoint, name="Theme MQTT", client_factory=client_factory, logger=logger or _logger)
        self._outbox = outbox
        self._wake = wake

    def handle_message(self, msg: mqtt.MQTTMessage) -> None:
        if not mqtt.topic_matches_sub(self.endpoint.topic, msg.topic):
            self._logger.debug("Theme MQTT ignoring message on topic %s", msg.topic)
            return
        theme_name = extract_theme_name(msg.payload)
        if theme_name is None:
            self._logger.info("Theme MQTT ignoring payload without a theme name")
            return
        self._logger.debug("Theme MQTT parsed theme name %s", theme_name)
        self._outbox.put(theme_name)
        self._wake()
