"""Internal MQTT subscription runtime.

Wraps a paho-mqtt client running its own network thread
(``loop_start``). paho handles reconnection with a bounded backoff; this
runtime re-subscribes on every (re)connect because sessions are clean,
tracks a small connection state machine, and gives up permanently only
when the *initial* setup fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import paho.mqtt.client as mqtt

from apollos_kiosk._redact import redact_for_log
from apollos_kiosk.exceptions import KioskTransportError

DEFAULT_PORT = 1883
DEFAULT_KEEPALIVE = 20
MIN_RECONNECT_DELAY = 1
MAX_RECONNECT_DELAY = 30


class SubscriberState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(frozen=True)
class BrokerEndpoint:
    """Everything needed to connect and subscribe to one broker topic."""

    host: str
    port: int
    topic: str
    client_id: str
    username: str | None = None
    password: str | None = None

    @property
    def uri(self) -> str:
        return f"tcp://{self.host}:{self.port}"


ClientFactory = Callable[[str], mqtt.Client]


def parse_broker(raw_broker: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split ``tcp://host:port/path``, ``host:port`` or ``host`` into host and port."""
    value = raw_broker.strip()
    if not value:
        raise ValueError("Broker value is empty")

    if "://" in value:
        value = value.split("://", 1)[1]
    if "/" in value:
        value = value.split("/", 1)[0]
    if not value:
        raise ValueError(f"Broker value {raw_broker!r} has no host")

    host, _, maybe_port = value.rpartition(":")
    if host and maybe_port.isdigit():
        return host, int(maybe_port)
    return value, default_port


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        clean_session=True,
        protocol=mqtt.MQTTv311,
    )


class MqttSubscription:
    """Threaded paho-mqtt subscription to a single topic.

    Subclasses implement :meth:`handle_message`, which runs on the paho
    network thread and must only hand data off (queue put, wake signal).
    """

    def __init__(
        self,
        endpoint: BrokerEndpoint,
        *,
        name: str = "MQTT",
        keepalive: int = DEFAULT_KEEPALIVE,
        min_reconnect_delay: int = MIN_RECONNECT_DELAY,
        max_reconnect_delay: int = MAX_RECONNECT_DELAY,
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._name = name
        self._keepalive = keepalive
        self._min_reconnect_delay = min_reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._client_factory = client_factory or _default_client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._subscribed_once = False
        self._state = SubscriberState.DISCONNECTED

    @property
    def endpoint(self) -> BrokerEndpoint:
        return self._endpoint

    @property
    def state(self) -> SubscriberState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the network loop is running (connected or reconnecting)."""
        return self._running

    def handle_message(self, msg: mqtt.MQTTMessage) -> None:
        raise NotImplementedError

    def start(self) -> bool:
        """Connect, start the network loop and subscribe once connected.

        Returns False when setup failed; the subscription is then
        permanently stopped.
        """
        self.stop()
        self._state = SubscriberState.CONNECTING
        self._subscribed_once = False
        endpoint = self._endpoint
        self._logger.debug(
            "%s start requested uri=%s topic=%s client_id=%s",
            self._name,
            endpoint.uri,
            endpoint.topic,
            endpoint.client_id,
        )
        try:
            client = self._connect()
        except KioskTransportError as exc:
            self._fail(str(exc))
            return False

        client.loop_start()
        self._client = client
        self._running = True
        self._logger.debug("%s network loop started", self._name)
        return True

    def _connect(self) -> mqtt.Client:
        endpoint = self._endpoint
        try:
            client = self._client_factory(endpoint.client_id)
        except Exception as exc:
            raise KioskTransportError(f"cannot create client: {exc}", endpoint=endpoint.uri) from exc

        client.enable_logger(self._logger)
        if endpoint.username is not None:
            client.username_pw_set(endpoint.username, endpoint.password)
        client.reconnect_delay_set(min_delay=self._min_reconnect_delay, max_delay=self._max_reconnect_delay)
        client.on_pre_connect = self._on_pre_connect
        client.on_connect = self._on_connect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            client.connect(endpoint.host, endpoint.port, keepalive=self._keepalive)
        except (OSError, ValueError) as exc:
            raise KioskTransportError(f"cannot connect: {exc}", endpoint=endpoint.uri) from exc
        return client

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        if self._state != SubscriberState.FAILED:
            self._state = SubscriberState.DISCONNECTED

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("%s disconnect requested", self._name)
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("%s network loop stopped", self._name)

    def _fail(self, reason: str, client: mqtt.Client | None = None) -> None:
        self._state = SubscriberState.FAILED
        self._running = False
        self._logger.warning("%s setup failed for %s: %s", self._name, self._endpoint.uri, reason)
        if client is not None:
            # Stops paho from retrying; the network thread exits on its own.
            client.disconnect()

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_pre_connect(self, _client: mqtt.Client, _userdata: Any) -> None:
        if self._state != SubscriberState.FAILED:
            self._state = SubscriberState.CONNECTING

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.is_failure:
            if not self._subscribed_once:
                self._fail(f"connection refused: {reason_code}", client)
                return
            self._logger.warning("%s connect failed: %s", self._name, reason_code)
            return

        self._state = SubscriberState.CONNECTED
        topic = self._endpoint.topic
        try:
            result, _mid = client.subscribe(topic, qos=1)
        except ValueError as exc:
            # paho raises ValueError for an invalid filter before anything is sent.
            self._fail(f"invalid topic {topic!r}: {exc}", client)
            return
        if result != mqtt.MQTT_ERR_SUCCESS:
            if not self._subscribed_once:
                self._fail(f"cannot subscribe to {topic!r}: {mqtt.error_string(result)}", client)
                return
            self._logger.warning("%s re-subscribe to %s failed: %s", self._name, topic, mqtt.error_string(result))
            return
        self._logger.info("%s connected to %s, subscribing to %s", self._name, self._endpoint.uri, topic)

    def _on_subscribe(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _mid: int,
        reason_code_list: list[Any],
        _properties: Any,
    ) -> None:
        if any(rc.is_failure for rc in reason_code_list):
            if not self._subscribed_once:
                self._fail(f"subscription to {self._endpoint.topic!r} rejected", client)
                return
            self._logger.warning("%s re-subscribe to %s rejected", self._name, self._endpoint.topic)
            return
        self._subscribed_once = True
        self._logger.debug("%s subscribed to %s", self._name, self._endpoint.topic)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        self._logger.debug("%s received message on topic %s (%s)", self._name, msg.topic, redact_for_log(msg.payload))
        try:
            self.handle_message(msg)
        except Exception:
            self._logger.warning("%s message handler failed", self._name, exc_info=True)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._state == SubscriberState.FAILED:
            return
        self._state = SubscriberState.DISCONNECTED
        if self._running:
            self._logger.info("%s disconnected (%s), waiting for reconnection", self._name, reason_code)
