"""Single consumer loop.

:class:`Kiosk` owns every piece of mutable domain state: the
configuration record, the feed store, the panel ledger and the theme
resolver. Subscribers run on paho network threads and reach the kiosk
only through two FIFO queues plus a repaint signal. Each frame tick
drains both queues without blocking.
"""

from __future__ import annotations

import asyncio
import logging
import queue
from collections.abc import Callable
from typing import Any

from apollos_kiosk._mqtt import ClientFactory, SubscriberState
from apollos_kiosk._redact import redact_for_log
from apollos_kiosk.config import KioskSettings
from apollos_kiosk.exceptions import KioskStorageError
from apollos_kiosk.ingestion.diagnostics import DecodeStats
from apollos_kiosk.models.config import KioskConfig
from apollos_kiosk.models.feed import FeedEntry
from apollos_kiosk.state.ledger import PanelLedger, check_panel
from apollos_kiosk.state.reconciler import IngestionReconciler
from apollos_kiosk.state.store import FeedStore
from apollos_kiosk.storage import ConfigStorage, default_config_dir
from apollos_kiosk.subscribers import DataSubscriber, ThemeSubscriber, data_endpoint, theme_endpoint
from apollos_kiosk.themes import Theme, ThemeResolver

_logger = logging.getLogger(__name__)

DEFAULT_FRAME_INTERVAL = 1.0


class RepaintSignal:
    """Thread-safe "please redraw" flag that can wake an asyncio loop.

    Producers call :meth:`request` from any thread. Before :meth:`bind`
    is called the request is only remembered.
    """

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._event: asyncio.Event | None = None
        self._pending = False

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._event = asyncio.Event()
        if self._pending:
            self._event.set()

    def request(self) -> None:
        self._pending = True
        loop, event = self._loop, self._event
        if loop is None or event is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(event.set)

    def consume(self) -> bool:
        """Clear the flag, returning whether a repaint was requested."""
        pending = self._pending
        self._pending = False
        if self._event is not None:
            self._event.clear()
        return pending

    async def wait(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds for a request. Returns True if one arrived."""
        if self._event is None:
            raise RuntimeError("RepaintSignal.bind() must be called first")
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
            return True
        except TimeoutError:
            return False


class Kiosk:
    """Feed ingestion engine plus layout and theme state.

    Usage::

        kiosk = Kiosk.from_settings(KioskSettings.from_env())
        asyncio.run(kiosk.run(on_frame=render))
    """

    def __init__(
        self,
        settings: KioskSettings,
        config: KioskConfig,
        storage: ConfigStorage,
        *,
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._config = config
        self._storage = storage
        self._client_factory = client_factory
        self._logger = logger or _logger

        self._store = FeedStore()
        self._ledger = PanelLedger(config)
        self._stats = DecodeStats()
        self._reconciler = IngestionReconciler(
            store=self._store,
            ledger=self._ledger,
            persist=self.persist,
            stats=self._stats,
            logger=self._logger,
        )
        self._themes = ThemeResolver(config, persist=self.persist, logger=self._logger)

        self._data_queue: queue.Queue[bytes] = queue.Queue()
        self._theme_queue: queue.Queue[str] = queue.Queue()
        self._repaint = RepaintSignal()
        self._data_subscriber: DataSubscriber | None = None
        self._theme_subscriber: ThemeSubscriber | None = None
        self._stopping = False
        self._setup_failures: dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: KioskSettings, **kwargs: Any) -> Kiosk:
        """Load the persisted record and merge the startup overrides into it."""
        storage = ConfigStorage.in_dir(settings.config_dir or default_config_dir())
        config = storage.load().with_overrides(settings)
        return cls(settings, config, storage, **kwargs)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def config(self) -> KioskConfig:
        return self._config

    @property
    def store(self) -> FeedStore:
        return self._store

    @property
    def ledger(self) -> PanelLedger:
        return self._ledger

    @property
    def stats(self) -> DecodeStats:
        return self._stats

    @property
    def theme(self) -> Theme:
        return self._themes.theme

    @property
    def repaint(self) -> RepaintSignal:
        return self._repaint

    @property
    def data_queue(self) -> queue.Queue[bytes]:
        return self._data_queue

    @property
    def theme_queue(self) -> queue.Queue[str]:
        return self._theme_queue

    def panel_entries(self, panel: int) -> list[tuple[str, FeedEntry]]:
        """Keys on *panel* that currently have data, in panel order."""
        check_panel(panel)
        entries: list[tuple[str, FeedEntry]] = []
        for key in self._config.panels[panel]:
            entry = self._store.get(key)
            if entry is not None:
                entries.append((key, entry))
        return entries

    def subscriber_states(self) -> dict[str, SubscriberState | None]:
        states: dict[str, SubscriberState | None] = {
            "data": self._data_subscriber.state if self._data_subscriber else None,
            "theme": self._theme_subscriber.state if self._theme_subscriber else None,
        }
        for channel in self._setup_failures:
            states[channel] = SubscriberState.FAILED
        return states

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> None:
        """Write the configuration record now. Failures are logged, not raised."""
        try:
            self._storage.save(self._config)
        except KioskStorageError:
            self._logger.warning("Config save failed", exc_info=True)

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Drain both queues without blocking. Returns True if anything was processed."""
        processed = False
        while True:
            try:
                theme_name = self._theme_queue.get_nowait()
            except queue.Empty:
                break
            processed = True
            self._themes.apply(theme_name)

        while True:
            try:
                payload = self._data_queue.get_nowait()
            except queue.Empty:
                break
            processed = True
            self._reconciler.process_payload(payload)
        return processed

    def start_subscribers(self) -> None:
        """Start the data subscriber, and the theme subscriber when sync is enabled.

        A channel whose broker settings cannot be parsed is reported as
        ``FAILED``; the other channel and the consumer keep running.
        """
        self._setup_failures.clear()
        try:
            endpoint = data_endpoint(self._settings)
        except ValueError as exc:
            self._channel_failed("data", exc)
        else:
            self._data_subscriber = DataSubscriber(
                endpoint,
                outbox=self._data_queue,
                wake=self._repaint.request,
                client_factory=self._client_factory,
                logger=self._logger,
            )
            self._data_subscriber.start()

        if not self._config.mqtt_theme_sync:
            return
        try:
            endpoint = theme_endpoint(self._config)
        except ValueError as exc:
            self._channel_failed("theme", exc)
        else:
            self._theme_subscriber = ThemeSubscriber(
                endpoint,
                outbox=self._theme_queue,
                wake=self._repaint.request,
                client_factory=self._client_factory,
                logger=self._logger,
            )
            self._theme_subscriber.start()

    def _channel_failed(self, channel: str, exc: ValueError) -> None:
        self._setup_failures[channel] = str(exc)
        self._logger.warning("%s subscriber setup failed: %s", channel.capitalize(), exc)

    def stop_subscribers(self) -> None:
        for subscriber in (self._data_subscriber, self._theme_subscriber):
            if subscriber is None:
                continue
            try:
                subscriber.stop()
            except Exception:
                self._logger.debug("Subscriber stop failed", exc_info=True)

    async def run(
        self,
        *,
        on_frame: Callable[[Kiosk], None] | None = None,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
    ) -> None:
        """Run until :meth:`stop` is called.

        Each frame waits for a repaint request or *frame_interval*
        seconds, drains the queues and calls *on_frame*. A :meth:`stop`
        issued before this call makes it return without starting the
        subscribers. The kiosk can be run again once a run has returned.
        """
        if self._stopping:
            self._logger.debug("Stop requested before run, not starting")
            self._stopping = False
            self._repaint.consume()
            return
        loop = asyncio.get_running_loop()
        self._repaint.bind(loop)
        self._logger.debug("Starting kiosk with config %s", redact_for_log(self._config.model_dump()))
        try:
            await loop.run_in_executor(None, self.start_subscribers)
            while not self._stopping:
                await self._repaint.wait(frame_interval)
                self._repaint.consume()
                if self._stopping:
                    break
                self.tick()
                if on_frame is not None:
                    on_frame(self)
        finally:
            await loop.run_in_executor(None, self.stop_subscribers)
            self._stopping = False

    def stop(self) -> None:
        """Ask :meth:`run` to return after the current frame. Thread-safe."""
        self._stopping = True
        self._repaint.request()

    # ------------------------------------------------------------------
    # Layout and theme operations
    # ------------------------------------------------------------------

    def assign(self, key: str, panel: int) -> bool:
        """Place *key* at the end of *panel* (0 left, 1 center, 2 right)."""
        changed = self._ledger.assign(key, panel)
        if changed:
            self.persist()
        return changed

    def unassign(self, key: str) -> bool:
        """Take *key* off its panel and back to the unassigned list."""
        changed = self._ledger.unassign(key)
        if changed:
            self.persist()
        return changed

    def select_theme(self, name: str) -> bool:
        return self._themes.apply(name)

    def set_theme_sync(self, enabled: bool) -> bool:
        """Persist the theme sync switch. Takes effect on the next start."""
        if self._config.mqtt_theme_sync == enabled:
            return False
        self._config.mqtt_theme_sync = enabled
        self.persist()
        self._logger.info("Theme sync %s, restart to apply", "enabled" if enabled else "disabled")
        return True

    def configure_theme_sync(
        self,
        *,
        host: str | None = None,
        username: str | None = None,
        password: str | None = None,
        topic: str | None = None,
    ) -> None:
        """Persist theme channel settings. Empty credentials are stored as unset.

        ``None`` leaves a field unchanged. Takes effect on the next start.
        """
        if host is not None:
            self._config.mqtt_theme_host = host
        if username is not None:
            self._config.mqtt_theme_username = username or None
        if password is not None:
            self._config.mqtt_theme_password = password or None
        if topic is not None:
            self._config.mqtt_theme_topic = topic
        self.persist()
