from __future__ import annotations

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Any

import pytest

from apollos_kiosk._mqtt import SubscriberState
from apollos_kiosk.config import KioskSettings
from apollos_kiosk.exceptions import KioskLayoutError
from apollos_kiosk.kiosk import Kiosk, RepaintSignal
from apollos_kiosk.models.config import KioskConfig
from apollos_kiosk.models.content import WeatherContent
from apollos_kiosk.storage import ConfigStorage
from conftest import FakeClientFactory

WEATHER = {"temp": 72.5, "feel": 70.1, "weather": "Clouds", "wind": {"speed": 5.0}, "hum": 60}


def _payload(mapping: dict[str, Any]) -> bytes:
    return json.dumps(mapping).encode("utf-8")


def _kiosk(tmp_path: Path, client_factory: FakeClientFactory, **config: Any) -> Kiosk:
    settings = KioskSettings(mqtt_topic="home/kiosk", mqtt_username="kiosk1", config_dir=tmp_path)
    return Kiosk(settings, KioskConfig(**config), ConfigStorage.in_dir(tmp_path), client_factory=client_factory)


class TestTick:
    def test_empty_queues(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        assert kiosk.tick() is False

    def test_data_is_applied_in_arrival_order(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        kiosk.data_queue.put(_payload({"weather-home": WEATHER}))
        kiosk.data_queue.put(_payload({"weather-home": {**WEATHER, "temp": 40}}))

        assert kiosk.tick() is True
        assert kiosk.tick() is False

        entry = kiosk.store.get("weather-home")
        assert entry is not None
        assert isinstance(entry.content, WeatherContent)
        assert entry.content.items[0].temp == 40

    def test_new_key_is_written_to_disk(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        kiosk.data_queue.put(_payload({"weather-home": WEATHER, "gtfs-1": {}}))

        kiosk.tick()

        stored = ConfigStorage.in_dir(tmp_path).read()
        assert stored.unassigned == ["weather-home"]

    def test_theme_names_are_applied_and_written(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        kiosk.theme_queue.put("solarized")
        kiosk.theme_queue.put("neon")

        assert kiosk.tick() is True

        assert kiosk.config.current_theme == "Solarized"
        assert kiosk.theme.name == "Solarized"
        assert ConfigStorage.in_dir(tmp_path).read().current_theme == "Solarized"

    def test_save_failure_does_not_stop_the_loop(
        self, tmp_path: Path, fake_clients: FakeClientFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.WARNING)
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        settings = KioskSettings(mqtt_topic="home/kiosk")
        kiosk = Kiosk(settings, KioskConfig(), ConfigStorage.in_dir(blocker), client_factory=fake_clients)
        kiosk.data_queue.put(_payload({"weather-home": WEATHER}))

        assert kiosk.tick() is True

        assert "weather-home" in kiosk.store
        assert kiosk.config.unassigned == ["weather-home"]
        assert "Config save failed" in caplog.text


class TestLayoutOperations:
    def test_panel_entries_only_lists_keys_with_data(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, panels=[["cal-work", "weather-home"], [], []])
        kiosk.data_queue.put(_payload({"weather-home": WEATHER}))
        kiosk.tick()

        assert [key for key, _entry in kiosk.panel_entries(0)] == ["weather-home"]
        assert kiosk.panel_entries(1) == []

    @pytest.mark.parametrize("panel", [-1, 3])
    def test_panel_entries_rejects_bad_index(
        self, panel: int, tmp_path: Path, fake_clients: FakeClientFactory
    ) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, panels=[[], [], ["weather-home"]])
        with pytest.raises(KioskLayoutError):
            kiosk.panel_entries(panel)

    def test_assign_and_unassign_persist(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, unassigned=["weather-home"])
        storage = ConfigStorage.in_dir(tmp_path)

        assert kiosk.assign("weather-home", 2) is True
        assert storage.read().panels == [[], [], ["weather-home"]]

        assert kiosk.unassign("weather-home") is True
        stored = storage.read()
        assert stored.panels == [[], [], []]
        assert stored.unassigned == ["weather-home"]

    def test_unchanged_assignment_does_not_write(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, panels=[["weather-home"], [], []])
        assert kiosk.assign("weather-home", 0) is False
        assert not (tmp_path / "config.json").exists()

    def test_select_theme(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        assert kiosk.select_theme("After-Dark") is True
        assert kiosk.config.current_theme == "After Dark"
        assert kiosk.select_theme("after-dark") is False

    def test_theme_sync_settings_persist(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, mqtt_theme_username="old", mqtt_theme_password="old-pw")

        assert kiosk.set_theme_sync(True) is True
        assert kiosk.set_theme_sync(True) is False
        kiosk.configure_theme_sync(host="tcp://themes.lan:1885", username="", topic="office/theme")

        stored = ConfigStorage.in_dir(tmp_path).read()
        assert stored.mqtt_theme_sync is True
        assert stored.mqtt_theme_host == "tcp://themes.lan:1885"
        assert stored.mqtt_theme_username is None
        assert stored.mqtt_theme_password == "old-pw"
        assert stored.mqtt_theme_topic == "office/theme"


class TestSubscribers:
    def test_theme_subscriber_only_when_sync_enabled(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        kiosk.start_subscribers()

        assert [c.client_id for c in fake_clients.created] == ["kiosk1"]
        assert kiosk.subscriber_states() == {"data": SubscriberState.CONNECTING, "theme": None}
        kiosk.stop_subscribers()

    def test_both_subscribers_with_sync(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients, mqtt_theme_sync=True)
        kiosk.start_subscribers()

        assert [c.client_id for c in fake_clients.created] == ["kiosk1", "kiosk-theme-client"]
        theme_client = fake_clients.created[1]
        assert theme_client.connected_to == ("localhost", 2883, 20)
        assert theme_client.credentials == ("kiosk-theme", "")

        theme_client.fire_message("neiam/sync/theme", b'{"theme": "forest"}')
        kiosk.tick()
        assert kiosk.config.current_theme == "Forest"

        kiosk.stop_subscribers()
        assert all(c.loop_stopped for c in fake_clients.created)

    def test_failed_subscribers_leave_the_kiosk_running(self, tmp_path: Path) -> None:
        factory = FakeClientFactory(connect_error=OSError("unreachable"))
        kiosk = _kiosk(tmp_path, factory, mqtt_theme_sync=True)

        kiosk.start_subscribers()

        assert kiosk.subscriber_states() == {"data": SubscriberState.FAILED, "theme": SubscriberState.FAILED}
        kiosk.data_queue.put(_payload({"weather-home": WEATHER}))
        assert kiosk.tick() is True


    @pytest.mark.parametrize("host", ["   ", "", "tcp://"])
    def test_blank_theme_host_fails_only_the_theme_channel(
        self, host: str, tmp_path: Path, fake_clients: FakeClientFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.WARNING)
        kiosk = _kiosk(tmp_path, fake_clients, mqtt_theme_sync=True, mqtt_theme_host=host)

        kiosk.start_subscribers()

        assert kiosk.subscriber_states() == {"data": SubscriberState.CONNECTING, "theme": SubscriberState.FAILED}
        assert [c.client_id for c in fake_clients.created] == ["kiosk1"]
        assert "Theme subscriber setup failed" in caplog.text
        kiosk.data_queue.put(_payload({"weather-home": WEATHER}))
        assert kiosk.tick() is True
        kiosk.stop_subscribers()

    def test_configured_empty_host_is_survivable(self, tmp_path: Path, fake_clients: FakeClientFactory) -> None:
        kiosk = _kiosk(tmp_path, fake_clients)
        kiosk.set_theme_sync(True)
        kiosk.configure_theme_sync(host="")

        kiosk.start_subscribers()

        assert kiosk.subscriber_states()["theme"] is SubscriberState.FAILED
        kiosk.stop_subscribers()


def test_from_settings_merges_overrides(tmp_path: Path) -> None:
    ConfigStorage.in_dir(tmp_path).save(
        KioskConfig(panels=[["gtfs-1"], [], []], current_theme="Sky", mqtt_theme_host="tcp://stored:2883")
    )
    settings = KioskSettings(mqtt_topic="t", mqtt_theme_host="tcp://flag:1884", config_dir=tmp_path)

    kiosk = Kiosk.from_settings(settings)

    assert kiosk.config.mqtt_theme_host == "tcp://flag:1884"
    assert kiosk.config.panels == [["gtfs-1"], [], []]
    assert kiosk.theme.name == "Sky"


class TestRepaintSignal:
    def test_consume_clears_request(self) -> None:
        signal = RepaintSignal()
        assert signal.consume() is False
        signal.request()
        assert signal.consume() is True
        assert signal.consume() is False

    @pytest.mark.asyncio
    async def test_wait_requires_bind(self) -> None:
        with pytest.raises(RuntimeError):
            await RepaintSignal().wait(0.01)

    @pytest.mark.asyncio
    async def test_request_before_bind_is_remembered(self) -> None:
        signal = RepaintSignal()
        signal.request()
        signal.bind(asyncio.get_running_loop())
        assert await signal.wait(1.0) is True

    @pytest.mark.asyncio
    async def test_wait_times_out(self) -> None:
        signal = RepaintSignal()
        signal.bind(asyncio.get_running_loop())
        assert await signal.wait(0.01) is False

    @pytest.mark.asyncio
    async def test_request_from_another_thread_wakes_loop(self) -> None:
        signal = RepaintSignal()
        signal.bind(asyncio.get_running_loop())
        thread = threading.Thread(target=signal.request)
        thread.start()
        thread.join()
        assert await signal.wait(1.0) is True


@pytest.mark.asyncio
async def test_run_processes_messages_from_network_thread(tmp_path: Path, fake_clients: FakeClientFactory) -> None:
    kiosk = _kiosk(tmp_path, fake_clients)
    frames: list[int] = []

    def on_frame(k: Kiosk) -> None:
        frames.append(len(k.store))
        if "weather-home" in k.store:
            k.stop()

    task = asyncio.create_task(kiosk.run(on_frame=on_frame, frame_interval=0.05))
    for _ in range(200):
        if fake_clients.created and fake_clients.created[0].loop_started:
            break
        await asyncio.sleep(0.01)
    client = fake_clients.created[0]

    thread = threading.Thread(target=client.fire_message, args=("home/kiosk", _payload({"weather-home": WEATHER})))
    thread.start()
    thread.join()
    await asyncio.wait_for(task, timeout=5)

    assert frames[-1] == 1
    assert kiosk.config.unassigned == ["weather-home"]
    assert client.loop_stopped


@pytest.mark.asyncio
async def test_stop_before_run_is_honoured(tmp_path: Path, fake_clients: FakeClientFactory) -> None:
    kiosk = _kiosk(tmp_path, fake_clients)
    kiosk.stop()

    await asyncio.wait_for(kiosk.run(frame_interval=0.05), timeout=5)

    assert fake_clients.created == []

    # The stop was consumed; the next run starts normally.
    await asyncio.wait_for(kiosk.run(on_frame=lambda k: k.stop(), frame_interval=0.01), timeout=5)
    assert len(fake_clients.created) == 1
    assert fake_clients.created[0].loop_stopped
