"""Command-line entry point: ``python -m apollos_kiosk``.

Runs the ingestion engine headless. The frame callback logs the panel
layout whenever it changes, standing in for a graphical renderer.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from apollos_kiosk.config import KioskSettings
from apollos_kiosk.exceptions import KioskConfigError
from apollos_kiosk.kiosk import DEFAULT_FRAME_INTERVAL, Kiosk
from apollos_kiosk.storage import default_config_dir

_LOG = logging.getLogger("apollos_kiosk")

PANEL_NAMES = ("left", "center", "right")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="apollos-kiosk",
        description="Kiosk dashboard feed ingestion engine.",
    )
    data = parser.add_argument_group("data channel")
    data.add_argument("--mqtt-host", help="Data broker host or URI (env MQTT_HOST, default localhost).")
    data.add_argument("--mqtt-username", help="Data broker username, also the client id (env MQTT_USERNAME).")
    data.add_argument("--mqtt-password", help="Data broker password (env MQTT_PASSWORD).")
    data.add_argument("--mqtt-topic", help="Data topic (env MQTT_TOPIC, required).")

    theme = parser.add_argument_group("theme sync channel")
    theme.add_argument(
        "--mqtt-theme-sync",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable theme sync (env MQTT_THEME_SYNC).",
    )
    theme.add_argument("--mqtt-theme-host", help="Theme broker URI (env MQTT_THEME_HOST).")
    theme.add_argument("--mqtt-theme-username", help="Theme broker username (env MQTT_THEME_USERNAME).")
    theme.add_argument("--mqtt-theme-password", help="Theme broker password (env MQTT_THEME_PASSWORD).")
    theme.add_argument("--mqtt-theme-topic", help="Theme sync topic (env MQTT_THEME_TOPIC).")

    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory holding config.json and .env (env APOLLOS_KIOSK_CONFIG_DIR).",
    )
    parser.add_argument(
        "--frame-interval",
        type=float,
        default=DEFAULT_FRAME_INTERVAL,
        help="Maximum seconds between frames when idle.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


def _load_env_file(config_dir: Path) -> None:
    env_path = config_dir / ".env"
    if not env_path.exists():
        _LOG.info("No .env loaded, create %s to provide settings", env_path)
        return
    if load_dotenv(env_path):
        _LOG.info("Loaded environment from %s", env_path)


class LayoutReporter:
    """Frame callback that logs the layout when it changes."""

    def __init__(self) -> None:
        self._last: tuple[object, ...] | None = None

    def __call__(self, kiosk: Kiosk) -> None:
        panels = tuple(tuple(key for key, _entry in kiosk.panel_entries(idx)) for idx in range(len(PANEL_NAMES)))
        snapshot = (kiosk.config.current_theme, tuple(kiosk.config.unassigned), panels, len(kiosk.store))
        if snapshot == self._last:
            return
        self._last = snapshot
        _LOG.info("%d data feeds, theme %s", len(kiosk.store), kiosk.config.current_theme)
        if kiosk.config.unassigned:
            _LOG.info("  unassigned: %s", ", ".join(kiosk.config.unassigned))
        for name, keys in zip(PANEL_NAMES, panels, strict=True):
            _LOG.info("  %s: %s", name, ", ".join(keys) or "-")


def _main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config_dir = args.config_dir or (
        Path(os.environ["APOLLOS_KIOSK_CONFIG_DIR"]) if os.environ.get("APOLLOS_KIOSK_CONFIG_DIR") else None
    )
    _load_env_file(config_dir or default_config_dir())

    try:
        settings = KioskSettings.from_env(
            mqtt_host=args.mqtt_host,
            mqtt_username=args.mqtt_username,
            mqtt_password=args.mqtt_password,
            mqtt_topic=args.mqtt_topic,
            mqtt_theme_sync=args.mqtt_theme_sync,
            mqtt_theme_host=args.mqtt_theme_host,
            mqtt_theme_username=args.mqtt_theme_username,
            mqtt_theme_password=args.mqtt_theme_password,
            mqtt_theme_topic=args.mqtt_theme_topic,
            config_dir=config_dir,
        )
    except KioskConfigError as exc:
        print(f"apollos-kiosk: {exc}", file=sys.stderr)
        return 2

    kiosk = Kiosk.from_settings(settings)

    async def _run() -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, kiosk.stop)
            except NotImplementedError:  # pragma: no cover - non-Unix event loops
                signal.signal(sig, lambda _signum, _frame: kiosk.stop())
        await kiosk.run(on_frame=LayoutReporter(), frame_interval=args.frame_interval)

    asyncio.run(_run())
    return 0


def main() -> None:
    raise SystemExit(_main())


if __name__ == "__main__":
    main()
