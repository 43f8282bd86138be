"""Startup settings for apollos-kiosk.

Settings come from command-line flags and environment variables. The
data channel is configured only here; theme channel values that are set
override the persisted :class:`~apollos_kiosk.models.config.KioskConfig`.
"""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from apollos_kiosk.exceptions import KioskConfigError


def _env_bool(value: str | None, default: bool | None) -> bool | None:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class KioskSettings:
    """Startup settings.

    Parameters
    ----------
    mqtt_topic : str
        Data channel topic (required).
    mqtt_host : str
        Data broker host or URI. A bare host connects on port 1883.
    mqtt_username, mqtt_password : str or None
        Data broker credentials. The username doubles as client id.
    mqtt_theme_sync : bool or None
        Theme sync switch. ``None`` keeps the persisted value.
    mqtt_theme_host, mqtt_theme_username, mqtt_theme_password, mqtt_theme_topic : str or None
        Theme channel settings. ``None`` keeps the persisted value.
    config_dir : Path or None
        Directory holding ``config.json`` and ``.env``. ``None`` means
        the platform default.
    """

    mqtt_topic: str
    mqtt_host: str = "localhost"
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_theme_sync: bool | None = None
    mqtt_theme_host: str | None = None
    mqtt_theme_username: str | None = None
    mqtt_theme_password: str | None = None
    mqtt_theme_topic: str | None = None
    config_dir: Path | None = None

    def __post_init__(self) -> None:
        if not self.mqtt_topic or not self.mqtt_topic.strip():
            raise KioskConfigError("mqtt_topic is required (--mqtt-topic or MQTT_TOPIC)")
        if not self.mqtt_host or not self.mqtt_host.strip():
            raise KioskConfigError("mqtt_host must not be empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> KioskSettings:
        """Create settings from environment variables.

        Reads ``MQTT_HOST``, ``MQTT_USERNAME``, ``MQTT_PASSWORD``,
        ``MQTT_TOPIC``, the ``MQTT_THEME_*`` variables and
        ``APOLLOS_KIOSK_CONFIG_DIR``. Explicit keyword arguments override
        environment values; ``None`` overrides are ignored so argparse
        namespaces can be passed straight through.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        KioskSettings
            Populated settings.

        Raises
        ------
        KioskConfigError
            When no data topic is configured.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}

        _ENV_CONFIG_MAP = {
            "MQTT_HOST": "mqtt_host",
            "MQTT_USERNAME": "mqtt_username",
            "MQTT_PASSWORD": "mqtt_password",
            "MQTT_TOPIC": "mqtt_topic",
            "MQTT_THEME_HOST": "mqtt_theme_host",
            "MQTT_THEME_USERNAME": "mqtt_theme_username",
            "MQTT_THEME_PASSWORD": "mqtt_theme_password",
            "MQTT_THEME_TOPIC": "mqtt_theme_topic",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "mqtt_theme_sync" not in overrides:
            config_kwargs["mqtt_theme_sync"] = _env_bool(env.get("MQTT_THEME_SYNC"), None)

        config_dir_env = env.get("APOLLOS_KIOSK_CONFIG_DIR")
        if config_dir_env and "config_dir" not in overrides:
            config_kwargs["config_dir"] = Path(config_dir_env)

        config_kwargs.update(overrides)
        if isinstance(config_kwargs.get("config_dir"), str):
            config_kwargs["config_dir"] = Path(config_kwargs["config_dir"])
        config_kwargs.setdefault("mqtt_topic", "")

        return cls(**config_kwargs)
