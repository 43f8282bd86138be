"""Persisted kiosk configuration record.

One record holds the panel assignment ledger, the current theme, and the
theme sync channel settings. It is loaded once at startup, mutated in
memory by the consumer loop, and written back after every mutation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from apollos_kiosk.config import KioskSettings

PANEL_COUNT = 3
DEFAULT_THEME_NAME = "Dark"
DEFAULT_THEME_HOST = "tcp://localhost:2883"
DEFAULT_THEME_TOPIC = "neiam/sync/theme"


def _empty_panels() -> list[list[str]]:
    return [[] for _ in range(PANEL_COUNT)]


class KioskConfig(BaseModel):
    """Mutable configuration record owned by the consumer loop.

    Parameters
    ----------
    panels : list of list of str
        Ordered feed keys for the left, center and right panels.
    unassigned : list of str
        Feed keys seen but not yet placed on a panel, in discovery order.
    current_theme : str
        Canonical theme name.
    mqtt_theme_sync : bool
        Subscribe to the theme sync channel at startup.
    mqtt_theme_host : str
        Theme broker URI (``tcp://host:port``).
    mqtt_theme_username, mqtt_theme_password : str or None
        Theme broker credentials.
    mqtt_theme_topic : str
        Theme sync topic.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    panels: list[list[str]] = Field(default_factory=_empty_panels)
    unassigned: list[str] = Field(default_factory=list)
    current_theme: str = DEFAULT_THEME_NAME
    mqtt_theme_sync: bool = False
    mqtt_theme_host: str = DEFAULT_THEME_HOST
    mqtt_theme_username: str | None = None
    mqtt_theme_password: str | None = None
    mqtt_theme_topic: str = DEFAULT_THEME_TOPIC

    @field_validator("panels", mode="before")
    @classmethod
    def _pad_panels(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        if len(value) > PANEL_COUNT:
            raise ValueError(f"expected at most {PANEL_COUNT} panels, got {len(value)}")
        return list(value) + [[] for _ in range(PANEL_COUNT - len(value))]

    @field_validator("current_theme", mode="before")
    @classmethod
    def _default_theme(cls, value: Any) -> Any:
        # Older records may carry an empty theme name.
        if value is None or value == "":
            return DEFAULT_THEME_NAME
        return value

    @model_validator(mode="after")
    def _dedupe_keys(self) -> KioskConfig:
        """Keep each key in at most one list, first occurrence wins.

        Panels are scanned in order before ``unassigned``. Lists are
        rewritten in place to avoid re-triggering assignment validation.
        """
        seen: set[str] = set()
        for keys in (*self.panels, self.unassigned):
            kept: list[str] = []
            for key in keys:
                if key not in seen:
                    seen.add(key)
                    kept.append(key)
            keys[:] = kept
        return self

    def with_overrides(self, settings: KioskSettings) -> KioskConfig:
        """Return a copy with every theme channel override that is set applied."""
        updates: dict[str, Any] = {}
        for field_name in (
            "mqtt_theme_sync",
            "mqtt_theme_host",
            "mqtt_theme_username",
            "mqtt_theme_password",
            "mqtt_theme_topic",
        ):
            value = getattr(settings, field_name)
            if value is not None:
                updates[field_name] = value
        merged = self.model_dump()
        merged.update(updates)
        return KioskConfig.model_validate(merged)
