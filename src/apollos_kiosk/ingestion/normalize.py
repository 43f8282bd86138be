"""Normalization helpers.

Centralizes feed-key prefix parsing and the "no data yet" check so the
decoder and reconciler don't each re-implement them.
"""

from __future__ import annotations

from typing import Any

from apollos_kiosk.models.content import ContentKind

# Key prefix (text before the first "-") -> content kind.
PREFIX_KINDS: dict[str, ContentKind] = {
    "gtfs": ContentKind.GTFS,
    "gbfs": ContentKind.GBFS,
    "weather": ContentKind.WEATHER,
    "aqi": ContentKind.AQI,
    "ephem": ContentKind.EPHEMERIS,
    "cal": ContentKind.CALENDAR,
    "tidal": ContentKind.TIDAL,
    "cronos": ContentKind.CRONOS,
    "gitlab": ContentKind.GITLAB,
    "pkg": ContentKind.PACKAGES,
    "const": ContentKind.CONST,
}


def key_prefix(key: str) -> str | None:
    """Return the text before the first ``-`` of *key*, or ``None`` without one."""
    prefix, sep, _rest = key.partition("-")
    if not sep:
        return None
    return prefix


def kind_for_key(key: str) -> ContentKind | None:
    prefix = key_prefix(key)
    if prefix is None:
        return None
    return PREFIX_KINDS.get(prefix)


def is_empty_value(value: Any) -> bool:
    """Return True for values that mean "no data yet": null, ``{}`` and ``[]``."""
    if value is None:
        return True
    if isinstance(value, (dict, list)):
        return not value
    return False
