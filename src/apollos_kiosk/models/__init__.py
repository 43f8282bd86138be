"""Data models for kiosk feeds and configuration."""

from apollos_kiosk.models._base import FeedBaseModel
from apollos_kiosk.models.config import PANEL_COUNT, KioskConfig
from apollos_kiosk.models.content import (
    OPAQUE_KINDS,
    AqiContent,
    AqiReport,
    CalendarContent,
    CalendarEvent,
    ContentKind,
    ContentVariant,
    EphemerisContent,
    EphemerisReport,
    GbfsContent,
    GbfsStation,
    GtfsContent,
    GtfsRoute,
    OpaqueContent,
    TidalContent,
    TidalReport,
    WeatherContent,
    WeatherReport,
    Wind,
)
from apollos_kiosk.models.feed import FeedEntry, QueryInfo

__all__ = [
    "OPAQUE_KINDS",
    "PANEL_COUNT",
    "AqiContent",
    "AqiReport",
    "CalendarContent",
    "CalendarEvent",
    "ContentKind",
    "ContentVariant",
    "EphemerisContent",
    "EphemerisReport",
    "FeedBaseModel",
    "FeedEntry",
    "GbfsContent",
    "GbfsStation",
    "GtfsContent",
    "GtfsRoute",
    "KioskConfig",
    "OpaqueContent",
    "QueryInfo",
    "TidalContent",
    "TidalReport",
    "WeatherContent",
    "WeatherReport",
    "Wind",
]
