"""apollos-kiosk - feed ingestion engine for an MQTT-driven kiosk dashboard."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apollos-kiosk")
except PackageNotFoundError:
    __version__ = "0+local"

from apollos_kiosk.config import KioskSettings
from apollos_kiosk.exceptions import (
    KioskConfigError,
    KioskError,
    KioskLayoutError,
    KioskStorageError,
    KioskTransportError,
)
from apollos_kiosk.ingestion import DecodeStats, decode_content, unwrap_entry
from apollos_kiosk.kiosk import Kiosk, RepaintSignal
from apollos_kiosk.models import (
    ContentKind,
    FeedEntry,
    KioskConfig,
    QueryInfo,
)
from apollos_kiosk.state import FeedStore, IngestionReconciler, PanelLedger
from apollos_kiosk.storage import ConfigStorage
from apollos_kiosk.themes import Theme, ThemeResolver, normalize_theme_name

__all__ = [
    "__version__",
    "ConfigStorage",
    "ContentKind",
    "DecodeStats",
    "FeedEntry",
    "FeedStore",
    "IngestionReconciler",
    "Kiosk",
    "KioskConfig",
    "KioskConfigError",
    "KioskError",
    "KioskLayoutError",
    "KioskSettings",
    "KioskStorageError",
    "KioskTransportError",
    "PanelLedger",
    "QueryInfo",
    "RepaintSignal",
    "Theme",
    "ThemeResolver",
    "decode_content",
    "normalize_theme_name",
    "unwrap_entry",
]
