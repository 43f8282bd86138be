"""Custom exception hierarchy for apollos-kiosk."""

from __future__ import annotations


class KioskError(Exception):
    """Base exception for all apollos-kiosk errors."""


class KioskConfigError(KioskError):
    """Invalid or missing startup configuration."""


class KioskStorageError(KioskError):
    """Configuration file could not be read or written."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class KioskLayoutError(KioskError):
    """Panel layout operation referenced an unknown key or panel."""


class KioskTransportError(KioskError):
    """MQTT subscription could not be set up (client, connect, subscribe).

    Raised inside the subscription runtime and caught there: a failed
    subscriber stops permanently while the rest of the kiosk keeps running.
    """

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)
