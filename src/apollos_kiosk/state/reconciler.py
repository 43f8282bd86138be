"""Ingestion reconciler.

Applies one received data-channel payload to the feed store and the
panel ledger:

1. unwrap/decode every key (failures drop that key only)
2. register keys never seen before into ``unassigned`` and persist
3. overwrite the feed store entry

Steps 2 and 3 are independent side effects; there is no rollback.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from apollos_kiosk._redact import redact_for_log
from apollos_kiosk.ingestion.diagnostics import DecodeStats
from apollos_kiosk.ingestion.envelope import unwrap_entry
from apollos_kiosk.state.ledger import PanelLedger
from apollos_kiosk.state.store import FeedStore

_logger = logging.getLogger(__name__)


def parse_payload(payload: bytes | str) -> dict[str, Any] | None:
    """Parse a data-channel payload into a key -> value mapping.

    Returns ``None`` when the payload is not UTF-8 JSON or not an object.
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        parsed = json.loads(text)
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


class IngestionReconciler:
    """Feeds decoded entries into the store and registers new keys."""

    def __init__(
        self,
        *,
        store: FeedStore,
        ledger: PanelLedger,
        persist: Callable[[], None],
        stats: DecodeStats | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._persist = persist
        self._stats = stats if stats is not None else DecodeStats()
        self._logger = logger or _logger

    @property
    def stats(self) -> DecodeStats:
        return self._stats

    def process_payload(self, payload: bytes | str) -> list[str]:
        """Apply one raw payload. Returns the keys whose entries were updated."""
        mapping = parse_payload(payload)
        if mapping is None:
            self._logger.warning("Discarding payload that is not a JSON object: %r", payload[:200])
            return []
        self._logger.debug("Received data map %s", redact_for_log(mapping))
        return self.process_mapping(mapping)

    def process_mapping(self, mapping: dict[str, Any]) -> list[str]:
        updated: list[str] = []
        for key, value in mapping.items():
            entry = unwrap_entry(key, value, stats=self._stats)
            if entry is None:
                self._logger.debug("Failed to parse data for key=%s", key)
                continue

            if key not in self._store and self._ledger.register(key):
                self._logger.info("New feed %s added to unassigned", key)
                self._persist()

            self._store.put(key, entry)
            updated.append(key)
        return updated
