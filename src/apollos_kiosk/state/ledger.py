"""Panel assignment ledger.

The ledger lives inside the persisted :class:`KioskConfig` record
(``panels`` + ``unassigned``). This wrapper holds a reference to that
record and keeps the one invariant that matters: a feed key is in at most
one of the four lists. It never persists on its own; callers persist
after a mutation that returned True.
"""

from __future__ import annotations

from apollos_kiosk.exceptions import KioskLayoutError
from apollos_kiosk.models.config import PANEL_COUNT, KioskConfig


def check_panel(panel: int) -> None:
    if not 0 <= panel < PANEL_COUNT:
        raise KioskLayoutError(f"panel must be between 0 and {PANEL_COUNT - 1}, got {panel}")


class PanelLedger:
    def __init__(self, config: KioskConfig) -> None:
        self._config = config

    @property
    def panels(self) -> list[list[str]]:
        return self._config.panels

    @property
    def unassigned(self) -> list[str]:
        return self._config.unassigned

    def location(self, key: str) -> int | None:
        """Panel index holding *key*, ``-1`` for unassigned, ``None`` if absent."""
        for idx, keys in enumerate(self._config.panels):
            if key in keys:
                return idx
        if key in self._config.unassigned:
            return -1
        return None

    def contains(self, key: str) -> bool:
        return self.location(key) is not None

    def register(self, key: str) -> bool:
        """Append *key* to ``unassigned`` unless some list already has it.

        Returns True when the ledger changed.
        """
        if self.contains(key):
            return False
        self._config.unassigned.append(key)
        return True

    def assign(self, key: str, panel: int) -> bool:
        """Move *key* to the end of *panel*.

        The key may come from ``unassigned`` or another panel. Returns
        False when it is already on *panel*.
        """
        check_panel(panel)
        current = self.location(key)
        if current is None:
            raise KioskLayoutError(f"unknown feed key {key!r}")
        if current == panel:
            return False
        self._remove(key, current)
        self._config.panels[panel].append(key)
        return True

    def unassign(self, key: str) -> bool:
        """Move *key* from its panel to the end of ``unassigned``."""
        current = self.location(key)
        if current is None:
            raise KioskLayoutError(f"unknown feed key {key!r}")
        if current == -1:
            return False
        self._remove(key, current)
        self._config.unassigned.append(key)
        return True

    def _remove(self, key: str, location: int) -> None:
        if location == -1:
            self._config.unassigned.remove(key)
        else:
            self._config.panels[location].remove(key)
