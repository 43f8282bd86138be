"""Configuration file persistence.

The record is stored as pretty-printed JSON. Writes go through a
temporary file in the same directory followed by an atomic replace, so
a crash mid-write never leaves a truncated config behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from apollos_kiosk.exceptions import KioskStorageError
from apollos_kiosk.models.config import KioskConfig

_logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def default_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/apollos-kiosk``, else ``~/.config/apollos-kiosk``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "apollos-kiosk"


class ConfigStorage:
    def __init__(self, path: Path) -> None:
        self._path = path

    @classmethod
    def in_dir(cls, directory: Path) -> ConfigStorage:
        return cls(directory / CONFIG_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> KioskConfig:
        """Read and validate the stored record.

        Raises :class:`KioskStorageError` when the file is missing,
        unreadable or invalid.
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise KioskStorageError(f"cannot read {self._path}: {exc}", path=str(self._path)) from exc
        try:
            return KioskConfig.model_validate_json(text)
        except ValidationError as exc:
            raise KioskStorageError(f"invalid config {self._path}: {exc}", path=str(self._path)) from exc

    def load(self) -> KioskConfig:
        """Return the stored record, or defaults when there is none usable."""
        if not self._path.exists():
            _logger.info("No config at %s, using defaults", self._path)
            return KioskConfig()
        try:
            return self.read()
        except KioskStorageError:
            _logger.warning("Ignoring unreadable config at %s", self._path, exc_info=True)
            return KioskConfig()

    def save(self, config: KioskConfig) -> None:
        """Write *config*. Raises :class:`KioskStorageError` on failure."""
        text = config.model_dump_json(indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".config-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise KioskStorageError(f"cannot write {self._path}: {exc}", path=str(self._path)) from exc
        _logger.debug("Saved config to %s", self._path)
