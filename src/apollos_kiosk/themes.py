"""Theme catalog, alias normalization and the theme resolver.

External theme sync publishers use lowercase, dash-separated names
(``"dark-dimmed"``, ``"after-dark"``). The kiosk stores one canonical
name per theme (``"Dark"``, ``"After Dark"``) and looks colours up in
the catalog by that name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from apollos_kiosk.models.config import KioskConfig

_logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    """Concrete display colours for one canonical theme name."""

    name: str
    background_color: RGB
    text_color: RGB
    accent_color: RGB

    @property
    def raised_background_color(self) -> RGB:
        """Background for cards: the panel background lifted by 10 per channel."""
        r, g, b = self.background_color
        return (min(r + 10, 255), min(g + 10, 255), min(b + 10, 255))


DEFAULT_THEME = Theme(
    name="Dark",
    background_color=(40, 44, 52),
    text_color=(220, 223, 228),
    accent_color=(255, 180, 100),
)

THEME_CATALOG: tuple[Theme, ...] = (
    Theme("Light", (240, 240, 245), (60, 60, 70), (100, 100, 180)),
    DEFAULT_THEME,
    Theme("Solarized", (0, 43, 54), (131, 148, 150), (181, 137, 0)),
    Theme("After Dark", (32, 29, 101), (172, 171, 213), (254, 243, 199)),
    Theme("Her", (101, 29, 29), (213, 171, 171), (254, 243, 199)),
    Theme("Forest", (5, 46, 22), (134, 239, 172), (254, 243, 199)),
    Theme("Sky", (8, 47, 73), (125, 211, 252), (254, 243, 199)),
    Theme("Clays", (69, 26, 3), (245, 158, 11), (254, 243, 199)),
    Theme("Stones", (41, 37, 36), (156, 163, 175), (254, 243, 199)),
)

THEME_ALIASES: dict[str, str] = {
    "light": "Light",
    "light-soft": "Light",
    "dark": "Dark",
    "dark-soft": "Dark",
    "dark-dimmed": "Dark",
    "after-dark": "After Dark",
    "her": "Her",
    "forest": "Forest",
    "sky": "Sky",
    "clays": "Clays",
    "stones": "Stones",
    "solarized": "Solarized",
}


def normalize_theme_name(raw: str) -> str | None:
    """Map an external theme name to its canonical name, ``None`` if unknown."""
    return THEME_ALIASES.get(raw.strip().lower())


def find_theme(name: str, catalog: Sequence[Theme] = THEME_CATALOG) -> Theme:
    """Look *name* up in *catalog*, falling back to :data:`DEFAULT_THEME`."""
    for theme in catalog:
        if theme.name == name:
            return theme
    return DEFAULT_THEME


class ThemeResolver:
    """Applies theme names to the configuration record.

    Owns no state of its own besides the resolved colours; the canonical
    name lives in ``config.current_theme``.
    """

    def __init__(
        self,
        config: KioskConfig,
        *,
        persist: Callable[[], None],
        catalog: Sequence[Theme] = THEME_CATALOG,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._persist = persist
        self._catalog = catalog
        self._logger = logger or _logger
        self._theme = find_theme(config.current_theme, catalog)

    @property
    def current(self) -> str:
        return self._config.current_theme

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def catalog(self) -> Sequence[Theme]:
        return self._catalog

    def apply(self, raw_name: str) -> bool:
        """Switch to the theme named *raw_name* (any alias, any case).

        Returns True when the current theme changed and was persisted.
        """
        canonical = normalize_theme_name(raw_name)
        if canonical is None:
            self._logger.warning("Unknown theme %r, keeping %s", raw_name, self._config.current_theme)
            return False
        if canonical == self._config.current_theme:
            return False
        self._config.current_theme = canonical
        self._theme = find_theme(canonical, self._catalog)
        self._persist()
        self._logger.info("Theme updated to %s", canonical)
        return True
