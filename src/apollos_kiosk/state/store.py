"""In-memory feed store.

This is the authoritative record of what is currently known about each
feed key. Only the consumer loop mutates it.
"""

from __future__ import annotations

from collections.abc import Iterator

from apollos_kiosk.models.feed import FeedEntry


class FeedStore:
    """Latest decoded :class:`FeedEntry` per feed key.

    Entries are replaced wholesale; there is no merge and no history.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FeedEntry] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, key: str) -> FeedEntry | None:
        return self._entries.get(key)

    def put(self, key: str, entry: FeedEntry) -> bool:
        """Insert or overwrite *key*. Returns True when the key is new."""
        is_new = key not in self._entries
        self._entries[key] = entry
        return is_new

    def keys(self) -> list[str]:
        return list(self._entries)

    def snapshot(self) -> dict[str, FeedEntry]:
        # Entries are frozen models, a shallow copy is enough.
        return dict(self._entries)
