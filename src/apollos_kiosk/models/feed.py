"""Feed entry and query metadata models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from apollos_kiosk.models.content import ContentVariant


class QueryInfo(BaseModel):
    """Query metadata attached to an envelope-format feed.

    Only ``name`` is required. Any other query parameters the publisher
    includes are kept as extra fields and exposed through :attr:`params`.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str

    @property
    def params(self) -> dict[str, Any]:
        """Query parameters other than ``name``."""
        return dict(self.model_extra or {})


class FeedEntry(BaseModel):
    """The most recently decoded content for one feed key.

    Entries are replaced wholesale on every successful decode and never
    merged field by field.
    """

    model_config = ConfigDict(frozen=True)

    content: ContentVariant
    query_info: QueryInfo | None = None

    def display_name(self, key: str) -> str:
        """Name to show for this feed: the query name, else the feed key."""
        if self.query_info is not None and self.query_info.name:
            return self.query_info.name
        return key
