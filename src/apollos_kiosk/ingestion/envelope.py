"""Envelope unwrapper.

Feeds are published either wrapped::

    {"data": <schema-specific>, "query": {"name": "...", ...}}

or bare (legacy). A value that carries both ``data`` and ``query`` is
always treated as an envelope; it never falls through to decoding the
outer object directly.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from apollos_kiosk.ingestion.decode import decode_content
from apollos_kiosk.ingestion.diagnostics import DecodeOutcome, DecodeStats
from apollos_kiosk.ingestion.normalize import key_prefix
from apollos_kiosk.models.feed import FeedEntry, QueryInfo

_logger = logging.getLogger(__name__)


def is_envelope(value: Any) -> bool:
    return isinstance(value, dict) and "data" in value and "query" in value


def unwrap_entry(
    key: str,
    value: Any,
    *,
    stats: DecodeStats | None = None,
) -> FeedEntry | None:
    """Decode one published value into a :class:`FeedEntry`, or ``None``."""
    if is_envelope(value):
        try:
            query_info = QueryInfo.model_validate(value["query"])
        except ValidationError as exc:
            _logger.debug("Invalid query info for key=%s: %s", key, exc)
            if stats is not None:
                stats.record(key_prefix(key), DecodeOutcome.FAILED)
            return None
        content = decode_content(key, value["data"], stats=stats)
        if content is None:
            return None
        return FeedEntry(content=content, query_info=query_info)

    content = decode_content(key, value, stats=stats)
    if content is None:
        return None
    return FeedEntry(content=content)
