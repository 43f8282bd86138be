"""Content decoder.

Classifies a feed key + JSON value into one :data:`ContentVariant`.
Structured prefixes are validated as a list of the matching report model
(a bare object counts as a one-item list);
opaque prefixes wrap the value verbatim. Anything that doesn't decode
yields ``None`` so the caller drops the key for this message only.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from apollos_kiosk.ingestion.diagnostics import DecodeOutcome, DecodeStats
from apollos_kiosk.ingestion.normalize import is_empty_value, key_prefix, kind_for_key
from apollos_kiosk.models.content import (
    OPAQUE_KINDS,
    STRUCTURED_CONTENT,
    ContentVariant,
    OpaqueContent,
)

_logger = logging.getLogger(__name__)


def decode_content(
    key: str,
    value: Any,
    *,
    stats: DecodeStats | None = None,
) -> ContentVariant | None:
    """Decode *value* published under *key*.

    Returns ``None`` when the value is empty (null, ``{}``, ``[]``), when
    the key prefix is not recognized, or when the value does not match the
    schema for its prefix.
    """
    prefix = key_prefix(key)

    if is_empty_value(value):
        _logger.debug("Skipping empty data for key=%s", key)
        _record(stats, prefix, DecodeOutcome.EMPTY)
        return None

    kind = kind_for_key(key)
    if kind is None:
        _logger.debug("No decoder for key=%s", key)
        _record(stats, prefix, DecodeOutcome.UNKNOWN_PREFIX)
        return None

    if kind in OPAQUE_KINDS:
        _record(stats, prefix, DecodeOutcome.DECODED)
        return OpaqueContent(kind=kind, value=value)

    model = STRUCTURED_CONTENT[kind]
    # Some publishers send a single report instead of a one-item list.
    items = [value] if isinstance(value, dict) else value
    try:
        content = model.model_validate({"items": items})
    except ValidationError as exc:
        _logger.debug("Decode failed for key=%s kind=%s: %s", key, kind, exc)
        _record(stats, prefix, DecodeOutcome.FAILED)
        return None

    _record(stats, prefix, DecodeOutcome.DECODED)
    return content  # type: ignore[return-value]


def _record(stats: DecodeStats | None, prefix: str | None, outcome: DecodeOutcome) -> None:
    if stats is not None:
        stats.record(prefix, outcome)
