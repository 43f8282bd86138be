"""Ingestion layer.

This package turns raw published feed values into typed
:class:`~apollos_kiosk.models.feed.FeedEntry` objects. It never touches
the feed store or the panel ledger; that is the reconciler's job.
"""

from apollos_kiosk.ingestion.decode import decode_content
from apollos_kiosk.ingestion.diagnostics import DecodeOutcome, DecodeStats
from apollos_kiosk.ingestion.envelope import unwrap_entry

__all__ = ["DecodeOutcome", "DecodeStats", "decode_content", "unwrap_entry"]
