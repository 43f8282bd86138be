"""Per-prefix decode counters.

A bare log line can't tell a transient malformed payload apart from a
publisher that moved to a newer schema. Counting outcomes per key prefix
makes a prefix that never decodes stand out.
"""

from __future__ import annotations

from collections import Counter
from enum import StrEnum

from apollos_kiosk.ingestion.normalize import PREFIX_KINDS

# Prefixes outside the known table share one bucket so the counters stay bounded.
OTHER_PREFIXES = "*"


class DecodeOutcome(StrEnum):
    DECODED = "decoded"
    EMPTY = "empty"
    FAILED = "failed"
    UNKNOWN_PREFIX = "unknown_prefix"


class DecodeStats:
    """Counts decode outcomes keyed by ``(prefix, outcome)``.

    Unknown or missing prefixes are all counted under :data:`OTHER_PREFIXES`.
    """

    def __init__(self) -> None:
        self._counts: Counter[tuple[str, DecodeOutcome]] = Counter()

    def record(self, prefix: str | None, outcome: DecodeOutcome) -> None:
        if prefix not in PREFIX_KINDS:
            prefix = OTHER_PREFIXES
        self._counts[(prefix, outcome)] += 1

    def count(self, prefix: str, outcome: DecodeOutcome) -> int:
        return self._counts[(prefix, outcome)]

    def failures(self) -> dict[str, int]:
        """Failed decodes per prefix, only for prefixes that failed at least once."""
        return {
            prefix: n for (prefix, outcome), n in self._counts.items() if outcome == DecodeOutcome.FAILED and n
        }

    def snapshot(self) -> dict[str, dict[str, int]]:
        result: dict[str, dict[str, int]] = {}
        for (prefix, outcome), n in sorted(self._counts.items()):
            result.setdefault(prefix, {})[outcome.value] = n
        return result

    def reset(self) -> None:
        self._counts.clear()
