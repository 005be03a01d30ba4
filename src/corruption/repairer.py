"""
Repair of self-nested metadata values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from database import DatabaseManager, MetaRecord, decode_value
from database.codec import JSON, TEXT, serialized_length, value_format

from .detector import get_entry, has_self_entry, is_affected_value


def last_element(entry: Any) -> Any:
    """Return the most recently appended element of an entry."""
    if isinstance(entry, list):
        return entry[-1] if entry else None
    if isinstance(entry, dict):
        return next(reversed(entry.values()), None) if entry else None
    # A scalar self entry stands in for its own last element.
    return entry


def clear_value(key: str, value: Any) -> Any:
    """Strip self-nested copies from a value until it is clean.

    Each round descends one level, so arbitrarily deep nesting is handled
    without recursion. Returns a new value; the input is not modified.
    """
    current = decode_value(value)
    while is_affected_value(key, current):
        if has_self_entry(key, current):
            current = decode_value(last_element(get_entry(current, key)))
        else:
            current = ""
    return current


@dataclass
class PageRepairStats:
    """Counts for one repaired page."""

    scanned: int = 0
    repaired: int = 0


class MetaRepairer:
    """Repair affected records and persist the changed values."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        logger: Optional[logging.Logger] = None,
        repair_logger: Optional[logging.Logger] = None,
    ) -> None:
        self.db_manager = db_manager
        self.logger = logger or logging.getLogger("acfml_fixer")
        self.repair_logger = repair_logger or logging.getLogger("acfml_fixer.repairs")

    def repaired_value(self, record: MetaRecord) -> tuple[Any, Any]:
        """Return the decoded original and repaired values for a record."""
        original = decode_value(record.meta_value)
        return original, clear_value(record.meta_key, original)

    def maybe_update(self, record: MetaRecord) -> bool:
        """Persist the repaired value when it differs from the original.

        The new value is written in the format the original was stored in.
        """
        try:
            original, repaired = self.repaired_value(record)
            if repaired == original:
                return False
        except RecursionError:
            self.logger.warning(
                "Skipping meta %s (post %s): value nested too deeply", record.meta_id, record.post_id
            )
            return False
        fmt = value_format(record.meta_value)
        stored = self.db_manager.update_meta_value(
            record.meta_id, repaired, fmt=fmt if fmt != TEXT else JSON
        )
        self.repair_logger.info(
            "Repaired meta %s (post %s, key %s, %s): %s -> %s bytes",
            record.meta_id,
            record.post_id,
            record.meta_key,
            fmt,
            serialized_length(record.meta_value),
            serialized_length(stored),
        )
        return True

    def repair_page(self, records: Iterable[MetaRecord]) -> PageRepairStats:
        """Repair every affected record in a page."""
        stats = PageRepairStats()
        for record in records:
            stats.scanned += 1
            if self.maybe_update(record):
                stats.repaired += 1
        return stats
