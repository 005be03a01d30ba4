"""
Paged reads of post metadata by owner-id range.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterator, Optional

from database import DatabaseManager, MetaRecord

INTERNAL_KEY_PREFIX = "_"
DEFAULT_CHUNK_SIZE = 1000


class MetaPager:
    """Fetch metadata pages covering (offset, offset + chunk_size] owner ids."""

    def __init__(self, db_manager: DatabaseManager, logger: Optional[logging.Logger] = None) -> None:
        self.db_manager = db_manager
        self.logger = logger or logging.getLogger("acfml_fixer")

    def fetch(self, chunk_size: int, offset: int) -> list[MetaRecord]:
        """Return the non-internal records of one page; failures yield an empty page."""
        try:
            records = self.db_manager.fetch_meta_range(offset, offset + chunk_size)
        except sqlite3.Error as exc:
            self.logger.warning("Metadata page (%s, %s] could not be read: %s", offset, offset + chunk_size, exc)
            return []
        return [record for record in records if not self._is_internal(record)]

    @staticmethod
    def _is_internal(record: MetaRecord) -> bool:
        return record.meta_key.startswith(INTERNAL_KEY_PREFIX)


class ChunkIterator:
    """Iterate pages from a starting offset until the first empty page.

    Sparse pages do not end the scan; owner ids are a range cursor, not a count.
    """

    def __init__(self, pager: MetaPager, chunk_size: int = DEFAULT_CHUNK_SIZE, start_offset: int = 0) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.pager = pager
        self.chunk_size = chunk_size
        self.offset = start_offset
        self._exhausted = False

    def __iter__(self) -> Iterator[list[MetaRecord]]:
        return self

    def __next__(self) -> list[MetaRecord]:
        if self._exhausted:
            raise StopIteration
        page = self.pager.fetch(self.chunk_size, self.offset)
        if not page:
            self._exhausted = True
            raise StopIteration
        self.offset += self.chunk_size
        return page
