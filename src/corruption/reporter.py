"""
Report-only handling of affected records.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from database import MetaRecord

from .detector import is_affected

DEFAULT_REPORT_NAME = "affected.cvs"


class AffectedReporter:
    """Append one line per affected record to a report file."""

    def __init__(self, report_path: Path, logger: Optional[logging.Logger] = None) -> None:
        self.report_path = report_path
        self.logger = logger or logging.getLogger("acfml_fixer")

    def record(self, record: MetaRecord) -> bool:
        """Log the record if it is affected; never changes the record."""
        if not is_affected(record):
            return False
        line = ",".join([str(record.meta_id), record.meta_key, str(record.post_id)])
        with self.report_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return True

    def record_page(self, records: Iterable[MetaRecord]) -> int:
        """Report every affected record in a page and return the count."""
        return sum(1 for record in records if self.record(record))
