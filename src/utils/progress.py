"""
Progress reporting for long-running passes.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Optional

from tqdm import tqdm


def page_count(total_owners: int, chunk_size: int) -> int:
    """Number of pages needed to cover every owner id."""
    if chunk_size <= 0:
        return 0
    return math.ceil(total_owners / chunk_size)


class ProgressBar:
    """Tick once per page and log page timings to the performance logger."""

    def __init__(
        self,
        label: str,
        total: int,
        logger: Optional[logging.Logger] = None,
        enabled: bool = True,
    ) -> None:
        self.label = label
        self.total = total
        self.logger = logger or logging.getLogger("acfml_fixer.performance")
        self.ticks = 0
        self._bar = tqdm(total=total, desc=label, unit="page", disable=not enabled)
        self._started = time.monotonic()
        self._last_tick = self._started

    def tick(self, note: str = "") -> None:
        now = time.monotonic()
        self.ticks += 1
        self._bar.update(1)
        self.logger.info(
            "%s page %s/%s in %.2fs%s",
            self.label,
            self.ticks,
            self.total,
            now - self._last_tick,
            f" ({note})" if note else "",
        )
        self._last_tick = now

    def finish(self) -> None:
        self._bar.close()
        self.logger.info(
            "%s finished: %s pages in %.2fs", self.label, self.ticks, time.monotonic() - self._started
        )
