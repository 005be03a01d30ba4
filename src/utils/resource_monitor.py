"""
Resource throttling between metadata pages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import psutil

from config import AppConfig


@dataclass
class ResourceMonitor:
    """Pause between pages while CPU or RAM usage is over its limit.

    A limit of 0 disables that check; both at 0 disables throttling.
    """

    max_cpu_percent: float = 0.0
    max_ram_percent: float = 0.0
    sleep_seconds: float = 0.5
    max_throttle_seconds: float = 15.0
    logger: Optional[logging.Logger] = None
    _throttled_seconds: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = logging.getLogger("acfml_fixer.performance")
        if self.enabled:
            psutil.cpu_percent(interval=None)

    @classmethod
    def from_config(cls, config: AppConfig, logger: Optional[logging.Logger] = None) -> "ResourceMonitor":
        return cls(
            max_cpu_percent=float(config.get("resource_limits", "max_cpu_percent", default=0)),
            max_ram_percent=float(config.get("resource_limits", "max_ram_percent", default=0)),
            max_throttle_seconds=float(config.get("resource_limits", "max_throttle_seconds", default=15)),
            logger=logger,
        )

    @property
    def enabled(self) -> bool:
        return self.max_cpu_percent > 0 or self.max_ram_percent > 0

    @property
    def throttled_seconds(self) -> float:
        return self._throttled_seconds

    def throttle(self) -> None:
        """Sleep while CPU or RAM usage exceeds thresholds."""
        if not self.enabled:
            return
        start_time = time.monotonic()
        while True:
            cpu = psutil.cpu_percent(interval=0.1)
            ram = psutil.virtual_memory().percent
            cpu_over = self.max_cpu_percent > 0 and cpu > self.max_cpu_percent
            ram_over = self.max_ram_percent > 0 and ram > self.max_ram_percent
            waited = time.monotonic() - start_time
            if not (cpu_over or ram_over) or waited >= self.max_throttle_seconds:
                break
            time.sleep(self.sleep_seconds)
        if waited > 0.5:
            self._throttled_seconds += waited
            self.logger.info("Throttled %.1fs (cpu=%.0f%% ram=%.0f%%)", waited, cpu, ram)
