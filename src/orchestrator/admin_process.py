"""
Incremental repair driven by admin requests, with a persisted lock and cursor.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from config import AppConfig
from corruption import MetaRepairer
from database import DatabaseManager
from database.manager import FLAG_SET
from discovery import DEFAULT_CHUNK_SIZE, MetaPager

T = TypeVar("T")

ENV_CHUNK_ITERATIONS = "ACFML_CLEANER_CHUNK_NUMS"


@dataclass(frozen=True)
class ProgressState:
    """Persisted state of the incremental repair."""

    locked: bool
    offset: int
    finished: bool


@dataclass(frozen=True)
class StepResult:
    """Outcome of one incremental trigger."""

    offset: int
    total: int
    pages: int = 0
    repaired: int = 0
    ran: bool = True

    @property
    def notice(self) -> str:
        return f"ACFML Cleaner has processed {self.offset} / {self.total} posts"


class ProcessLock:
    """Process-wide lock stored as an option row."""

    LOCK = "acfml_fixer_process_locked"

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    def is_locked(self) -> bool:
        return self.db_manager.is_option_flag_set(self.LOCK)

    def acquire(self) -> bool:
        return self.db_manager.acquire_option_flag(self.LOCK)

    def release(self) -> None:
        self.db_manager.update_option(self.LOCK, "0")

    def run_lockable(self, fn: Callable[[], T]) -> Optional[T]:
        """Run fn while holding the lock; return None without running it if held."""
        if not self.acquire():
            return None
        try:
            return fn()
        finally:
            self.release()


class AdminProcess:
    """Persisted resume offset and completion flag."""

    DONE = "acfml_fixer_process_done"
    OFFSET = "acfml_fixer_process_offset"

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    def is_finished(self) -> bool:
        return self.db_manager.is_option_flag_set(self.DONE)

    def finish(self) -> None:
        self.db_manager.update_option(self.DONE, FLAG_SET)

    def get_offset(self) -> int:
        value = self.db_manager.get_option(self.OFFSET, "0")
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def update_offset(self, offset: int) -> None:
        self.db_manager.update_option(self.OFFSET, str(offset))

    def reset(self) -> None:
        for name in (self.DONE, self.OFFSET, ProcessLock.LOCK):
            self.db_manager.delete_option(name)


class IncrementalRepair:
    """Bounded repair step run once per qualifying admin request."""

    def __init__(
        self,
        config: AppConfig,
        db_manager: DatabaseManager,
        logger: Optional[logging.Logger] = None,
        repairer: Optional[MetaRepairer] = None,
    ) -> None:
        self.config = config
        self.db_manager = db_manager
        self.logger = logger or logging.getLogger("acfml_fixer")
        self.chunk_size = int(self.config.get("scan", "chunk_size", default=DEFAULT_CHUNK_SIZE))
        self.pager = MetaPager(db_manager, logger=self.logger)
        self.repairer = repairer or MetaRepairer(db_manager, logger=self.logger)
        self.lock = ProcessLock(db_manager)
        self.process = AdminProcess(db_manager)

    def state(self) -> ProgressState:
        return ProgressState(
            locked=self.lock.is_locked(),
            offset=self.process.get_offset(),
            finished=self.process.is_finished(),
        )

    def chunk_iterations(self) -> int:
        """Pages per trigger; the environment wins over config."""
        env_value = os.environ.get(ENV_CHUNK_ITERATIONS)
        if env_value:
            try:
                return max(int(env_value), 0)
            except ValueError:
                self.logger.warning("Ignoring invalid %s=%r", ENV_CHUNK_ITERATIONS, env_value)
        return max(int(self.config.get("incremental", "chunk_iterations", default=1)), 0)

    def on_admin_init(self, is_admin: bool, logged_in: bool) -> Optional[StepResult]:
        """Host hook: run one step for logged-in admin requests until finished."""
        if not is_admin or not logged_in or self.process.is_finished():
            return None
        return self.run_step()

    def run_step(self, chunk_iterations: Optional[int] = None) -> StepResult:
        """Run one locked step; reports current progress even when skipped."""
        iterations = self.chunk_iterations() if chunk_iterations is None else chunk_iterations
        result = self.lock.run_lockable(lambda: self._step(iterations))
        if result is None:
            self.logger.info("Incremental repair already running; skipping this trigger.")
            return StepResult(
                offset=self.process.get_offset(),
                total=self.db_manager.count_owners(),
                ran=False,
            )
        return result

    def _step(self, iterations: int) -> StepResult:
        offset = self.process.get_offset()
        total = self.db_manager.count_owners()
        pages = repaired = 0
        while pages < iterations and offset < total:
            records = self.pager.fetch(self.chunk_size, offset)
            stats = self.repairer.repair_page(records)
            repaired += stats.repaired
            offset += self.chunk_size
            self.process.update_offset(offset)
            pages += 1

        if offset >= total:
            self.process.finish()
            self.logger.info("Incremental repair finished at offset %s of %s.", offset, total)
        return StepResult(offset=offset, total=total, pages=pages, repaired=repaired)
