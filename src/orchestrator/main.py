"""
Bulk repair and report passes, and the command-line entry point.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from config import AppConfig, ensure_directories
from corruption import AffectedReporter, MetaRepairer, is_affected
from corruption.reporter import DEFAULT_REPORT_NAME
from database import DatabaseManager, MetaRecord, encode_value
from database.codec import JSON, TEXT, value_format
from discovery import DEFAULT_CHUNK_SIZE, ChunkIterator, MetaPager
from orchestrator.admin_process import IncrementalRepair
from utils import (
    InstanceLockError,
    ProgressBar,
    ResourceMonitor,
    acquire_instance_lock,
    page_count,
    setup_logging,
)

PageHandler = Callable[[list[MetaRecord]], int]

CLEAR_LABEL = "Clearing post meta"
LIST_LABEL = "Listing affected post meta"


@dataclass
class PassStats:
    """Summary of a full bulk pass."""

    pages: int
    records: int
    affected: int
    report_path: Optional[Path] = None


class BulkPass:
    """Run a handler over every metadata page, ticking progress per page."""

    def __init__(
        self,
        config: AppConfig,
        db_manager: DatabaseManager,
        logger: Optional[logging.Logger] = None,
        monitor: Optional[ResourceMonitor] = None,
    ) -> None:
        self.config = config
        self.db_manager = db_manager
        self.logger = logger or logging.getLogger("acfml_fixer")
        self.monitor = monitor
        self.chunk_size = int(self.config.get("scan", "chunk_size", default=DEFAULT_CHUNK_SIZE))
        self.progress_enabled = bool(self.config.get("progress", "enabled", default=True))
        self.pager = MetaPager(db_manager, logger=self.logger)

    def run(self, label: str, handler: PageHandler) -> PassStats:
        """Iterate all pages from offset 0 and apply the handler to each."""
        progress = ProgressBar(
            label,
            page_count(self.db_manager.count_owners(), self.chunk_size),
            enabled=self.progress_enabled,
        )
        pages = records = affected = 0
        try:
            for page in ChunkIterator(self.pager, self.chunk_size):
                affected += handler(page)
                pages += 1
                records += len(page)
                progress.tick(f"{len(page)} records")
                if self.monitor is not None:
                    self.monitor.throttle()
        finally:
            progress.finish()
        self.logger.info("%s: pages=%s records=%s affected=%s", label, pages, records, affected)
        return PassStats(pages=pages, records=records, affected=affected)

    def clear(self, repairer: Optional[MetaRepairer] = None) -> PassStats:
        """Repair every affected record."""
        repairer = repairer or MetaRepairer(self.db_manager, logger=self.logger)
        return self.run(CLEAR_LABEL, lambda page: repairer.repair_page(page).repaired)

    def list_affected(self, report_path: Path) -> PassStats:
        """Append every affected record to the report without changing data."""
        report_path.parent.mkdir(parents=True, exist_ok=True)
        reporter = AffectedReporter(report_path, logger=self.logger)
        stats = self.run(LIST_LABEL, reporter.record_page)
        stats.report_path = report_path
        return stats


def default_report_path(config: AppConfig) -> Path:
    if config.get("report", "path") is None:
        return Path.cwd() / DEFAULT_REPORT_NAME
    return config.resolve_path("report", "path")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acfml",
        description="Repair post meta corrupted by self-nested serialized values.",
    )
    parser.add_argument("--config", default=None, help="Optional config path override")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("clear", help="Clear post meta corrupted by self-nesting")
    list_parser = subparsers.add_parser("list", help="List post meta corrupted by self-nesting")
    list_parser.add_argument("--output", default=None, help="Report path (default: ./affected.cvs)")
    step_parser = subparsers.add_parser("step", help="Run one incremental repair step")
    step_parser.add_argument("--chunks", type=int, default=None, help="Pages to process in this step")
    subparsers.add_parser("status", help="Show incremental repair progress")
    subparsers.add_parser("reset", help="Reset incremental repair progress and lock")
    inspect_parser = subparsers.add_parser("inspect", help="Inspect a single meta record")
    inspect_parser.add_argument("meta_id", type=int)
    inspect_parser.add_argument("--apply", action="store_true", help="Write the repaired value")
    return parser


def _preview(value: object, fmt: str, limit: int = 200) -> str:
    text = encode_value(value, fmt if fmt != TEXT else JSON)
    return text if len(text) <= limit else text[:limit] + "..."


def _inspect(args: argparse.Namespace, db_manager: DatabaseManager, logger: logging.Logger) -> int:
    record = db_manager.get_meta_by_id(args.meta_id)
    if record is None:
        print(f"Error: meta {args.meta_id} not found", file=sys.stderr)
        return 1
    repairer = MetaRepairer(db_manager, logger=logger)
    original, repaired = repairer.repaired_value(record)
    print(f"meta_id={record.meta_id} post_id={record.post_id} meta_key={record.meta_key}")
    fmt = value_format(record.meta_value)
    print(f"format={fmt}")
    print(f"affected={'yes' if is_affected(record, original) else 'no'}")
    if repaired != original:
        print(f"repaired={_preview(repaired, fmt)}")
        if args.apply:
            repairer.maybe_update(record)
            print("Success: Meta repaired")
    return 0


def run_command(args: argparse.Namespace, config: AppConfig, logger: logging.Logger) -> int:
    db_manager = DatabaseManager(
        config.db_paths(), table_prefix=str(config.get("database", "table_prefix", default="wp_"))
    )
    db_manager.initialize()
    try:
        if args.command == "clear":
            monitor = ResourceMonitor.from_config(config)
            stats = BulkPass(config, db_manager, logger=logger, monitor=monitor).clear()
            logger.info("Repaired %s records.", stats.affected)
            print("Success: All posts cleared")
        elif args.command == "list":
            report_path = Path(args.output) if args.output else default_report_path(config)
            monitor = ResourceMonitor.from_config(config)
            stats = BulkPass(config, db_manager, logger=logger, monitor=monitor).list_affected(report_path)
            logger.info("Reported %s affected records to %s.", stats.affected, report_path)
            print("Success: List of affected posts has been generated")
        elif args.command == "step":
            incremental = IncrementalRepair(config, db_manager, logger=logger)
            result = incremental.run_step(args.chunks)
            print(result.notice)
        elif args.command == "status":
            incremental = IncrementalRepair(config, db_manager, logger=logger)
            state = incremental.state()
            print(
                f"offset={state.offset} total={db_manager.count_owners()} "
                f"finished={state.finished} locked={state.locked}"
            )
        elif args.command == "reset":
            IncrementalRepair(config, db_manager, logger=logger).process.reset()
            print("Success: Incremental repair progress reset")
        elif args.command == "inspect":
            return _inspect(args, db_manager, logger)
        return 0
    finally:
        db_manager.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        config = AppConfig.load(Path(args.config) if args.config else None)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    logs_root = config.resolve_path("paths", "logs", default="logs")
    data_root = config.resolve_path("paths", "data", default="data")
    ensure_directories([logs_root, data_root])
    logger = setup_logging(logs_root)["main"]

    instance_lock = None
    if args.command not in {"status", "inspect"} and os.environ.get("ACFML_FIXER_ALLOW_MULTI_INSTANCE") != "1":
        try:
            instance_lock = acquire_instance_lock(data_root / "acfml_fixer.lock")
        except InstanceLockError:
            print(
                "Error: Another acfml run is already in progress. "
                "Set ACFML_FIXER_ALLOW_MULTI_INSTANCE=1 to override.",
                file=sys.stderr,
            )
            return 2
    try:
        return run_command(args, config, logger)
    except Exception:
        logger.exception("Command %s failed.", args.command)
        return 1
    finally:
        if instance_lock is not None:
            instance_lock.release()


if __name__ == "__main__":
    raise SystemExit(main())
