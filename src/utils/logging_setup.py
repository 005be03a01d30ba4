"""
Logging configuration for the metadata fixer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict


def setup_logging(log_dir: Path) -> Dict[str, logging.Logger]:
    """Initialize loggers and return a mapping of named loggers."""
    log_dir.mkdir(parents=True, exist_ok=True)
    date_stamp = datetime.utcnow().strftime("%Y%m%d")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    master_log = log_dir / f"master_log_{date_stamp}.log"
    error_log = log_dir / f"error_log_{date_stamp}.log"
    performance_log = log_dir / f"performance_log_{date_stamp}.log"
    repair_log = log_dir / f"repair_log_{date_stamp}.log"

    base_logger = logging.getLogger("acfml_fixer")
    if not base_logger.handlers:
        base_logger.setLevel(logging.INFO)
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        base_logger.addHandler(stream_handler)

        file_handler = logging.FileHandler(master_log, encoding="utf-8")
        file_handler.setFormatter(formatter)
        base_logger.addHandler(file_handler)

        error_handler = logging.FileHandler(error_log, encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        base_logger.addHandler(error_handler)

    performance_logger = logging.getLogger("acfml_fixer.performance")
    if not performance_logger.handlers:
        performance_logger.setLevel(logging.INFO)
        perf_handler = logging.FileHandler(performance_log, encoding="utf-8")
        perf_handler.setFormatter(formatter)
        performance_logger.addHandler(perf_handler)
        performance_logger.propagate = False

    repair_logger = logging.getLogger("acfml_fixer.repairs")
    if not repair_logger.handlers:
        repair_logger.setLevel(logging.INFO)
        repair_handler = logging.FileHandler(repair_log, encoding="utf-8")
        repair_handler.setFormatter(formatter)
        repair_logger.addHandler(repair_handler)
        repair_logger.propagate = False

    return {"main": base_logger, "performance": performance_logger, "repairs": repair_logger}
