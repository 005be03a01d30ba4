"""
Corruption detection and repair for self-nested metadata values.
"""

from .detector import THRESHOLD, is_affected, is_affected_value
from .repairer import MetaRepairer, PageRepairStats, clear_value
from .reporter import AffectedReporter

__all__ = [
    "AffectedReporter",
    "MetaRepairer",
    "PageRepairStats",
    "THRESHOLD",
    "clear_value",
    "is_affected",
    "is_affected_value",
]
