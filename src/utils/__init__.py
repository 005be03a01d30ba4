"""
Utility helpers for the metadata fixer.
"""

from .instance_guard import InstanceLock, InstanceLockError, acquire_instance_lock
from .logging_setup import setup_logging
from .progress import ProgressBar, page_count
from .resource_monitor import ResourceMonitor

__all__ = [
    "InstanceLock",
    "InstanceLockError",
    "ProgressBar",
    "ResourceMonitor",
    "acquire_instance_lock",
    "page_count",
    "setup_logging",
]
