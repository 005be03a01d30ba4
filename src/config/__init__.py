"""
Configuration package for the metadata fixer.
"""

from .settings import AppConfig, ensure_directories

__all__ = ["AppConfig", "ensure_directories"]
