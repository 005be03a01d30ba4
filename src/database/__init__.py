"""
Database package for schema creation and persistence helpers.
"""

from .codec import decode_value, encode_value
from .manager import DatabaseManager, MetaRecord
from .schema import create_databases

__all__ = [
    "DatabaseManager",
    "MetaRecord",
    "create_databases",
    "decode_value",
    "encode_value",
]
