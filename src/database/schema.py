"""
Database schema definitions for the metadata and state stores.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict


def create_databases(db_paths: Dict[str, Path], table_prefix: str = "wp_") -> None:
    """Create all SQLite databases and their tables."""
    create_metadata_db(db_paths["metadata"], table_prefix)
    create_state_db(db_paths["state"], table_prefix)


def create_metadata_db(db_path: Path, table_prefix: str = "wp_") -> None:
    """Create the owner and metadata tables."""
    conn = _connect(db_path)
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table_prefix}posts (
            ID INTEGER PRIMARY KEY
        )
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table_prefix}postmeta (
            meta_id INTEGER PRIMARY KEY,
            post_id INTEGER NOT NULL DEFAULT 0,
            meta_key TEXT,
            meta_value TEXT
        )
        """
    )
    conn.execute(
        f"CREATE INDEX IF NOT EXISTS idx_{table_prefix}postmeta_post_id ON {table_prefix}postmeta(post_id)"
    )
    conn.commit()
    conn.close()


def create_state_db(db_path: Path, table_prefix: str = "wp_") -> None:
    """Create the options table used for persisted progress state."""
    conn = _connect(db_path)
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table_prefix}options (
            option_id INTEGER PRIMARY KEY,
            option_name TEXT UNIQUE,
            option_value TEXT
        )
        """
    )
    conn.commit()
    conn.close()


def _connect(db_path: Path) -> sqlite3.Connection:
    """Create a SQLite connection with WAL enabled."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn

