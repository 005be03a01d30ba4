"""
SQLite access layer for post metadata and persisted process options.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .codec import JSON, encode_value
from .schema import create_databases

FLAG_SET = "1"


@dataclass(frozen=True)
class MetaRecord:
    """A single metadata row as read from the store."""

    meta_id: int
    post_id: int
    meta_key: str
    meta_value: Any


class DatabaseManager:
    """Manage SQLite connections and the queries used by repair passes."""

    def __init__(self, db_paths: Dict[str, Path], table_prefix: str = "wp_") -> None:
        self.db_paths = db_paths
        self.table_prefix = table_prefix
        self.posts_table = f"{table_prefix}posts"
        self.meta_table = f"{table_prefix}postmeta"
        self.options_table = f"{table_prefix}options"
        self._meta_conn: Optional[sqlite3.Connection] = None
        self._state_conn: Optional[sqlite3.Connection] = None

    def initialize(self) -> None:
        """Create database files and tables."""
        create_databases(self.db_paths, self.table_prefix)

    def connect(self) -> None:
        """Open database connections if they are not already open."""
        if self._meta_conn is None:
            self._meta_conn = sqlite3.connect(self.db_paths["metadata"], check_same_thread=False)
            self._meta_conn.execute("PRAGMA journal_mode=WAL;")
        if self._state_conn is None:
            self._state_conn = sqlite3.connect(self.db_paths["state"], check_same_thread=False)
            self._state_conn.execute("PRAGMA journal_mode=WAL;")

    def close(self) -> None:
        """Close any open database connections."""
        if self._meta_conn is not None:
            self._meta_conn.close()
            self._meta_conn = None
        if self._state_conn is not None:
            self._state_conn.close()
            self._state_conn = None

    def fetch_meta_range(self, low: int, high: int) -> list[MetaRecord]:
        """Fetch metadata rows whose post_id lies in (low, high]."""
        self.connect()
        cursor = self._meta_conn.execute(
            f"""
            SELECT meta_id, post_id, meta_key, meta_value
            FROM {self.meta_table}
            WHERE post_id > ? AND post_id <= ?
            ORDER BY post_id, meta_id
            """,
            (low, high),
        )
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def get_meta_by_id(self, meta_id: int) -> Optional[MetaRecord]:
        """Fetch one metadata row by its id."""
        self.connect()
        row = self._meta_conn.execute(
            f"SELECT meta_id, post_id, meta_key, meta_value FROM {self.meta_table} WHERE meta_id = ?",
            (meta_id,),
        ).fetchone()
        return self._row_to_record(row) if row else None

    def update_meta_value(self, meta_id: int, value: Any, fmt: str = JSON) -> str:
        """Encode and write a new value for a single metadata row; return the stored text."""
        stored = encode_value(value, fmt)
        self.connect()
        self._meta_conn.execute(
            f"UPDATE {self.meta_table} SET meta_value = ? WHERE meta_id = ?",
            (stored, meta_id),
        )
        self._meta_conn.commit()
        return stored

    def count_owners(self) -> int:
        """Count rows in the owning posts table."""
        self.connect()
        row = self._meta_conn.execute(f"SELECT COUNT(ID) FROM {self.posts_table}").fetchone()
        return int(row[0]) if row else 0

    def insert_owners(self, post_ids: Iterable[int]) -> None:
        """Insert owning post rows."""
        self.connect()
        self._meta_conn.executemany(
            f"INSERT OR IGNORE INTO {self.posts_table} (ID) VALUES (?)",
            [(post_id,) for post_id in post_ids],
        )
        self._meta_conn.commit()

    def insert_meta(self, post_id: int, meta_key: str, meta_value: Any, fmt: str = JSON) -> int:
        """Insert a metadata row and return its meta_id."""
        self.connect()
        cursor = self._meta_conn.execute(
            f"INSERT INTO {self.meta_table} (post_id, meta_key, meta_value) VALUES (?, ?, ?)",
            (post_id, meta_key, encode_value(meta_value, fmt)),
        )
        self._meta_conn.commit()
        return int(cursor.lastrowid)

    def insert_meta_rows(self, rows: Iterable[tuple[int, str, Any]], fmt: str = JSON) -> None:
        """Insert many (post_id, meta_key, meta_value) rows in one transaction."""
        self.connect()
        self._meta_conn.executemany(
            f"INSERT INTO {self.meta_table} (post_id, meta_key, meta_value) VALUES (?, ?, ?)",
            [(post_id, meta_key, encode_value(value, fmt)) for post_id, meta_key, value in rows],
        )
        self._meta_conn.commit()

    def get_option(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Read a persisted option value."""
        self.connect()
        row = self._state_conn.execute(
            f"SELECT option_value FROM {self.options_table} WHERE option_name = ? LIMIT 1",
            (name,),
        ).fetchone()
        if row is None or row[0] is None:
            return default
        return str(row[0])

    def update_option(self, name: str, value: str) -> None:
        """Insert or update a persisted option value."""
        self.connect()
        self._state_conn.execute(
            f"""
            INSERT INTO {self.options_table} (option_name, option_value)
            VALUES (?, ?)
            ON CONFLICT(option_name) DO UPDATE SET option_value = excluded.option_value
            """,
            (name, value),
        )
        self._state_conn.commit()

    def is_option_flag_set(self, name: str) -> bool:
        """True when a boolean option holds exactly FLAG_SET."""
        return self.get_option(name) == FLAG_SET

    def acquire_option_flag(self, name: str) -> bool:
        """Atomically set a boolean option to FLAG_SET.

        Any other stored value counts as unset. Returns False when the flag
        was already set.
        """
        self.connect()
        self._state_conn.execute(
            f"INSERT OR IGNORE INTO {self.options_table} (option_name, option_value) VALUES (?, '0')",
            (name,),
        )
        cursor = self._state_conn.execute(
            f"""
            UPDATE {self.options_table}
            SET option_value = ?
            WHERE option_name = ? AND option_value IS NOT ?
            """,
            (FLAG_SET, name, FLAG_SET),
        )
        self._state_conn.commit()
        return cursor.rowcount == 1

    def delete_option(self, name: str) -> None:
        """Remove a persisted option."""
        self.connect()
        self._state_conn.execute(f"DELETE FROM {self.options_table} WHERE option_name = ?", (name,))
        self._state_conn.commit()

    @staticmethod
    def _row_to_record(row: tuple) -> MetaRecord:
        return MetaRecord(
            meta_id=int(row[0]),
            post_id=int(row[1]) if row[1] is not None else 0,
            meta_key=str(row[2]) if row[2] is not None else "",
            meta_value=row[3],
        )
