"""
SQLite table store
"""
from __future__ import annotations
import sqlite3
from typing import Any, Mapping

import pandas as pd

from schemaflow.storage.sql_store import SQLTableStore
from schemaflow.plugins.registry import register_store
from schemaflow.common.logger import get_logger

log = get_logger()


@register_store
class SQLiteStore(SQLTableStore):
    """
    File-based (or :memory:) SQLite store.

    Tables are written through pandas `to_sql`. Columns are declared BLOB so
    SQLite keeps each value's own storage class (no TEXT coercion of numbers).
    Booleans come back as 0/1.
    """
    name = "sqlite"
    db_errors = (sqlite3.Error, pd.errors.DatabaseError)

    def _connect(self, path: str, config: Mapping[str, Any]) -> sqlite3.Connection:
        """
        Config options:
            path: Database file path (":memory:" for in-memory)
            timeout: Connection timeout in seconds (default 10.0)
        """
        timeout = float(config.get("timeout", 10.0))
        log.debug(f"Connecting to SQLite: {path}")
        return sqlite3.connect(database=path, timeout=timeout)

    def _commit(self) -> None:
        self.conn.commit()

    def _write_frame(self, physical: str, pdf: pd.DataFrame) -> None:
        pdf.to_sql(
            physical,
            self.conn,
            if_exists="replace",
            index=False,
            dtype={c: "BLOB" for c in pdf.columns},
        )
        log.debug(f"Created TABLE {physical} ({len(pdf)} rows, {len(pdf.columns)} cols)")

    def close(self) -> None:
        try:
            self.conn.commit()
            self.conn.close()
            log.debug("SQLite connection closed")
        except sqlite3.Error as e:
            log.warning(f"Error closing SQLite connection: {e}")
