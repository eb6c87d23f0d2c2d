"""
Shared registry logic for the SQL-backed table stores

Logical table names are free text (whatever the planner chose); each maps to
a sanitized physical table recorded in `_schemaflow_tables` together with its
ordered column list. Plans and config values live in `_schemaflow_meta`.
"""
from __future__ import annotations
import json
import re
from abc import abstractmethod
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

import pandas as pd

from schemaflow.core.errors import StorageError
from schemaflow.core.models import Row
from schemaflow.plugins.api import TableStore, union_columns
from schemaflow.common.logger import get_logger

log = get_logger()

TABLES_REGISTRY = "_schemaflow_tables"
META_TABLE = "_schemaflow_meta"


def quote_ident(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


def sanitize_name(name: str) -> str:
    """Make a valid SQL identifier from arbitrary names."""
    if not name:
        return "table"
    # Replace invalid chars with underscore
    s = re.sub(r"[^A-Za-z0-9_]", "_", str(name).strip())
    # Identifier cannot start with a digit
    if s and s[0].isdigit():
        s = "t_" + s
    return s or "table"


def rows_to_frame(rows: List[Row], columns: List[str]) -> pd.DataFrame:
    """Object-dtype frame so ints stay ints and missing cells stay None."""
    pdf = pd.DataFrame([[row.get(c) for c in columns] for row in rows], columns=columns, dtype=object)
    return pdf.where(pd.notna(pdf), None)


class SQLTableStore(TableStore):
    """Base for stores that keep each logical table in one physical SQL table."""
    db_errors: Tuple[type, ...] = ()

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        config = dict(config or {})
        path = str(config.get("path") or ":memory:")
        if path != ":memory:":
            parent_dir = Path(path).parent
            if parent_dir and not parent_dir.exists():
                parent_dir.mkdir(parents=True, exist_ok=True)
                log.debug(f"Created directory: {parent_dir}")
        self.path = path
        try:
            self.conn = self._connect(path, config)
            self._ensure_metadata()
        except self.db_errors as e:
            raise StorageError(f"Could not open {self.name} store at {path}: {e}") from e
        log.store_connect(self.name, path)

    # ---------- engine hooks ----------

    @abstractmethod
    def _connect(self, path: str, config: Mapping[str, Any]) -> Any:
        ...

    @abstractmethod
    def _write_frame(self, physical: str, pdf: pd.DataFrame) -> None:
        """Create `physical` from `pdf`; `physical` is a name no registered table uses."""
        ...

    def _commit(self) -> None:
        pass

    def _query(self, sql: str, params: Tuple[Any, ...] = ()) -> List[Tuple[Any, ...]]:
        cur = self.conn.execute(sql, params) if params else self.conn.execute(sql)
        return list(cur.fetchall())

    def _exec(self, sql: str, params: Tuple[Any, ...] = ()) -> None:
        if params:
            self.conn.execute(sql, params)
        else:
            self.conn.execute(sql)

    # ---------- metadata ----------

    def _ensure_metadata(self) -> None:
        self._exec(
            f"CREATE TABLE IF NOT EXISTS {TABLES_REGISTRY} ("
            "name TEXT PRIMARY KEY, physical TEXT NOT NULL, columns TEXT NOT NULL, position INTEGER NOT NULL)"
        )
        self._exec(f"CREATE TABLE IF NOT EXISTS {META_TABLE} (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        self._commit()

    def _lookup(self, name: str) -> Optional[Tuple[str, List[str]]]:
        found = self._query(f"SELECT physical, columns FROM {TABLES_REGISTRY} WHERE name = ?", (name,))
        if not found:
            return None
        physical, columns = found[0]
        return physical, json.loads(columns)

    def _physical_name(self, name: str, current: Optional[str] = None) -> str:
        """A free physical name for `name`; never the one it currently uses."""
        base = "t_" + sanitize_name(name).lower()
        taken = {
            str(p).lower()
            for (p,) in self._query(f"SELECT physical FROM {TABLES_REGISTRY} WHERE name <> ?", (name,))
        }
        if current:
            taken.add(current.lower())
        physical, n = base, 1
        while physical in taken:
            n += 1
            physical = f"{base}_{n}"
        return physical

    def _drop_quietly(self, physical: str) -> None:
        try:
            self._exec(f"DROP TABLE IF EXISTS {quote_ident(physical)}")
        except self.db_errors as e:
            log.warning(f"Could not drop partial table {physical}: {e}")

    # ---------- tables ----------

    def put_table(self, name: str, rows: List[Row], columns: Optional[List[str]] = None) -> None:
        """
        Overwrite `name`.

        The new rows go to a fresh physical table first; the registry row is
        swapped and the old table dropped only after that write succeeded, so
        a failed write leaves the previous contents readable.
        """
        rows = list(rows)
        columns = list(columns) if columns is not None else union_columns(rows)
        physical = None
        try:
            existing = self._lookup(name)
            old_physical = existing[0] if existing else None
            physical = self._physical_name(name, old_physical)
            if columns:
                self._write_frame(physical, rows_to_frame(rows, columns))
            (position,) = self._query(f"SELECT COALESCE(MAX(position), 0) + 1 FROM {TABLES_REGISTRY}")[0]
            self._exec(f"DELETE FROM {TABLES_REGISTRY} WHERE name = ?", (name,))
            self._exec(
                f"INSERT INTO {TABLES_REGISTRY} (name, physical, columns, position) VALUES (?, ?, ?, ?)",
                (name, physical, json.dumps(columns), position),
            )
            if old_physical:
                self._exec(f"DROP TABLE IF EXISTS {quote_ident(old_physical)}")
            self._commit()
        except self.db_errors + (ValueError,) as e:
            if physical:
                self._drop_quietly(physical)
            raise StorageError(f"Failed to write table '{name}': {e}") from e
        log.store_write(name, len(rows))

    def get_table(self, name: str) -> List[Row]:
        try:
            found = self._lookup(name)
            if found is None:
                raise StorageError(f"Table '{name}' not found")
            physical, columns = found
            if not columns:
                return []
            select = ", ".join(quote_ident(c) for c in columns)
            records = self._query(f"SELECT {select} FROM {quote_ident(physical)} ORDER BY rowid")
        except self.db_errors as e:
            raise StorageError(f"Failed to read table '{name}': {e}") from e
        return [dict(zip(columns, rec)) for rec in records]

    def list_tables(self) -> List[str]:
        try:
            return [n for (n,) in self._query(f"SELECT name FROM {TABLES_REGISTRY} ORDER BY position")]
        except self.db_errors as e:
            raise StorageError(f"Failed to list tables: {e}") from e

    def delete_table(self, name: str) -> bool:
        try:
            found = self._lookup(name)
            if found is None:
                return False
            self._exec(f"DROP TABLE IF EXISTS {quote_ident(found[0])}")
            self._exec(f"DELETE FROM {TABLES_REGISTRY} WHERE name = ?", (name,))
            self._commit()
        except self.db_errors as e:
            raise StorageError(f"Failed to delete table '{name}': {e}") from e
        log.dev(f"Deleted table '{name}'")
        return True

    # ---------- documents ----------

    def _put_document(self, key: str, payload: str) -> None:
        try:
            self._exec(f"DELETE FROM {META_TABLE} WHERE key = ?", (key,))
            self._exec(f"INSERT INTO {META_TABLE} (key, value) VALUES (?, ?)", (key, payload))
            self._commit()
        except self.db_errors as e:
            raise StorageError(f"Failed to store '{key}': {e}") from e

    def _get_document(self, key: str) -> Optional[str]:
        try:
            found = self._query(f"SELECT value FROM {META_TABLE} WHERE key = ?", (key,))
        except self.db_errors as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        return found[0][0] if found else None
