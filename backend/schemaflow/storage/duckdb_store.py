"""
DuckDB table store
"""
from __future__ import annotations
from typing import Any, Mapping

import duckdb
import pandas as pd

from schemaflow.storage.sql_store import SQLTableStore, quote_ident
from schemaflow.plugins.registry import register_store
from schemaflow.common.logger import get_logger

log = get_logger()


def _coerce_mixed_columns(pdf: pd.DataFrame) -> pd.DataFrame:
    """DuckDB needs one type per column; mixed-type columns are stored as text."""
    out = pdf.copy()
    for col in out.columns:
        kinds = {type(v) for v in out[col] if v is not None}
        if kinds <= {int, float}:
            continue
        if len(kinds) > 1:
            out[col] = [None if v is None else str(v) for v in out[col]]
    return out


@register_store
class DuckDBStore(SQLTableStore):
    """
    File-based or in-memory DuckDB store.
    """
    name = "duckdb"
    db_errors = (duckdb.Error,)

    def _connect(self, path: str, config: Mapping[str, Any]) -> duckdb.DuckDBPyConnection:
        """
        Config options:
            path: Database file path (optional, defaults to in-memory)
            read_only: Boolean (default False)
        """
        read_only = bool(config.get("read_only", False))
        log.debug(f"Connecting to DuckDB: {path}")
        return duckdb.connect(database=path, read_only=read_only)

    def _write_frame(self, physical: str, pdf: pd.DataFrame) -> None:
        target = quote_ident(physical)
        if pdf.empty:
            cols = ", ".join(f"{quote_ident(c)} VARCHAR" for c in pdf.columns)
            self.conn.execute(f"CREATE OR REPLACE TABLE {target} ({cols})")
        else:
            self.conn.register("_schemaflow_incoming", _coerce_mixed_columns(pdf))
            try:
                self.conn.execute(f"CREATE OR REPLACE TABLE {target} AS SELECT * FROM _schemaflow_incoming")
            finally:
                self.conn.unregister("_schemaflow_incoming")
        log.debug(f"Created TABLE {physical} ({len(pdf)} rows, {len(pdf.columns)} cols)")

    def close(self) -> None:
        try:
            self.conn.close()
            log.debug("DuckDB connection closed")
        except duckdb.Error as e:
            log.warning(f"Error closing DuckDB connection: {e}")
