from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from schemaflow.core.models import Row, SchemaPlan


class Reader(ABC):
    """Reader plugins turn a file into a restartable, lazy sequence of rows."""
    name: str

    @abstractmethod
    def can_handle(self, source: Mapping[str, Any]) -> bool:
        ...

    @abstractmethod
    def open(self, path: Path, options: Optional[Mapping[str, Any]] = None) -> Iterable[Row]:
        """
        Return an iterable whose every iteration re-reads `path` from the top.

        Malformed input raises RowSourceError from the iterator.
        """
        ...


class LLMClient(ABC):
    """
    The one capability the agents need from a language model.

    `history` holds prior turns as {"role": "user"|"model", "text": ...}.
    """
    name: str

    @abstractmethod
    def generate(self, prompt: str, history: Optional[List[Dict[str, str]]] = None,
                 system_instruction: Optional[str] = None) -> str:
        ...


class TableStore(ABC):
    """
    Durable, table-granular storage.

    Writes are full overwrites; there is no cross-table transaction. Schema
    plans and config values are stored as JSON documents.
    """
    name: str

    # ---------- tables ----------

    @abstractmethod
    def put_table(self, name: str, rows: List[Row], columns: Optional[List[str]] = None) -> None:
        """Replace the contents of `name` with `rows`."""
        ...

    @abstractmethod
    def get_table(self, name: str) -> List[Row]:
        """Rows in insertion order; raises StorageError for an unknown table."""
        ...

    @abstractmethod
    def list_tables(self) -> List[str]:
        ...

    @abstractmethod
    def delete_table(self, name: str) -> bool:
        """Drop `name`; returns False when it did not exist."""
        ...

    def has_table(self, name: str) -> bool:
        return name in self.list_tables()

    # ---------- documents ----------

    @abstractmethod
    def _put_document(self, key: str, payload: str) -> None:
        ...

    @abstractmethod
    def _get_document(self, key: str) -> Optional[str]:
        ...

    def put_schema(self, plan: SchemaPlan) -> None:
        self._put_document("schema", json.dumps(plan.to_wire()))

    def get_schema(self) -> Optional[SchemaPlan]:
        raw = self._get_document("schema")
        if raw is None:
            return None
        return SchemaPlan.model_validate(json.loads(raw))

    def put_config(self, key: str, value: Any) -> None:
        self._put_document(f"config:{key}", json.dumps(value))

    def get_config(self, key: str, default: Any = None) -> Any:
        raw = self._get_document(f"config:{key}")
        if raw is None:
            return default
        return json.loads(raw)

    # ---------- lifecycle ----------

    def close(self) -> None:
        pass

    def __enter__(self) -> "TableStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def union_columns(rows: Iterable[Row]) -> List[str]:
    """Ordered union of the keys of `rows` (first-seen order)."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)
