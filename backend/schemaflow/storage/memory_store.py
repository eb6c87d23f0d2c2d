"""
In-process table store

Keeps everything in dicts; used by tests and by `storage.type: memory`.
"""
from __future__ import annotations
import copy
from typing import Any, Dict, List, Mapping, Optional

from schemaflow.core.errors import StorageError
from schemaflow.core.models import Row
from schemaflow.plugins.api import TableStore
from schemaflow.plugins.registry import register_store
from schemaflow.common.logger import get_logger

log = get_logger()


@register_store
class MemoryStore(TableStore):
    name = "memory"

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        self._tables: Dict[str, List[Row]] = {}
        self._documents: Dict[str, str] = {}
        log.debug("Opened in-memory table store")

    def put_table(self, name: str, rows: List[Row], columns: Optional[List[str]] = None) -> None:
        # Copies so later mutation by the caller can't reach stored rows
        self._tables.pop(name, None)
        self._tables[name] = copy.deepcopy(list(rows))

    def get_table(self, name: str) -> List[Row]:
        if name not in self._tables:
            raise StorageError(f"Table '{name}' not found")
        return copy.deepcopy(self._tables[name])

    def list_tables(self) -> List[str]:
        return list(self._tables)

    def delete_table(self, name: str) -> bool:
        return self._tables.pop(name, None) is not None

    def _put_document(self, key: str, payload: str) -> None:
        self._documents[key] = payload

    def _get_document(self, key: str) -> Optional[str]:
        return self._documents.get(key)
