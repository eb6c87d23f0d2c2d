# schemaflow/core/errors.py
from __future__ import annotations

from typing import List, Optional


class SchemaflowError(Exception):
    """Base class for every error raised by schemaflow."""
    pass


class InputError(SchemaflowError):
    """Bad input data or an unusable table spec (missing columns, empty natural key)."""
    pass


class RowSourceError(InputError):
    """The row source hit malformed input; carries a user-facing message."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source


class SchemaCycleError(InputError):
    """The foreign-key graph of a schema plan is not a DAG."""

    def __init__(self, tables: List[str]):
        super().__init__(f"Schema is not a DAG: circular foreign keys between {', '.join(tables)}")
        self.tables = tables


class PlannerError(SchemaflowError):
    """The schema planner failed or returned a plan that does not fit the input."""

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []


class LLMError(SchemaflowError):
    """Transport-level failure talking to the language model."""
    pass


class ReportError(SchemaflowError):
    """A report query could not be executed against the stored tables."""
    pass


class StorageError(SchemaflowError):
    """The table store failed; never retried automatically."""
    pass


class PipelineError(SchemaflowError):
    """A pipeline run could not start or was aborted."""
    pass
