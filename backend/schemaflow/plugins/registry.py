from __future__ import annotations

from importlib import import_module
from importlib.metadata import entry_points
from typing import Any, Dict, Mapping, Type

from .api import LLMClient, Reader, TableStore
from schemaflow.common.logger import get_logger

log = get_logger()

# Registries
READERS: Dict[str, Type[Reader]] = {}
STORES: Dict[str, Type[TableStore]] = {}
LLM_CLIENTS: Dict[str, Type[LLMClient]] = {}


# ---------------- Registration decorators ----------------
def register_reader(cls: Type[Reader]):
    """Decorator used by built-in and external readers to self-register."""
    READERS[cls.name] = cls
    return cls


def register_store(cls: Type[TableStore]):
    """Decorator for table stores (SQLite, DuckDB, memory, ...)."""
    STORES[cls.name] = cls
    return cls


def register_llm_client(cls: Type[LLMClient]):
    """Decorator for LLM transports (Gemini, Ollama, scripted fakes)."""
    LLM_CLIENTS[cls.name] = cls
    return cls


# ---------------- Entry point discovery ----------------
def _discover_entrypoints(group: str) -> None:
    """Allow third-party packages to register plugins via entry points."""
    for ep in entry_points().select(group=group):
        try:
            ep.load()  # importing usually triggers @register_* in module import
        except Exception as e:
            log.warning(f"Could not load plugin '{ep.name}' from {group}: {e}")


# ---------------- Bootstrap built-ins + third-party ----------------
_BOOTSTRAPPED = False


def bootstrap_discovery() -> None:
    """Import built-ins and discover external plugins."""
    global _BOOTSTRAPPED
    if _BOOTSTRAPPED:
        return
    builtin_modules = [
        # Readers
        "schemaflow.io.readers.csv_reader",
        # Stores
        "schemaflow.storage.sqlite_store",
        "schemaflow.storage.duckdb_store",
        "schemaflow.storage.memory_store",
        # LLM transports
        "schemaflow.llm.gemini_client",
        "schemaflow.llm.ollama_client",
        "schemaflow.llm.scripted_client",
    ]
    for mod in builtin_modules:
        try:
            import_module(mod)
        except ImportError as e:
            # An optional engine missing its driver shouldn't take the others down
            log.warning(f"Built-in plugin {mod} unavailable: {e}")

    _discover_entrypoints("schemaflow.readers")
    _discover_entrypoints("schemaflow.stores")
    _discover_entrypoints("schemaflow.llm_clients")
    _BOOTSTRAPPED = True


# ---------------- Plugin pickers ----------------
def get_reader(source: Mapping[str, Any]) -> Reader:
    """Pick a reader by explicit 'reader', then 'type', then first can_handle()."""
    bootstrap_discovery()
    explicit = source.get("reader")
    if explicit and explicit in READERS:
        return READERS[explicit]()  # type: ignore[call-arg]

    rtype = str(source.get("type") or "").strip().lower()
    if rtype in READERS:
        return READERS[rtype]()  # type: ignore[call-arg]

    for cls in READERS.values():
        inst = cls()
        if inst.can_handle(source):
            return inst
    raise ValueError(f"No reader plugin found for source: {source!r}")


def get_store(config: Mapping[str, Any]) -> TableStore:
    """Open a table store by 'type' name (default sqlite)."""
    bootstrap_discovery()
    store_type = str(config.get("type") or "sqlite").strip().lower()
    if store_type in STORES:
        return STORES[store_type](config)  # type: ignore[call-arg]
    raise ValueError(
        f"Unknown store type '{store_type}'. Available: {', '.join(sorted(STORES))}"
    )


def get_llm_client(config: Mapping[str, Any]) -> LLMClient:
    """Build an LLM transport by 'provider' name."""
    bootstrap_discovery()
    provider = str(config.get("provider") or "gemini").strip().lower()
    if provider not in LLM_CLIENTS:
        raise ValueError(
            f"Unknown LLM provider '{provider}'. Available: {', '.join(sorted(LLM_CLIENTS))}"
        )
    return LLM_CLIENTS[provider](config)  # type: ignore[call-arg]
