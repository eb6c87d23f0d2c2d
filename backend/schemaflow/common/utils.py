from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

__all__ = [
    "safe_mkdir",
    "load_yaml",
    "resolve_placeholders",
    "expand_placeholders",
    "set_dotted",
]

_DOLLAR = re.compile(r"\$\{([^}]+)\}")
_BRACES = re.compile(r"\{([A-Za-z0-9_]+)\}")


def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def load_yaml(fp: Path) -> Dict[str, Any]:
    return yaml.safe_load(fp.read_text(encoding="utf-8")) or {}

def resolve_placeholders(s: Optional[str], variables: Mapping[str, str]) -> str:
    """Support {VAR} and ${VAR} placeholders; unknown names are left as-is."""
    if s is None:
        return ""
    s = _DOLLAR.sub(lambda m: str(variables.get(m.group(1), m.group(0))), s)
    s = _BRACES.sub(lambda m: str(variables.get(m.group(1), m.group(0))), s)
    return s


def expand_placeholders(obj: Any, env: Mapping[str, Any]) -> Any:
    """Recursively expand ${VAR} and {VAR} in strings."""
    if obj is None:
        return None
    if isinstance(obj, str):
        return resolve_placeholders(obj, env)
    if isinstance(obj, Mapping):
        return {k: expand_placeholders(v, env) for k, v in obj.items()}
    if isinstance(obj, list):
        return [expand_placeholders(v, env) for v in obj]
    if isinstance(obj, tuple):
        return tuple(expand_placeholders(v, env) for v in obj)
    return obj


def set_dotted(config: Dict[str, Any], dotted_key: str, value: str) -> None:
    """Set a value in nested dict using dotted notation"""
    # Try to parse value as YAML for proper types
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError:
        parsed_value = value

    parts = dotted_key.split(".")
    current = config

    for part in parts[:-1]:
        if part not in current or not isinstance(current[part], dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = parsed_value
