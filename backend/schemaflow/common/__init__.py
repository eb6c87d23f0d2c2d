from __future__ import annotations
# Re-export common things for convenience
from .utils import safe_mkdir, load_yaml
from .headers import header_key, make_unique_headers

__all__ = ["safe_mkdir", "load_yaml", "header_key", "make_unique_headers"]
