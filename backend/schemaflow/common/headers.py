from __future__ import annotations

import re
from typing import Dict, List, Set

__all__ = [
    "header_key",
    "clean_header",
    "make_unique_headers",
]

_SPACES = re.compile(r"\s+")


def clean_header(s: str) -> str:
    """Strip BOMs and NBSPs that spreadsheet exports leave in header cells."""
    return str(s or "").replace("\ufeff", "").replace("\u00A0", " ").strip()


def header_key(s: str) -> str:
    """Comparison key: case, runs of whitespace and a trailing dot don't count."""
    return _SPACES.sub(" ", clean_header(s)).rstrip(".").lower()


def make_unique_headers(headers: List[str]) -> List[str]:
    """
    Column names the planner can refer to unambiguously.

    "Name" and "name." collide, so the second becomes "name._1". A suffixed
    name is itself checked against everything emitted so far ("a, A, a_1"
    gives "a, A_1, a_1_1"). Blank header cells are named after their
    position ("column_3").
    """
    next_suffix: Dict[str, int] = {}
    used: Set[str] = set()
    out: List[str] = []
    for pos, raw in enumerate(headers, start=1):
        h = clean_header(raw) or f"column_{pos}"
        k = header_key(h)
        name = h
        if k in used:
            n = next_suffix.get(k, 1)
            while header_key(f"{h}_{n}") in used:
                n += 1
            name = f"{h}_{n}"
            next_suffix[k] = n + 1
        used.add(header_key(name))
        out.append(name)
    return out
