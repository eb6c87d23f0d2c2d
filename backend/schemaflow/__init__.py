"""schemaflow: LLM-planned normalization of flat CSV files into related tables."""
from __future__ import annotations

__version__ = "0.1.0"
