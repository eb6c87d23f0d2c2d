"""
Pydantic models for schemaflow configuration validation

Provides type-safe, validated configuration models for:
- LLM transport settings
- Storage engine settings
- Pipeline behaviour (unresolved foreign keys, planner sampling, fallback)
- Reporting settings
- Logging defaults
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from schemaflow.common.utils import expand_placeholders, load_yaml


# ============================================================================
# Enums
# ============================================================================

class StoreType(str, Enum):
    """Supported table stores"""
    SQLITE = "sqlite"
    DUCKDB = "duckdb"
    MEMORY = "memory"


class LLMProvider(str, Enum):
    """Supported LLM transports"""
    GEMINI = "gemini"
    OLLAMA = "ollama"
    SCRIPTED = "scripted"


class UnresolvedFKPolicy(str, Enum):
    """What to do with a foreign-key cell whose parent row cannot be found"""
    NULL = "null"      # set the cell to None and log
    KEEP = "keep"      # leave the raw value in place and log
    ERROR = "error"    # abort the table


# ============================================================================
# Section Models
# ============================================================================

class LLMConfig(BaseModel):
    """LLM transport configuration"""
    provider: LLMProvider = Field(default=LLMProvider.GEMINI, description="Transport plugin")
    model: str = Field(default="gemini-2.5-flash", description="Model name")
    api_key: Optional[str] = Field(default=None, description="API key (falls back to stored config)")
    base_url: Optional[str] = Field(default=None, description="Override the provider endpoint")
    timeout: float = Field(default=60.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=2, ge=0, description="Retries after a transport failure")
    retry_delay: float = Field(default=2.0, ge=0, description="Seconds between retries")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)

    @field_validator("api_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v: Any) -> Any:
        # an unset "${GEMINI_API_KEY}" stays unexpanded
        if isinstance(v, str) and (not v.strip() or v.strip().startswith("${")):
            return None
        return v


class StorageConfig(BaseModel):
    """Table store configuration"""
    type: StoreType = Field(default=StoreType.SQLITE, description="Store engine")
    path: str = Field(default="data/schemaflow.db", description="Database file path or :memory:")
    timeout: float = Field(default=10.0, description="SQLite connection timeout")


class PipelineSettings(BaseModel):
    """Pipeline behaviour"""
    unresolved_fk: UnresolvedFKPolicy = Field(default=UnresolvedFKPolicy.NULL)
    preview_rows: int = Field(default=10, ge=1, description="Rows read for the planner preview")
    planner_sample_rows: int = Field(default=3, ge=0, description="Rows embedded in the planner prompt")
    fallback_to_flat_table: bool = Field(default=True, description="Store the raw file on planner errors")


class ReportingConfig(BaseModel):
    """Reporting configuration"""
    summary_sample_rows: int = Field(default=20, ge=0, description="Rows passed to the summarizer")
    output_dir: str = Field(default="out/reports", description="Default directory for HTML exports")
    chart_type: str = Field(default="bar", description="Chart type when a suggestion has none")


class LoggingConfig(BaseModel):
    level: str = Field(default="user")
    format: str = Field(default="text")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.lower()
        if v not in ("user", "dev", "debug"):
            raise ValueError(f"Unknown log level '{v}' (expected user, dev or debug)")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError(f"Unknown log format '{v}' (expected text or json)")
        return v


# ============================================================================
# Main Configuration Model
# ============================================================================

class AppConfig(BaseModel):
    """Complete schemaflow configuration"""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ============================================================================
# Utility Functions
# ============================================================================

def build_config(raw: Optional[Mapping[str, Any]], env: Optional[Mapping[str, Any]] = None) -> AppConfig:
    """Expand ${VAR} placeholders against the environment and validate."""
    env = dict(os.environ) if env is None else dict(env)
    expanded = expand_placeholders(dict(raw or {}), env)
    return AppConfig(**expanded)


def load_and_validate_config(yaml_path: Path, env: Optional[Mapping[str, Any]] = None) -> AppConfig:
    """
    Load and validate configuration from a YAML file

    Args:
        yaml_path: Path to YAML configuration file
        env: Variables for placeholder expansion (default: os.environ)

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")
    return build_config(load_yaml(yaml_path), env)
