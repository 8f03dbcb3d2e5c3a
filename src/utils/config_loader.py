"""
Configuration loader for the premium matrix orchestrator
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "matrix_config.yml"


class BackendConfig(BaseModel):
    """Product backend transport configuration"""

    base_url: str = "http://localhost:8082"
    timeout_seconds: float = Field(default=30.0, gt=0.0, le=600.0)
    max_connections: int = Field(default=20, ge=1, le=500)
    slow_call_ms: float = Field(default=1000.0, ge=0.0)
    use_mock: bool = False


class ProgressCheckpoints(BaseModel):
    """Progress values reported while a selection runs"""

    primary_detail: int = Field(default=10, ge=0, le=99)
    related_codes: int = Field(default=20, ge=0, le=99)
    matrix_published: int = Field(default=30, ge=0, le=99)
    enrichment_end: int = Field(default=90, ge=0, le=99)

    @model_validator(mode="after")
    def _ordered(self) -> "ProgressCheckpoints":
        values = [self.primary_detail, self.related_codes, self.matrix_published, self.enrichment_end]
        if values != sorted(values):
            raise ValueError(f"Progress checkpoints must be non-decreasing, got {values}")
        return self


class SelectionConfig(BaseModel):
    """Selection orchestration configuration"""

    default_age: int = Field(default=15, ge=0, le=120)
    default_base_amount: int = Field(default=100, ge=1)
    progress: ProgressCheckpoints = Field(default_factory=ProgressCheckpoints)
    cancel_superseded: bool = True
    slow_row_ms: float = Field(default=3000.0, ge=0.0)


class RefreshConfig(BaseModel):
    """Follow-up refresh configuration"""

    delays_seconds: List[float] = Field(default_factory=lambda: [5.0, 10.0])

    @model_validator(mode="after")
    def _ascending(self) -> "RefreshConfig":
        delays = self.delays_seconds
        if any(d < 0 for d in delays) or delays != sorted(delays):
            raise ValueError(f"Refresh delays must be non-negative and ascending, got {delays}")
        return self


class MatrixConfig(BaseModel):
    """Complete orchestrator configuration"""

    backend: BackendConfig = Field(default_factory=BackendConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)


def load_matrix_config(config_path: Optional[Path] = None) -> MatrixConfig:
    """
    Load and validate orchestrator configuration from YAML file

    Environment variables (a local .env file is honoured) override the file:
    MATRIX_API_BASE replaces backend.base_url and MATRIX_USE_MOCK_BACKEND
    replaces backend.use_mock.

    Args:
        config_path: Path to config file. Defaults to config/matrix_config.yml

    Returns:
        Validated MatrixConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    load_dotenv()

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    backend = config_data.setdefault("backend", {}) or {}
    config_data["backend"] = backend
    if os.getenv("MATRIX_API_BASE"):
        backend["base_url"] = os.environ["MATRIX_API_BASE"]
    if os.getenv("MATRIX_USE_MOCK_BACKEND"):
        backend["use_mock"] = os.environ["MATRIX_USE_MOCK_BACKEND"].lower() in ("1", "true", "yes")

    try:
        config = MatrixConfig(**config_data)
        logger.info(f"Successfully loaded config from {config_path}")
        return config
    except ValidationError as e:
        logger.error(f"Config validation failed: {e}")
        raise
