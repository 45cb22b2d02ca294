from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONCURRENCY = 5


class EvaluationConfig(BaseModel):
    """Settings for rule evaluation."""

    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        description="Maximum number of objects evaluated at the same time",
    )


class ClearanceConfig(BaseModel):
    """Top-level configuration model."""

    evaluation: EvaluationConfig = EvaluationConfig()


def load_config(path: Optional[str] = None) -> ClearanceConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to CLEARANCE_CONFIG env
            variable or 'clearance.yaml' in the current directory.
    """

    config_path = path or os.getenv("CLEARANCE_CONFIG", "clearance.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ClearanceConfig(**data)
    else:
        config = ClearanceConfig()

    env_concurrency = os.getenv("CLEARANCE_CONCURRENCY")
    if env_concurrency:
        config.evaluation = EvaluationConfig(concurrency=int(env_concurrency))
    return config
