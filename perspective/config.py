from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MODEL_ID,
    DEFAULT_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SYSTEM_PROMPT,
    DEMO_USER_ID,
)


class ReasoningConfig(BaseModel):
    """Settings for the reasoning step."""

    model_id: str = DEFAULT_MODEL_ID
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=0)
    max_retries: int = Field(default=0, ge=0)


class PollingConfig(BaseModel):
    """Settings for waiting on workflow completion."""

    max_attempts: int = Field(default=DEFAULT_POLL_ATTEMPTS, ge=1)
    interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)


class PerspectiveConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    reasoning: ReasoningConfig = Field(default_factory=ReasoningConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    demo_user_id: str = DEMO_USER_ID


def load_config(path: Optional[str] = None) -> PerspectiveConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PERSPECTIVE_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("PERSPECTIVE_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = PerspectiveConfig(**data)
    else:
        config = PerspectiveConfig()

    env_db_url = os.getenv("PERSPECTIVE_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_model = os.getenv("PERSPECTIVE_MODEL")
    if env_model:
        config.reasoning.model_id = env_model
    return config
