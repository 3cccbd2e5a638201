"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from perspective.config import load_config
from perspective.persistence import (
    InMemoryWorkflowRepository,
    SQLiteWorkflowRepository,
    get_repository,
    reset_repository,
)


def test_defaults_without_config_file():
    config = load_config()
    assert config.database_url is None
    assert config.reasoning.history_limit == 3
    assert config.reasoning.max_retries == 0
    assert config.polling.max_attempts == 40
    assert config.polling.interval == 1.0
    assert config.demo_user_id == "user_1"


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
database_url: sqlite:///tmp/perspective.db
reasoning:
  model_id: test
  history_limit: 5
polling:
  max_attempts: 10
  interval: 0.5
"""
    )
    monkeypatch.setenv("PERSPECTIVE_CONFIG", str(config_path))

    config = load_config()
    assert config.database_url == "sqlite:///tmp/perspective.db"
    assert config.reasoning.model_id == "test"
    assert config.reasoning.history_limit == 5
    assert config.polling.max_attempts == 10
    assert config.polling.interval == 0.5


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://fallback.db")
    monkeypatch.setenv("PERSPECTIVE_DATABASE_URL", "sqlite://preferred.db")
    monkeypatch.setenv("PERSPECTIVE_MODEL", "openai:gpt-4o")

    config = load_config()
    assert config.database_url == "sqlite://preferred.db"
    assert config.reasoning.model_id == "openai:gpt-4o"


def test_invalid_values_are_rejected(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("polling:\n  max_attempts: 0\n")
    with pytest.raises(ValidationError):
        load_config(str(config_path))


def test_get_repository_uses_config(tmp_path, monkeypatch):
    assert isinstance(get_repository(), InMemoryWorkflowRepository)

    reset_repository()
    monkeypatch.setenv("PERSPECTIVE_DATABASE_URL", f"sqlite://{tmp_path / 'wf.db'}")
    assert isinstance(get_repository(), SQLiteWorkflowRepository)

    with pytest.raises(ValueError):
        get_repository("mysql://localhost/db")
