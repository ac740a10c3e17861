"""Pytest fixtures and configuration for webmail tests.

Provides common fixtures for configuration and message construction.
"""

import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Generator

import pytest

from webmail.config import reset_config
from webmail.config_schema import AppConfig
from webmail.models import Message

BASE_DATE = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Return a factory for Message objects.

    ``minutes`` offsets the date from a fixed base so tests can order
    messages without spelling out datetimes.
    """

    def _make(
        id: str,
        sender: str = "alice@example.com",
        to: list[str] | None = None,
        subject: str = "Hello",
        minutes: int = 0,
        **kwargs: Any,
    ) -> Message:
        return Message(
            id=id,
            sender=sender,
            to=to if to is not None else ["bob@example.com"],
            subject=subject,
            date=BASE_DATE + timedelta(minutes=minutes),
            **kwargs,
        )

    return _make


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid config.yaml content."""
    return """
schema_version: 1

classifier:
  automated_senders: ["noreply@", "Robot@"]
  bulk_subjects: ["newsletter"]

threading:
  fallback_subject: "(no subject)"
  max_batch_size: 200

fetch:
  limit: 25

logging:
  level: "DEBUG"
  json_output: false
"""


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "classifier": {
            "automated_senders": ["noreply@", "Robot@"],
            "bulk_subjects": ["newsletter"],
        },
        "threading": {"fallback_subject": "(no subject)", "max_batch_size": 200},
        "fetch": {"limit": 25},
    }


@pytest.fixture
def sample_config(sample_config_dict: dict[str, Any]) -> AppConfig:
    """Return a minimal valid AppConfig instance."""
    return AppConfig(**sample_config_dict)


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the WEBMAIL_CONFIG_PATH environment variable."""
    old_value = os.environ.get("WEBMAIL_CONFIG_PATH")
    os.environ["WEBMAIL_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["WEBMAIL_CONFIG_PATH"]
    else:
        os.environ["WEBMAIL_CONFIG_PATH"] = old_value
