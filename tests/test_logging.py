"""Tests for logging setup and batch id binding."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
import structlog

from webmail.config_schema import LoggingConfig
from webmail.core.logging import batch_context, configure_logging, current_batch_id


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    root = logging.getLogger()
    old_level = root.level
    yield
    root.setLevel(old_level)
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_from_config(self) -> None:
        configure_logging(LoggingConfig(level="ERROR"))

        assert logging.getLogger().level == logging.ERROR

    def test_debug_overrides_config_level(self) -> None:
        configure_logging(LoggingConfig(level="WARNING"), debug=True)

        assert logging.getLogger().level == logging.DEBUG

    def test_json_renderer(self) -> None:
        configure_logging(LoggingConfig(json_output=True))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_console_renderer(self) -> None:
        configure_logging(LoggingConfig(json_output=False))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_defaults_without_settings(self) -> None:
        configure_logging()

        assert logging.getLogger().level == logging.INFO


class TestBatchContext:
    """Tests for batch_context."""

    def test_generates_and_clears_id(self) -> None:
        assert current_batch_id() is None

        with batch_context() as batch_id:
            assert batch_id
            assert current_batch_id() == batch_id

        assert current_batch_id() is None

    def test_nested_block_reuses_outer_id(self) -> None:
        with batch_context("outer"):
            with batch_context("inner") as batch_id:
                assert batch_id == "outer"
            assert current_batch_id() == "outer"

    def test_bound_id_merged_into_events(self) -> None:
        with batch_context("b-1"):
            event = structlog.contextvars.merge_contextvars(None, "info", {"event": "x"})

        assert event["batch_id"] == "b-1"
