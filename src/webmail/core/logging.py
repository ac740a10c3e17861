"""Structured logging for the webmail core.

Log level and renderer come from the ``logging`` section of config.yaml
(see LoggingConfig). Events are emitted through structlog on top of the
standard library, to stderr so command output on stdout stays clean.

Every event logged while one fetched batch is being processed carries a
``batch_id``, bound with structlog's contextvars support by batch_context().

Usage:
    from webmail.core.logging import batch_context, configure_logging, get_logger

    configure_logging(config.logging)
    logger = get_logger(__name__)

    with batch_context():
        logger.info("threads_grouped", message_count=12, thread_count=5)
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from webmail.config_schema import LoggingConfig

BATCH_ID_KEY = "batch_id"


def configure_logging(settings: LoggingConfig | None = None, debug: bool = False) -> None:
    """Configure structlog from the logging config section.

    Args:
        settings: Logging section of the app config (defaults when omitted)
        debug: Force DEBUG level regardless of the configured level
    """
    if settings is None:
        from webmail.config_schema import LoggingConfig

        settings = LoggingConfig()

    level = logging.DEBUG if debug else getattr(logging, settings.level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    # basicConfig is a no-op once handlers exist; the level must still follow config
    logging.getLogger().setLevel(level)

    renderer: structlog.types.Processor
    if settings.json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def current_batch_id() -> str | None:
    """The batch id bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get(BATCH_ID_KEY)


@contextmanager
def batch_context(batch_id: str | None = None) -> Iterator[str]:
    """Bind a batch id to every log event inside the block.

    An id already bound by an enclosing block is reused, so a caller that
    tracks its own batch keeps it across nested inbox builds.

    Args:
        batch_id: Id to bind (default: a new UUID)

    Yields:
        The batch id in effect
    """
    existing = current_batch_id()
    if existing is not None:
        yield existing
        return

    batch_id = batch_id or str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(**{BATCH_ID_KEY: batch_id}):
        yield batch_id


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
