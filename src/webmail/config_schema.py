"""Pydantic configuration schema for the webmail core.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models when loaded.

Usage:
    from webmail.config_schema import AppConfig

    # Validate a config dict
    config = AppConfig(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from webmail.classifier.heuristics import (
    DEFAULT_AUTOMATED_SENDERS,
    DEFAULT_BULK_SUBJECTS,
    DEFAULT_PLATFORM_MARKERS,
    DEFAULT_UNSUBSCRIBE_LINK_MARKERS,
    DEFAULT_UNSUBSCRIBE_PHRASES,
)

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1


def _clean_markers(values: list[str]) -> list[str]:
    """Lower-case and strip markers, rejecting empty ones.

    An empty marker would be a substring of every input and turn its
    rule into a catch-all.
    """
    cleaned = []
    for value in values:
        marker = value.strip().lower()
        if not marker:
            raise ValueError("Markers cannot be empty strings")
        cleaned.append(marker)
    return cleaned


class ClassifierConfig(BaseModel):
    """Marker lists for the human/automated message classifier.

    Each list feeds one rule; rules are evaluated in the order the fields
    are declared here, and the first rule that matches decides.
    """

    automated_senders: list[str] = Field(
        default_factory=lambda: list(DEFAULT_AUTOMATED_SENDERS),
        description="Sender address fragments marking automated mail (e.g. 'noreply@')",
    )
    unsubscribe_phrases: list[str] = Field(
        default_factory=lambda: list(DEFAULT_UNSUBSCRIBE_PHRASES),
        description="Body phrases offering opt-out or preference management",
    )
    bulk_subjects: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BULK_SUBJECTS),
        description="Subject phrases marking bulk or transactional mail",
    )
    unsubscribe_link_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_UNSUBSCRIBE_LINK_MARKERS),
        description="Hyperlink target fragments marking opt-out links",
    )
    platform_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PLATFORM_MARKERS),
        description="Automated-sending disclaimers and email service provider names",
    )

    @field_validator(
        "automated_senders",
        "unsubscribe_phrases",
        "bulk_subjects",
        "unsubscribe_link_markers",
        "platform_markers",
    )
    @classmethod
    def validate_markers(cls, v: list[str]) -> list[str]:
        """Normalise markers to lower case and reject empty entries."""
        return _clean_markers(v)


class ThreadingConfig(BaseModel):
    """Thread grouper configuration."""

    fallback_subject: str = Field(
        default="No Subject",
        description="Thread subject used when the normalized subject is empty",
    )
    max_batch_size: int = Field(
        default=500,
        ge=1,
        description="Soft limit on batch size; larger batches log a warning (O(n^2) linkage)",
    )

    @field_validator("fallback_subject")
    @classmethod
    def validate_fallback_subject(cls, v: str) -> str:
        """Ensure the fallback subject is not blank."""
        if not v or not v.strip():
            raise ValueError("Fallback subject cannot be empty")
        return v


class FetchConfig(BaseModel):
    """Batch size settings for the message source."""

    limit: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Most recent messages to take from a batch",
    )


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_output: bool = Field(
        default=True,
        description="Emit JSON log lines; False for human-readable console output",
    )


class AppConfig(BaseModel):
    """Root configuration schema for the webmail core.

    Every section has defaults, so an empty config.yaml (or none at all)
    yields a working configuration.
    """

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        description="Config schema version for migration tracking",
    )

    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    threading: ThreadingConfig = Field(default_factory=ThreadingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
