"""Configuration loader.

This module loads configuration from YAML and validates it against the
Pydantic schema. Unlike load_config(), get_config() tolerates a missing
file and falls back to defaults, so the threading and classification
engine always runs even when nothing has been configured.

Usage:
    from webmail.config import get_config, load_config

    # Get current config (singleton)
    config = get_config()

    # Load a specific file, raising on any problem
    config = load_config(Path("config/config.yaml"))
"""

import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from webmail.config_schema import CURRENT_SCHEMA_VERSION, AppConfig
from webmail.core.errors import ConfigLoadError, ConfigValidationError
from webmail.core.logging import get_logger

logger = get_logger(__name__)

# Default config path - can be overridden via environment variable
DEFAULT_CONFIG_PATH = Path("config/config.yaml")

_config_lock = threading.Lock()
_current_config: AppConfig | None = None


def _get_config_path() -> Path:
    """Get the config file path from environment or default."""
    env_path = os.environ.get("WEBMAIL_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors into actionable messages.

    Args:
        error: Pydantic ValidationError

    Returns:
        Formatted error message with specific field errors
    """
    messages = []
    for err in error.errors():
        # Build field path (e.g., "classifier.bulk_subjects.0")
        field_path = ".".join(str(loc) for loc in err["loc"])
        msg = err["msg"]
        err_type = err["type"]

        if err_type == "missing":
            messages.append(f"  - Missing required field '{field_path}'")
        elif err_type == "string_type":
            messages.append(f"  - Field '{field_path}' must be a string")
        elif err_type == "int_type":
            messages.append(f"  - Field '{field_path}' must be an integer")
        else:
            messages.append(f"  - Field '{field_path}': {msg}")

    return "\n".join(messages)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Parsed YAML as dictionary

    Raises:
        ConfigLoadError: If file not found or YAML parse error
    """
    if not path.exists():
        raise ConfigLoadError(
            f"Configuration file not found: {path}\n"
            f"Create it or point WEBMAIL_CONFIG_PATH at an existing file"
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ConfigLoadError(
                    f"Configuration file must be a YAML mapping, got {type(data).__name__}"
                )
            return data
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e


def _validate_config(data: dict[str, Any], path: Path) -> AppConfig:
    """Validate config data against Pydantic schema.

    Args:
        data: Parsed YAML data
        path: Path to config file (for error messages)

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigValidationError: If validation fails
    """
    try:
        config = AppConfig(**data)
    except ValidationError as e:
        error_details = _format_validation_errors(e)
        raise ConfigValidationError(
            f"Configuration validation failed for {path}:\n{error_details}"
        ) from e

    if config.schema_version > CURRENT_SCHEMA_VERSION:
        raise ConfigValidationError(
            f"Config schema version {config.schema_version} is newer than "
            f"supported version {CURRENT_SCHEMA_VERSION}. "
            "Please upgrade webmail or downgrade the config."
        )

    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    This function always loads fresh from disk. For cached access, use
    get_config() instead.

    Args:
        path: Optional path to config file. If not provided, uses
              WEBMAIL_CONFIG_PATH env var or default.

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigLoadError: If file cannot be loaded
        ConfigValidationError: If validation fails
    """
    config_path = path or _get_config_path()

    logger.debug("Loading configuration", path=str(config_path))

    data = _load_yaml(config_path)
    config = _validate_config(data, config_path)

    logger.info(
        "Configuration loaded successfully",
        path=str(config_path),
        schema_version=config.schema_version,
        automated_senders_count=len(config.classifier.automated_senders),
        bulk_subjects_count=len(config.classifier.bulk_subjects),
    )

    return config


def get_config() -> AppConfig:
    """Get the current configuration singleton.

    On first call, loads configuration from disk. If no config file exists,
    the default configuration is used. An existing but invalid file still
    raises, so mistakes in config.yaml are not silently ignored.

    Returns:
        Current AppConfig instance

    Raises:
        ConfigLoadError: If an existing file cannot be parsed
        ConfigValidationError: If validation fails
    """
    global _current_config

    with _config_lock:
        if _current_config is None:
            config_path = _get_config_path()
            if config_path.exists():
                _current_config = load_config(config_path)
            else:
                logger.debug("No configuration file, using defaults", path=str(config_path))
                _current_config = AppConfig()

        return _current_config


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Validate a config file without loading it into the singleton.

    Useful for CLI validation commands and testing.

    Args:
        path: Path to config file. If not provided, uses default.

    Returns:
        Tuple of (is_valid, message)
    """
    config_path = path or _get_config_path()

    try:
        config = load_config(config_path)
        classifier = config.classifier
        return (
            True,
            f"Configuration valid (schema version {config.schema_version})\n"
            f"  - {len(classifier.automated_senders)} automated sender markers\n"
            f"  - {len(classifier.unsubscribe_phrases)} unsubscribe phrases\n"
            f"  - {len(classifier.bulk_subjects)} bulk subject markers\n"
            f"  - {len(classifier.unsubscribe_link_markers)} unsubscribe link markers\n"
            f"  - {len(classifier.platform_markers)} platform markers",
        )
    except ConfigLoadError as e:
        return (False, f"Load error: {e}")
    except ConfigValidationError as e:
        return (False, f"Validation error: {e}")


def reset_config() -> None:
    """Reset the config singleton. Primarily for testing."""
    global _current_config
    with _config_lock:
        _current_config = None
