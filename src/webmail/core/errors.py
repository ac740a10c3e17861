"""Custom exception types for the webmail core.

The threading and classification engine never raises on message data;
these exceptions belong to the layers around it (configuration loading
and fetch-record conversion). Messages follow the same shape throughout:
- What failed (specific operation or component)
- Why it failed (the specific condition)
- How to fix it (actionable guidance)
"""


class WebmailError(Exception):
    """Base exception for all webmail errors."""

    pass


class ConfigValidationError(WebmailError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(WebmailError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class MessageRecordError(WebmailError):
    """Raised when a fetched message record cannot be turned into a Message.

    Attributes:
        message_id: The record's Message-ID header, if it has one
    """

    def __init__(self, message: str, message_id: str | None = None):
        super().__init__(message)
        self.message_id = message_id
