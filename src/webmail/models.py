"""Message and thread records shared by the classifier and thread grouper.

Messages arrive from the mail-fetch layer as already-parsed records
(mappings with the camelCase keys the webmail JSON API uses). Threads are
value objects rebuilt on every grouping call; they carry no identity
beyond their derived id.

Usage:
    from webmail.models import Message

    message = Message.from_record({
        "id": "4711",
        "from": "a@example.com",
        "to": ["b@example.com"],
        "subject": "Project X",
        "date": "2024-03-01T09:30:00Z",
        "messageId": "<1@example.com>",
    })
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Literal

from webmail.core.errors import MessageRecordError

Category = Literal["human", "automated"]

HUMAN: Category = "human"
AUTOMATED: Category = "automated"

# Missing or unparseable dates sort as the oldest possible message
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class Message:
    """A single parsed email message.

    Attributes:
        id: Stable identifier (server UID preferred over sequence number)
        sender: Sender email address (the ``from`` header)
        to: Recipient addresses, unique, order as received
        cc: Carbon-copy addresses, unique, order as received
        sender_name: Sender display name, if available
        subject: Subject line as received
        body: Plain text or raw HTML body
        date: When the message was composed or received (UTC)
        date_valid: False when the date was missing or unparseable
        read: Whether the message has been seen
        message_id: Globally unique Message-ID header, if present
        in_reply_to: In-Reply-To header, if present
        references: References header ids, oldest first
        thread_id: Assigned by the thread grouper
        category: Assigned by the classifier
    """

    id: str
    sender: str
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    sender_name: str | None = None
    subject: str = ""
    body: str = ""
    date: datetime = EPOCH
    date_valid: bool = True
    read: bool = False
    message_id: str | None = None
    in_reply_to: str | None = None
    references: list[str] = field(default_factory=list)
    thread_id: str | None = None
    category: Category | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Message:
        """Build a Message from a fetch-layer record.

        Accepts the webmail API's camelCase keys (``messageId``,
        ``inReplyTo``, ``fromDisplayName``/``fromName``) as well as their
        snake_case equivalents.

        Args:
            record: Mapping describing one parsed message

        Returns:
            Message with participants de-duplicated and the date normalised

        Raises:
            MessageRecordError: If the record has no id
        """
        record_id = record.get("id")
        if record_id is None or str(record_id).strip() == "":
            raise MessageRecordError(
                "Message record has no 'id'. Records must carry the server UID "
                "or another identifier unique within the batch.",
                message_id=_first(record, "messageId", "message_id"),
            )

        date, date_valid = parse_date(record.get("date"))
        category = record.get("category")
        if category not in (HUMAN, AUTOMATED):
            category = None

        return cls(
            id=str(record_id),
            sender=str(record.get("from") or "").strip(),
            to=_address_list(record.get("to")),
            cc=_address_list(record.get("cc")),
            sender_name=_first(record, "fromDisplayName", "fromName", "sender_name"),
            subject=str(record.get("subject") or ""),
            body=str(record.get("body") or ""),
            date=date,
            date_valid=date_valid,
            read=bool(record.get("read", False)),
            message_id=_first(record, "messageId", "message_id"),
            in_reply_to=_first(record, "inReplyTo", "in_reply_to"),
            references=_reference_list(record.get("references")),
            thread_id=_first(record, "threadId", "thread_id"),
            category=category,
        )


@dataclass
class Thread:
    """A conversation: messages grouped by the thread grouper.

    Attributes:
        id: Deterministic id from normalized subject and participants
        subject: Normalized subject of the earliest message
        messages: Member messages, oldest first
    """

    id: str
    subject: str
    messages: list[Message] = field(default_factory=list)

    @property
    def latest_message(self) -> Message:
        """Newest message in the thread."""
        return self.messages[-1]

    @property
    def latest_date(self) -> datetime:
        return self.latest_message.date

    @property
    def has_unread(self) -> bool:
        return any(not m.read for m in self.messages)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def category(self) -> Category | None:
        """Display bucket of the thread, decided by its newest message."""
        return self.latest_message.category


@dataclass(frozen=True, slots=True)
class ThreadSummary:
    """Display summary of a thread.

    Attributes:
        subject: Original (earliest) normalized subject
        latest_sender: Sender address of the newest message
        latest_sender_name: Sender display name of the newest message
        message_count: Number of messages in the thread
        has_unread: Whether any message is unread
        latest_date: Date of the newest message
    """

    subject: str
    latest_sender: str
    latest_sender_name: str | None
    message_count: int
    has_unread: bool
    latest_date: datetime


def parse_date(value: Any) -> tuple[datetime, bool]:
    """Parse a record date into an aware UTC datetime.

    Accepts datetimes, ISO 8601 strings, RFC 2822 strings (as found in
    the Date header) and epoch seconds. Naive values are taken as UTC.

    Args:
        value: Raw date value from a record

    Returns:
        Tuple of (datetime, is_valid); invalid or missing dates return
        (EPOCH, False)
    """
    parsed: datetime | None = None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            parsed = None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                parsed = None

    if parsed is None:
        return EPOCH, False
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc), True
    except (OverflowError, ValueError):
        # Offset pushes the instant outside datetime's range (year 1 / 9999)
        return EPOCH, False


def _first(record: Mapping[str, Any], *keys: str) -> str | None:
    """Return the first non-empty string value among keys."""
    for key in keys:
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _address_list(value: Any) -> list[str]:
    """Normalise a recipient field (list or comma-separated string)."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(v) for v in value]
    return _unique(item.strip() for item in items)


def _reference_list(value: Any) -> list[str]:
    """Normalise References (list or whitespace-separated header value)."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split()
    else:
        items = [str(v) for v in value]
    return _unique(item.strip() for item in items)
