"""Inbox assembly: classify a fetched batch, thread it, split it for display.

Control flow for one refresh:
1. Fetched records are converted to Message objects (load_messages)
2. Each message without a category is classified
3. The whole batch is grouped into threads
4. Threads are split by the category of their newest message into
   "needs response" (human) and "newsletters & updates" (automated)

Nothing is kept between refreshes; every call rebuilds the inbox.

Usage:
    from webmail.engine.inbox import build_inbox, load_messages

    messages = load_messages(records)
    inbox = build_inbox(messages)
    for thread in inbox.needs_response:
        print(thread.subject, thread.message_count)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from webmail.classifier.heuristics import MessageClassifier
from webmail.config_schema import AppConfig
from webmail.core.errors import MessageRecordError
from webmail.core.logging import batch_context, get_logger
from webmail.engine.thread_grouper import group_into_threads
from webmail.models import AUTOMATED, HUMAN, Message, Thread

logger = get_logger(__name__)


@dataclass
class Inbox:
    """Threads for one refresh, split into display buckets.

    Attributes:
        threads: All threads, newest first
        needs_response: Threads whose newest message is from a human
        newsletters: Threads whose newest message is automated
    """

    threads: list[Thread] = field(default_factory=list)
    needs_response: list[Thread] = field(default_factory=list)
    newsletters: list[Thread] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return sum(t.message_count for t in self.threads)

    @property
    def unread_count(self) -> int:
        return sum(1 for t in self.threads for m in t.messages if not m.read)


def load_messages(records: Iterable[Mapping[str, Any]]) -> list[Message]:
    """Convert fetched records to Messages, dropping ones that fail.

    A record that cannot be converted is logged and skipped so one
    malformed message does not hide the rest of the mailbox.

    Args:
        records: Parsed message records from the fetch layer

    Returns:
        Messages in record order
    """
    messages: list[Message] = []
    for position, record in enumerate(records):
        try:
            messages.append(Message.from_record(record))
        except MessageRecordError as e:
            logger.warning(
                "Skipping unloadable message record",
                position=position,
                message_id=e.message_id,
                error=str(e),
            )
    return messages


def split_by_category(threads: Iterable[Thread]) -> tuple[list[Thread], list[Thread]]:
    """Split threads into (human, automated) by their newest message.

    Threads whose newest message is unclassified go to the human bucket,
    so nothing that may need a reply is hidden.
    """
    needs_response: list[Thread] = []
    newsletters: list[Thread] = []
    for thread in threads:
        if thread.category == AUTOMATED:
            newsletters.append(thread)
        else:
            needs_response.append(thread)
    return needs_response, newsletters


def build_inbox(
    messages: Iterable[Message],
    classifier: MessageClassifier | None = None,
    config: AppConfig | None = None,
) -> Inbox:
    """Classify, thread and split a batch of messages.

    Messages that already carry a category keep it. Messages are
    modified in place: ``category`` and ``thread_id`` are set.

    Args:
        messages: Batch of messages from one fetch
        classifier: Classifier to use (default: built from config)
        config: Application config (default: built-in defaults)

    Returns:
        Inbox with all threads and the two display buckets
    """
    config = config or AppConfig()
    classifier = classifier or MessageClassifier.from_config(config.classifier)
    batch = list(messages)

    with batch_context():
        for message in batch:
            if message.category is None:
                classifier.classify_message(message)

        threads = group_into_threads(batch, config.threading)
        needs_response, newsletters = split_by_category(threads)

        logger.info(
            "Inbox built",
            message_count=len(batch),
            thread_count=len(threads),
            needs_response_count=len(needs_response),
            newsletters_count=len(newsletters),
            human_messages=sum(1 for m in batch if m.category == HUMAN),
        )

        return Inbox(threads=threads, needs_response=needs_response, newsletters=newsletters)


def mark_read(threads: Iterable[Thread], message_id: str) -> bool:
    """Mark a message as read within already-built threads.

    Mirrors a server-side flag change locally; thread ``has_unread``
    reflects it immediately since it is derived from the messages.

    Args:
        threads: Threads to search (e.g. ``inbox.threads``)
        message_id: The message's ``id`` (not its Message-ID header)

    Returns:
        True if the message was found
    """
    for thread in threads:
        for message in thread.messages:
            if message.id == message_id:
                message.read = True
                return True
    return False
