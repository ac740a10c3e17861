"""Conversation threading for a fetched batch of messages.

Messages are linked pairwise by their headers (In-Reply-To, References)
and, when headers say nothing, by a normalized subject shared between
messages with at least one common participant. Threads are the connected
components of that linkage graph.

Linking rules, in priority order:
1. One message's In-Reply-To is the other's Message-ID
2. One message's References contains the other's Message-ID
3. Their References lists share an id
4. Same non-empty normalized subject AND overlapping participants

Rule 4 can merge unrelated conversations that happen to share a subject
and a recipient (two customers writing "Order problem" to the same
support alias). That is a known weakness of the heuristic and is kept.

Usage:
    from webmail.engine.thread_grouper import group_into_threads, thread_summary

    threads = group_into_threads(messages)
    for thread in threads:
        summary = thread_summary(thread)
        print(summary.subject, summary.message_count)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

import regex

from webmail.config_schema import ThreadingConfig
from webmail.core.logging import get_logger
from webmail.models import Message, Thread, ThreadSummary

logger = get_logger(__name__)

# Regex timeout for security (used in match operations)
REGEX_TIMEOUT = 1.0

# Reply/forward prefix (Re:, RE:, Fwd:, FWD:, Fw:, FW:)
# Note: timeout is passed at match time (sub, search), not compile time
SUBJECT_PREFIX_PATTERN = regex.compile(r"^(?:re|fwd|fw):\s*", regex.IGNORECASE)

# Mailing list tag such as "[dev-list]"
LIST_TAG_PATTERN = regex.compile(r"^\[[^\]]*\]\s*")

DEFAULT_FALLBACK_SUBJECT = "No Subject"


def normalize_subject(subject: str | None) -> str:
    """Normalize a subject for thread comparison.

    Strips any chain of Re:/Fwd:/Fw: prefixes and a leading mailing list
    tag, then trims and lower-cases.

    Args:
        subject: Email subject

    Returns:
        Normalized subject (empty string for blank subjects)
    """
    if not subject:
        return ""

    try:
        normalized = subject.strip()
        while True:
            new_normalized = SUBJECT_PREFIX_PATTERN.sub("", normalized, timeout=REGEX_TIMEOUT)
            new_normalized = LIST_TAG_PATTERN.sub("", new_normalized, timeout=REGEX_TIMEOUT)
            new_normalized = new_normalized.strip()
            if new_normalized == normalized:
                break
            normalized = new_normalized
        return normalized.lower()
    except (regex.error, TimeoutError):
        # Timeout or error - return original stripped and lowercased
        return subject.strip().lower()


def _date_key(message: Message) -> datetime:
    """Sort key treating naive datetimes as UTC."""
    if message.date.tzinfo is None:
        return message.date.replace(tzinfo=timezone.utc)
    return message.date


def participants(message: Message) -> list[str]:
    """All addresses on a message: sender, then To, then Cc."""
    return [p for p in (message.sender, *message.to, *message.cc) if p]


def generate_thread_id(subject: str | None, addresses: Iterable[str]) -> str:
    """Build the deterministic thread id.

    Args:
        subject: Raw subject of the thread's earliest message
        addresses: Participant addresses (duplicates allowed)

    Returns:
        "<normalized subject>:<sorted unique addresses, comma-joined>"
    """
    unique_addresses = sorted({a for a in addresses if a})
    return f"{normalize_subject(subject)}:{','.join(unique_addresses)}"


def _replies_to(message: Message, other: Message) -> bool:
    return other.message_id is not None and message.in_reply_to == other.message_id


def _references(message: Message, other: Message) -> bool:
    return other.message_id is not None and other.message_id in message.references


def messages_linked(first: Message, second: Message) -> bool:
    """Check whether two messages belong to the same conversation.

    Header rules are tried before the subject fallback; absent headers
    simply fail their rule.

    Args:
        first: A message
        second: Another message

    Returns:
        True if the messages are linked (symmetric)
    """
    return _linked(
        first, second, normalize_subject(first.subject), normalize_subject(second.subject)
    )


def _linked(first: Message, second: Message, first_subject: str, second_subject: str) -> bool:
    """messages_linked with both subjects already normalized."""
    if _replies_to(second, first) or _replies_to(first, second):
        return True

    if _references(first, second) or _references(second, first):
        return True

    if first.references and second.references:
        if not set(first.references).isdisjoint(second.references):
            return True

    if first_subject and first_subject == second_subject:
        return not set(participants(first)).isdisjoint(participants(second))

    return False


class _DisjointSet:
    """Union-find over batch positions, with path halving."""

    def __init__(self, size: int):
        self._parent = list(range(size))

    def find(self, index: int) -> int:
        while self._parent[index] != index:
            self._parent[index] = self._parent[self._parent[index]]
            index = self._parent[index]
        return index

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Keep the earliest position as root so it stays the seed
            if root_b < root_a:
                root_a, root_b = root_b, root_a
            self._parent[root_b] = root_a


def _components(ordered: Sequence[Message]) -> list[list[Message]]:
    """Connected components of the linkage graph, in seed order.

    Members keep the order of ``ordered``, so with a date-sorted input each
    component is already oldest first and its first member is the seed.
    """
    subjects = [normalize_subject(message.subject) for message in ordered]
    sets = _DisjointSet(len(ordered))
    for i in range(len(ordered)):
        for j in range(i + 1, len(ordered)):
            if sets.find(i) == sets.find(j):
                continue
            if _linked(ordered[i], ordered[j], subjects[i], subjects[j]):
                sets.union(i, j)

    groups: dict[int, list[Message]] = {}
    for index, message in enumerate(ordered):
        groups.setdefault(sets.find(index), []).append(message)
    return list(groups.values())


def group_into_threads(
    messages: Iterable[Message],
    config: ThreadingConfig | None = None,
) -> list[Thread]:
    """Partition messages into conversation threads.

    Every message lands in exactly one thread and has its ``thread_id``
    set. Messages with equal dates keep their input order.

    Args:
        messages: Batch of parsed messages (ids unique within the batch)
        config: Threading settings; defaults apply when omitted

    Returns:
        Threads ordered by latest message date, newest first
    """
    config = config or ThreadingConfig()
    ordered = sorted(messages, key=_date_key)

    if len(ordered) > config.max_batch_size:
        logger.warning(
            "Thread grouping batch exceeds soft limit",
            message_count=len(ordered),
            max_batch_size=config.max_batch_size,
        )

    threads: list[Thread] = []
    for members in _components(ordered):
        seed = members[0]
        thread_id = generate_thread_id(seed.subject, [seed.sender, *seed.to])
        for message in members:
            message.thread_id = thread_id

        threads.append(
            Thread(
                id=thread_id,
                subject=normalize_subject(seed.subject) or config.fallback_subject,
                messages=members,
            )
        )

    threads.sort(key=lambda t: _date_key(t.latest_message), reverse=True)

    logger.debug(
        "Threads grouped",
        message_count=len(ordered),
        thread_count=len(threads),
    )

    return threads


def get_thread_subject(thread: Thread, fallback: str = DEFAULT_FALLBACK_SUBJECT) -> str:
    """Original subject of a thread: the earliest message's normalized subject.

    Args:
        thread: Thread to inspect
        fallback: Returned when the subject normalizes to empty

    Returns:
        Normalized subject of the earliest message, or fallback
    """
    if not thread.messages:
        return fallback
    earliest = min(thread.messages, key=_date_key)
    return normalize_subject(earliest.subject) or fallback


def thread_summary(thread: Thread) -> ThreadSummary:
    """Summarize a thread for display.

    The subject comes from the earliest message (the original subject is
    canonical); the sender fields come from the newest.
    """
    latest = thread.latest_message
    return ThreadSummary(
        subject=get_thread_subject(thread),
        latest_sender=latest.sender,
        latest_sender_name=latest.sender_name,
        message_count=thread.message_count,
        has_unread=thread.has_unread,
        latest_date=thread.latest_date,
    )
