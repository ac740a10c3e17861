"""Message processing engines.

This package provides the batch-level engines:
- Thread grouper for partitioning a batch into conversations
- Inbox builder that classifies, threads and splits a batch for display
"""

from webmail.engine.inbox import Inbox, build_inbox, load_messages, mark_read, split_by_category
from webmail.engine.thread_grouper import (
    generate_thread_id,
    get_thread_subject,
    group_into_threads,
    messages_linked,
    normalize_subject,
    participants,
    thread_summary,
)

__all__ = [
    # Inbox
    "Inbox",
    "build_inbox",
    "load_messages",
    "mark_read",
    "split_by_category",
    # Thread grouper
    "generate_thread_id",
    "get_thread_subject",
    "group_into_threads",
    "messages_linked",
    "normalize_subject",
    "participants",
    "thread_summary",
]
