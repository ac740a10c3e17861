"""Human vs. automated mail classification.

Each message is labelled ``human`` (someone expects a reply) or
``automated`` (notifications, newsletters, receipts). Classification is an
ordered list of rules; the first rule that matches decides and later rules
are not evaluated. A message no rule matches is ``human``.

Rules, in priority order:
1. automated_sender - sender address contains a role marker (noreply@, alerts@ ...)
2. unsubscribe_phrase - body offers an opt-out or preference management
3. bulk_subject - subject names a bulk/transactional mail type
4. unsubscribe_link - body markup links to an unsubscribe/preferences page
5. platform_marker - body carries an automated-sending disclaimer or ESP name

All matching is case-insensitive substring search except rule 4, which
extracts anchor targets with the `regex` library under a match timeout.
A timeout counts as no match, so classification never fails.

Usage:
    from webmail.classifier.heuristics import MessageClassifier, classify

    category = classify("noreply@example.com", "Your receipt", "...")

    classifier = MessageClassifier.from_config(config.classifier)
    result = classifier.explain(sender, subject, body)
    print(result.category, result.rule_name)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import regex

from webmail.core.logging import get_logger
from webmail.models import AUTOMATED, HUMAN, Category, Message

if TYPE_CHECKING:
    from webmail.config_schema import ClassifierConfig

logger = get_logger(__name__)

# Regex timeout for security (used in match operations)
REGEX_TIMEOUT = 1.0

# Anchor targets in HTML bodies: <a ... href="...">
# Note: timeout is passed at match time (finditer), not compile time
ANCHOR_HREF_PATTERN = regex.compile(
    r"""<a\b[^>]*?\bhref\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""",
    regex.IGNORECASE,
)

DEFAULT_AUTOMATED_SENDERS: tuple[str, ...] = (
    "noreply@",
    "no-reply@",
    "donotreply@",
    "do-not-reply@",
    "notification@",
    "notifications@",
    "alerts@",
    "alert@",
    "support@",
    "newsletter@",
    "news@",
    "marketing@",
    "system@",
    "admin@",
    "mailer-daemon@",
    "bounce@",
    "info@",
    "updates@",
)

DEFAULT_UNSUBSCRIBE_PHRASES: tuple[str, ...] = (
    "unsubscribe",
    "opt out",
    "opt-out",
    "manage preferences",
    "manage your preferences",
    "update your preferences",
    "email preferences",
    "stop receiving",
    "list-unsubscribe",
)

DEFAULT_BULK_SUBJECTS: tuple[str, ...] = (
    "newsletter",
    "digest",
    "notification",
    "password reset",
    "reset your password",
    "verify your email",
    "invoice",
    "receipt",
    "order confirmation",
    "your order",
    "promotional",
    "weekly update",
    "monthly update",
)

DEFAULT_UNSUBSCRIBE_LINK_MARKERS: tuple[str, ...] = (
    "unsubscribe",
    "opt-out",
    "opt_out",
    "preferences",
    "manage-subscription",
    "manage_subscription",
)

DEFAULT_PLATFORM_MARKERS: tuple[str, ...] = (
    "this is an automated",
    "do not reply to this email",
    "sent via",
    "powered by",
    "mailchimp",
    "sendgrid",
    "constant contact",
    "mailgun",
    "hubspot",
    "campaign monitor",
)


@dataclass(frozen=True, slots=True)
class MessageText:
    """Lower-cased classifier inputs, prepared once per message."""

    sender: str
    subject: str
    body: str

    @classmethod
    def prepare(cls, sender: str | None, subject: str | None, body: str | None) -> MessageText:
        return cls(
            sender=(sender or "").lower(),
            subject=(subject or "").lower(),
            body=(body or "").lower(),
        )


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    """One classification rule.

    Attributes:
        name: Rule name reported in results and logs
        predicate: Returns True when the message matches
        category: Category assigned on match
    """

    name: str
    predicate: Callable[[MessageText], bool]
    category: Category = AUTOMATED


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Result of classifying a message.

    Attributes:
        category: Assigned category
        rule_name: Name of the rule that fired, or None for the default
    """

    category: Category
    rule_name: str | None = None


def _contains_any(text: str, markers: Sequence[str]) -> bool:
    return any(marker in text for marker in markers)


def anchor_targets(body: str) -> list[str]:
    """Extract hyperlink targets from HTML markup.

    Args:
        body: Raw body text (HTML or plain)

    Returns:
        href values in document order; empty if the scan times out
    """
    try:
        return [
            next(group for group in match.groups() if group is not None)
            for match in ANCHOR_HREF_PATTERN.finditer(body, timeout=REGEX_TIMEOUT)
        ]
    except TimeoutError:
        logger.warning("Regex timeout while scanning body for links", body_length=len(body))
        return []


def sender_rule(markers: Sequence[str]) -> ClassificationRule:
    return ClassificationRule(
        name="automated_sender",
        predicate=lambda text: _contains_any(text.sender, markers),
    )


def unsubscribe_phrase_rule(phrases: Sequence[str]) -> ClassificationRule:
    return ClassificationRule(
        name="unsubscribe_phrase",
        predicate=lambda text: _contains_any(text.body, phrases),
    )


def bulk_subject_rule(markers: Sequence[str]) -> ClassificationRule:
    return ClassificationRule(
        name="bulk_subject",
        predicate=lambda text: _contains_any(text.subject, markers),
    )


def unsubscribe_link_rule(markers: Sequence[str]) -> ClassificationRule:
    def predicate(text: MessageText) -> bool:
        # Cheap pre-check before running the anchor regex
        if "href" not in text.body:
            return False
        return any(_contains_any(target, markers) for target in anchor_targets(text.body))

    return ClassificationRule(name="unsubscribe_link", predicate=predicate)


def platform_marker_rule(markers: Sequence[str]) -> ClassificationRule:
    return ClassificationRule(
        name="platform_marker",
        predicate=lambda text: _contains_any(text.body, markers),
    )


def build_rules(
    automated_senders: Sequence[str] = DEFAULT_AUTOMATED_SENDERS,
    unsubscribe_phrases: Sequence[str] = DEFAULT_UNSUBSCRIBE_PHRASES,
    bulk_subjects: Sequence[str] = DEFAULT_BULK_SUBJECTS,
    unsubscribe_link_markers: Sequence[str] = DEFAULT_UNSUBSCRIBE_LINK_MARKERS,
    platform_markers: Sequence[str] = DEFAULT_PLATFORM_MARKERS,
) -> tuple[ClassificationRule, ...]:
    """Build the rule list in priority order.

    Markers are lower-cased here so callers may pass them in any case.
    """
    return (
        sender_rule(tuple(m.lower() for m in automated_senders)),
        unsubscribe_phrase_rule(tuple(m.lower() for m in unsubscribe_phrases)),
        bulk_subject_rule(tuple(m.lower() for m in bulk_subjects)),
        unsubscribe_link_rule(tuple(m.lower() for m in unsubscribe_link_markers)),
        platform_marker_rule(tuple(m.lower() for m in platform_markers)),
    )


class MessageClassifier:
    """Ordered-rule classifier for human vs. automated mail.

    Evaluates rules in order and returns the first match's category, or
    ``human`` when no rule matches. Holds no state beyond its immutable
    rule list, so one instance can be shared freely.
    """

    def __init__(self, rules: Sequence[ClassificationRule] | None = None):
        """Initialize the classifier.

        Args:
            rules: Rules in priority order (default: built-in marker lists)
        """
        self._rules = tuple(rules) if rules is not None else build_rules()

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> MessageClassifier:
        """Create a classifier from the `classifier` config section."""
        return cls(
            build_rules(
                automated_senders=config.automated_senders,
                unsubscribe_phrases=config.unsubscribe_phrases,
                bulk_subjects=config.bulk_subjects,
                unsubscribe_link_markers=config.unsubscribe_link_markers,
                platform_markers=config.platform_markers,
            )
        )

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def explain(
        self,
        sender: str | None,
        subject: str | None,
        body: str | None,
    ) -> ClassificationResult:
        """Classify a message and report which rule decided.

        Args:
            sender: Sender email address
            subject: Subject line
            body: Plain text or HTML body

        Returns:
            ClassificationResult with the category and deciding rule
        """
        text = MessageText.prepare(sender, subject, body)

        for rule in self._rules:
            if rule.predicate(text):
                logger.debug(
                    "classification_rule_matched",
                    rule=rule.name,
                    sender_domain=text.sender.split("@")[-1],
                    category=rule.category,
                )
                return ClassificationResult(category=rule.category, rule_name=rule.name)

        return ClassificationResult(category=HUMAN)

    def classify(self, sender: str | None, subject: str | None, body: str | None) -> Category:
        """Classify a message as ``human`` or ``automated``."""
        return self.explain(sender, subject, body).category

    def classify_message(self, message: Message) -> Category:
        """Classify a Message and store the result on it."""
        message.category = self.classify(message.sender, message.subject, message.body)
        return message.category


_default_classifier = MessageClassifier()


def classify(sender: str | None, subject: str | None, body: str | None) -> Category:
    """Classify with the built-in rules.

    Args:
        sender: Sender email address
        subject: Subject line
        body: Plain text or HTML body

    Returns:
        ``automated`` if any rule matches, otherwise ``human``
    """
    return _default_classifier.classify(sender, subject, body)
