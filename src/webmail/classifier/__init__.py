"""Email classification components.

This package provides the human vs. automated classifier: an ordered list
of sender, subject and body heuristics where the first match decides.
"""

from webmail.classifier.heuristics import (
    ClassificationResult,
    ClassificationRule,
    MessageClassifier,
    build_rules,
    classify,
)

__all__ = [
    "ClassificationResult",
    "ClassificationRule",
    "MessageClassifier",
    "build_rules",
    "classify",
]
