"""Change categories attached to version-change records."""

from __future__ import annotations

from enum import Enum


class ChangeCategory(str, Enum):
    """Closed set of change kinds reported by the backend."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DEPRECATED = "Deprecated"
    REMOVED = "Removed"
    BUG_FIX = "Bug Fix"
    SECURITY_FIX = "Security Fix"
    TEST_FIX = "Test Fix"
    COMPATIBILITY = "Compatibility"
    SECURITY_ENHANCEMENT = "Security Enhancement"
    BASE = "Base"

    @classmethod
    def from_label(cls, label: str | None) -> ChangeCategory | None:
        """Return the category for a backend label, or None if unrecognized."""
        if not label:
            return None
        try:
            return cls(label.strip())
        except ValueError:
            return None


# Keyword rules, checked in order; first hit wins.
_INFERENCE_RULES: tuple[tuple[tuple[str, ...], ChangeCategory], ...] = (
    (("security fix", "cve-"), ChangeCategory.SECURITY_FIX),
    (("bug fix",), ChangeCategory.BUG_FIX),
    (("test fix",), ChangeCategory.TEST_FIX),
    (("deprecat",), ChangeCategory.DEPRECATED),
    (("remove",), ChangeCategory.REMOVED),
    (("add", "new"), ChangeCategory.ADDED),
)


def infer_category(description: str) -> ChangeCategory:
    """
    Guess a change category from free-text release-note wording.

    Used for records that arrive without a change type. Anything that matches
    no rule is treated as a modification.
    """
    text = (description or "").lower()
    for keywords, category in _INFERENCE_RULES:
        if any(k in text for k in keywords):
            return category
    return ChangeCategory.MODIFIED
