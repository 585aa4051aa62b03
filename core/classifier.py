"""Conventional-commit classification of commit summaries."""

from typing import Optional

from .models import CommitType


def categorize_commit(summary: str) -> Optional[CommitType]:
    """Map a commit summary to its change category.

    Only the text before the first ``:`` is considered. It is lowercased,
    a ``(scope)`` suffix is dropped and a single trailing ``!`` is removed
    before the prefix table is consulted.

    Args:
        summary: First line of a commit message

    Returns:
        The matching CommitType, or None when the summary has no colon or
        an unknown prefix
    """
    colon_pos = summary.find(":")
    if colon_pos == -1:
        return None

    prefix = summary[:colon_pos].lower()
    paren_pos = prefix.find("(")
    if paren_pos != -1:
        prefix = prefix[:paren_pos]
    if prefix.endswith("!"):
        prefix = prefix[:-1]

    return CommitType.from_prefix(prefix)


def is_breaking_change(summary: str) -> bool:
    """True when the character right before the first ``:`` is ``!``."""
    colon_pos = summary.find(":")
    if colon_pos <= 0:
        return False
    return summary[colon_pos - 1] == "!"
