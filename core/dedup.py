"""Deduplication of newly collected entries against the existing changelog."""

import re
from typing import Iterable, List, Optional, Set

from .models import ParsedSection, SectionData

# Full hash inside the "(<url>/commit/<hash>)" hyperlink of a rendered entry.
COMMIT_LINK_RE = re.compile(r"/commit/([0-9a-fA-F]{7,64})\)")


def extract_commit_hash(entry: str) -> Optional[str]:
    """Return the lowercased commit hash linked from an entry, if any."""
    matches = COMMIT_LINK_RE.findall(entry)
    if not matches:
        return None
    return matches[-1].lower()


def flatten_entries(sections: List[ParsedSection]) -> Set[str]:
    """Union of every entry string across all sections and categories."""
    flat: Set[str] = set()
    for section in sections:
        flat.update(section.entries.all_entries())
    return flat


def _known_hashes(entries: Iterable[str]) -> Set[str]:
    hashes = set()
    for entry in entries:
        commit_hash = extract_commit_hash(entry)
        if commit_hash:
            hashes.add(commit_hash)
    return hashes


def is_known_entry(entry: str, existing: Set[str], known_hashes: Set[str]) -> bool:
    """An entry is known if its string, or the commit it links to, was seen before."""
    if entry in existing:
        return True
    commit_hash = extract_commit_hash(entry)
    return commit_hash is not None and commit_hash in known_hashes


def filter_new_entries(current: SectionData, existing: Set[str]) -> SectionData:
    """Keep only entries of ``current`` that are absent from ``existing``.

    The breaking flag of the result is derived from the surviving entries
    only, so a duplicate cannot force a major bump.
    """
    known_hashes = _known_hashes(existing)
    result = SectionData()
    for commit_type, logs in current.entries.items():
        for log in logs:
            if not is_known_entry(log, existing, known_hashes):
                result.add(commit_type, log, breaking=log in current.breaking)
    return result
