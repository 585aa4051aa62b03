"""Parsing of previously rendered changelog files.

The grammar is line oriented. Each line is tried against three patterns
in order and the first match wins:

- ``## <name>[@<version>] — <YYYY-MM-DD>`` starts a section
- ``### <Name>`` selects a category (unknown names deselect)
- ``- <text>`` records an entry when a section and category are selected

Anything else is ignored. Parsing never fails.
"""

import logging
import re
from typing import List, Optional, Tuple

from .classifier import is_breaking_change
from .models import CommitType, ParsedSection, SemanticVersion
from .renderer import CHANGELOG_HEADER

logger = logging.getLogger("changelog.parser")

# "—" is what we render; "--" and "-" appear in older hand-edited files.
SECTION_RE = re.compile(r"^## (.+?)\s+(?:—|--|-)\s+(\d{4}-\d{2}-\d{2})\s*$")
CATEGORY_RE = re.compile(r"^### (.+?)\s*$")
ENTRY_RE = re.compile(r"^- (.+)$")
VERSIONED_NAME_RE = re.compile(r"^(.*)@(v?\d+\.\d+\.\d+)$")


def is_breaking_entry(entry: str) -> bool:
    """Breaking-change check on a rendered entry.

    Entries start with the commit summary, so the first colon of the entry
    is the first colon of the summary.
    """
    return is_breaking_change(entry)


def split_section_name(raw_name: str) -> Tuple[str, Optional[SemanticVersion]]:
    """Split ``name@v1.2.3`` into its name and version parts."""
    match = VERSIONED_NAME_RE.match(raw_name)
    if not match:
        return raw_name, None
    return match.group(1), SemanticVersion.parse(match.group(2))


def strip_changelog_header(content: str) -> str:
    """Drop a leading ``# Changelog`` line and the blank lines after it."""
    lines = content.splitlines(keepends=True)
    if lines and lines[0].startswith(CHANGELOG_HEADER):
        lines = lines[1:]
    while lines and not lines[0].strip():
        lines = lines[1:]
    return "".join(lines)


def parse_changelog(content: str) -> List[ParsedSection]:
    """Parse changelog text into sections, newest (topmost) first."""
    sections: List[ParsedSection] = []
    current: Optional[ParsedSection] = None
    current_type: Optional[CommitType] = None

    for line in content.splitlines():
        section_match = SECTION_RE.match(line)
        if section_match:
            name, version = split_section_name(section_match.group(1))
            current = ParsedSection(name=name, version=version, date=section_match.group(2))
            sections.append(current)
            current_type = None
            continue

        category_match = CATEGORY_RE.match(line)
        if category_match:
            current_type = CommitType.from_display_name(category_match.group(1))
            if current_type is None:
                logger.debug(f"Ignoring unknown category header: {line}")
            continue

        entry_match = ENTRY_RE.match(line)
        if entry_match and current is not None and current_type is not None:
            entry = entry_match.group(1)
            current.entries.add(current_type, entry, breaking=is_breaking_entry(entry))

    return sections


def needs_backfill(sections: List[ParsedSection]) -> bool:
    """True when the most recent section was written without a version."""
    return bool(sections) and sections[0].version is None


def backfill_versions(sections: List[ParsedSection], seed: SemanticVersion) -> List[ParsedSection]:
    """Assign ``seed`` to every section.

    Per-section history cannot be recovered from text alone, so all legacy
    sections share the seed version.
    """
    return [section.model_copy(update={"version": seed}) for section in sections]
