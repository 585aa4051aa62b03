"""Markdown rendering of changelog sections."""

from typing import List, Sequence, Tuple

from .models import CommitEntry, CommitType, ParsedSection, SectionData

CHANGELOG_HEADER = "# Changelog"
SECTION_SEPARATOR = "—"


def format_entry(entry: CommitEntry, url: str) -> str:
    """Render a commit as ``summary by author in [#short](url/commit/full)``.

    The returned string is the entry's identity for deduplication.
    """
    base_url = url.rstrip("/")
    return (
        f"{entry.summary} by {entry.author_name} in "
        f"[#{entry.short_hash}]({base_url}/commit/{entry.full_hash})"
    )


def render_section(name: str, data: SectionData, date: str) -> str:
    """Render one section: header, then non-empty categories in declaration order."""
    lines = [f"## {name} {SECTION_SEPARATOR} {date}", ""]
    for commit_type in CommitType:
        logs = data.sorted_entries(commit_type)
        if not logs:
            continue
        lines.append(f"### {commit_type.display_name}")
        lines.append("")
        lines.extend(f"- {log}" for log in logs)
        lines.append("")
    return "\n".join(lines) + "\n"


def render_sections(sections: Sequence[Tuple[str, SectionData]], date: str) -> str:
    """Render sections in the order given, all stamped with ``date``."""
    return "".join(render_section(name, data, date) for name, data in sections)


def render_parsed_sections(sections: List[ParsedSection]) -> str:
    """Re-render parsed sections, each with its own date and version suffix."""
    return "".join(
        render_section(section.display_name, section.entries, section.date)
        for section in sections
    )


def merge_changelog(new_markdown: str, old_content: str) -> str:
    """Build the final document: header, new sections, then previous content."""
    parts = [f"{CHANGELOG_HEADER}\n\n"]
    if new_markdown:
        parts.append(new_markdown)
    if old_content:
        parts.append(old_content)
    return "".join(parts)
