"""Changelog generation: collect, parse, deduplicate, version, render, write.

One call to ``ChangelogGenerator.generate()`` performs a single linear pass:

    CollectCurrent -> LoadExisting -> DetectSeed -> (Backfill) ->
    FilterNew -> AssignVersions -> Render -> Write

Any failure aborts the run before the output file is touched.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from utils.otel import add_span_attributes, create_span, trace_operation

from .classifier import categorize_commit, is_breaking_change
from .config import ChangelogConfig
from .dedup import filter_new_entries, flatten_entries
from .errors import ChangelogIOError
from .history import GitHistoryProvider, resolve_remote_url
from .models import GenerationResult, ParsedSection, SectionData, SemanticVersion
from .parser import backfill_versions, needs_backfill, parse_changelog, strip_changelog_header
from .renderer import format_entry, merge_changelog, render_parsed_sections, render_sections
from .versioning import compute_next_version, detect_seed_version

logger = logging.getLogger("changelog.generator")


def today_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def read_changelog_file(path: str) -> str:
    """Read an existing changelog without its ``# Changelog`` header.

    A missing file reads as empty.

    Raises:
        ChangelogIOError: If the file exists but cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except FileNotFoundError:
        logger.debug(f"No existing changelog at {path}")
        return ""
    except (OSError, UnicodeDecodeError) as e:
        raise ChangelogIOError(f"Cannot read changelog file {path}: {e}", path=path)
    return strip_changelog_header(content)


def write_changelog_file(path: str, content: str) -> None:
    """Truncate and rewrite the changelog file.

    Raises:
        ChangelogIOError: If the file cannot be opened for writing
    """
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        raise ChangelogIOError(f"Cannot open output file {path}: {e}", path=path)


def assign_versions(
    sections: List[Tuple[str, SectionData]],
    base: Optional[SemanticVersion],
    seed: SemanticVersion,
) -> List[Tuple[str, SectionData, SemanticVersion]]:
    """Give each new section a version, strictly increasing from ``base``.

    Without any historical version the first section takes ``seed`` as is.
    A section whose categories would not move the version (docs, test,
    deprecated only) still advances the patch component.
    """
    versioned = []
    previous = base
    for name, data in sections:
        if previous is None:
            version = seed
        else:
            version = compute_next_version(previous, data.categories(), data.has_breaking_change)
            if version == previous:
                version = SemanticVersion(
                    major=previous.major, minor=previous.minor, patch=previous.patch + 1
                )
        versioned.append((name, data, version))
        previous = version
    return versioned


class ChangelogGenerator:
    """Merges new commit history into an existing changelog file."""

    def __init__(
        self,
        config: ChangelogConfig,
        history: Optional[GitHistoryProvider] = None,
        clock: Callable[[], str] = today_utc,
    ):
        """Initialize the generator.

        Args:
            config: Run configuration
            history: History provider; defaults to GitPython over ``config.repo``
            clock: Returns today's date as ``YYYY-MM-DD``
        """
        self.config = config
        self.history = history or GitHistoryProvider(config.repo)
        self.clock = clock
        self._url: Optional[str] = None

    @property
    def url(self) -> str:
        """Repository web URL used in commit links, resolved once."""
        if self._url is None:
            self._url = resolve_remote_url(self.config.url, self.history)
        return self._url

    def collect_section(self, follow_path: Optional[str] = None) -> SectionData:
        """Classify every commit (optionally only those touching a path)."""
        section = SectionData()
        for commit in self.history.iter_commits(follow_path):
            commit_type = categorize_commit(commit.summary)
            if commit_type is None:
                continue

            entry = format_entry(commit.to_entry(), self.url)
            section.add(commit_type, entry, breaking=is_breaking_change(commit.summary))

            logger.debug(f"{commit_type.display_name} -> {entry}")
        return section

    def collect_current(self) -> List[Tuple[str, SectionData]]:
        """One section for the whole repository, or one per follow path."""
        if not self.config.follow:
            logger.debug("Getting logs for entire repository")
            return [(self.config.section_name, self.collect_section())]

        sections = []
        for path in self.config.follow:
            logger.debug(f"Getting logs for path: {path}")
            sections.append((path, self.collect_section(path)))
        return sections

    @trace_operation("changelog.generate")
    def generate(self, dry_run: bool = False) -> GenerationResult:
        """Run the full pipeline and write the merged changelog.

        Args:
            dry_run: Build the document but do not write it

        Returns:
            A summary of the run; ``content`` holds the document on dry runs
        """
        with create_span("changelog.collect"):
            current = self.collect_current()

        with create_span("changelog.load", attributes={"changelog.path": self.config.output}):
            old_content = read_changelog_file(self.config.output)
            parsed = parse_changelog(old_content)
        logger.debug(f"Parsed {len(parsed)} existing sections")

        seed = detect_seed_version(self.history.tag_names())
        logger.debug(f"Seed version: {seed}")

        backfilled = needs_backfill(parsed)
        if backfilled:
            logger.info(f"Backfilling {len(parsed)} legacy sections with version {seed}")
            parsed = backfill_versions(parsed, seed)
            old_content = render_parsed_sections(parsed)

        with create_span("changelog.filter"):
            existing = flatten_entries(parsed)
            filtered = []
            for name, data in current:
                new_data = filter_new_entries(data, existing)
                if new_data.is_empty():
                    logger.debug(f"No new entries for section {name}")
                    continue
                filtered.append((name, new_data))

        versioned = assign_versions(filtered, latest_version(parsed), seed)

        with create_span("changelog.render"):
            # Highest version on top
            named = [(f"{name}@{version}", data) for name, data, version in reversed(versioned)]
            new_markdown = render_sections(named, self.clock())
            document = merge_changelog(new_markdown, old_content)

        new_entry_count = sum(data.entry_count() for _, data in filtered)
        add_span_attributes(new_entry_count=new_entry_count, new_section_count=len(named))

        result = GenerationResult(
            output_path=self.config.output,
            new_sections=[name for name, _ in named],
            new_entry_count=new_entry_count,
            backfilled=backfilled,
            seed_version=str(seed),
        )

        if dry_run:
            result.content = document
            return result

        with create_span("changelog.write", attributes={"changelog.path": self.config.output}):
            write_changelog_file(self.config.output, document)
        logger.info(f"Wrote changelog to: {self.config.output}")
        return result


def latest_version(sections: List[ParsedSection]) -> Optional[SemanticVersion]:
    """Highest version among parsed sections, or None if none carry one."""
    versions = [s.version for s in sections if s.version is not None]
    if not versions:
        return None
    return max(versions)
