"""Pydantic models for changelog generation."""

import functools
import re
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import VersionParseError

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


class CommitType(str, Enum):
    """Change categories recognised in conventional-commit prefixes.

    Declaration order is the order categories are looked up and rendered in.
    The value is the lowercase prefix token.
    """
    ADD = "add"
    FEAT = "feat"
    REFACTOR = "refactor"
    DEPRECATED = "deprecated"
    FIX = "fix"
    DOCS = "docs"
    TEST = "test"
    PERF = "perf"

    @property
    def prefix(self) -> str:
        """Lowercase token used before the colon in a commit summary."""
        return self.value

    @property
    def display_name(self) -> str:
        """Capitalized name used for ``### <Name>`` category headers."""
        return self.value.capitalize()

    @classmethod
    def from_prefix(cls, token: str) -> Optional["CommitType"]:
        """Look up a category by its (already lowercased) prefix token."""
        return _PREFIX_TO_TYPE.get(token)

    @classmethod
    def from_display_name(cls, name: str) -> Optional["CommitType"]:
        """Look up a category by display name, case-insensitively."""
        return _DISPLAY_NAME_TO_TYPE.get(name.strip().lower())


_PREFIX_TO_TYPE: Dict[str, CommitType] = {t.prefix: t for t in CommitType}
_DISPLAY_NAME_TO_TYPE: Dict[str, CommitType] = {t.display_name.lower(): t for t in CommitType}

# Categories that move the minor / patch component when present.
MINOR_TYPES = frozenset({CommitType.FEAT, CommitType.ADD})
PATCH_TYPES = frozenset({CommitType.FIX, CommitType.PERF, CommitType.REFACTOR})


class CommitEntry(BaseModel):
    """A single recorded change before it is formatted for output."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(..., description="First line of the commit message")
    short_hash: str = Field(..., description="Abbreviated commit hash")
    full_hash: str = Field(..., description="Full commit hash")
    author_name: str = Field(..., description="Author display name")


class HistoryCommit(BaseModel):
    """A commit as reported by the history provider."""

    summary: str = Field(..., description="First line of the commit message")
    short_id: str = Field(..., description="Abbreviated commit id")
    full_id: str = Field(..., description="Full commit id")
    author_name: str = Field(default="", description="Author display name")
    parent_ids: List[str] = Field(default_factory=list, description="Parent commit ids, first parent first")

    def to_entry(self) -> CommitEntry:
        return CommitEntry(
            summary=self.summary,
            short_hash=self.short_id,
            full_hash=self.full_id,
            author_name=self.author_name,
        )


class SectionData(BaseModel):
    """Formatted entries of one section, grouped by category."""

    entries: Dict[CommitType, Set[str]] = Field(default_factory=dict)
    has_breaking_change: bool = Field(default=False, description="Whether any entry is a breaking change")
    breaking: Set[str] = Field(default_factory=set, description="Entries recorded as breaking changes")

    def add(self, commit_type: CommitType, entry: str, breaking: bool = False) -> None:
        """Add a formatted entry to a category; duplicates collapse."""
        self.entries.setdefault(commit_type, set()).add(entry)
        if breaking:
            self.breaking.add(entry)
            self.has_breaking_change = True

    def sorted_entries(self, commit_type: CommitType) -> List[str]:
        return sorted(self.entries.get(commit_type, set()))

    def categories(self) -> Set[CommitType]:
        """Categories holding at least one entry."""
        return {t for t, logs in self.entries.items() if logs}

    def all_entries(self) -> Set[str]:
        result: Set[str] = set()
        for logs in self.entries.values():
            result.update(logs)
        return result

    def entry_count(self) -> int:
        return sum(len(logs) for logs in self.entries.values())

    def is_empty(self) -> bool:
        return self.entry_count() == 0


@functools.total_ordering
class SemanticVersion(BaseModel):
    """A ``MAJOR.MINOR.PATCH`` version, ordered by tuple comparison."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(default=0, ge=0)
    minor: int = Field(default=1, ge=0)
    patch: int = Field(default=0, ge=0)

    @classmethod
    def parse(cls, text: str) -> "SemanticVersion":
        """Parse ``v?MAJOR.MINOR.PATCH``.

        Raises:
            VersionParseError: If the text is not a version string
        """
        match = _VERSION_RE.match(text.strip())
        if not match:
            raise VersionParseError(f"Invalid version string: {text!r}")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major=major, minor=minor, patch=patch)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.as_tuple() < other.as_tuple()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self) -> int:
        return hash(self.as_tuple())

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


DEFAULT_SEED_VERSION = SemanticVersion(major=0, minor=1, patch=0)


class ParsedSection(BaseModel):
    """A section reconstructed from an existing changelog file."""

    name: str = Field(..., description="Section name without the version suffix")
    version: Optional[SemanticVersion] = Field(default=None, description="Absent in legacy files")
    date: str = Field(..., description="ISO date from the section header")
    entries: SectionData = Field(default_factory=SectionData)

    @property
    def has_breaking_change(self) -> bool:
        return self.entries.has_breaking_change

    @property
    def display_name(self) -> str:
        """Name as written in the header, including ``@version`` when set."""
        if self.version is None:
            return self.name
        return f"{self.name}@{self.version}"


class GenerationResult(BaseModel):
    """Summary of a single generation run."""

    output_path: str = Field(..., description="Changelog file that was (or would be) written")
    new_sections: List[str] = Field(default_factory=list, description="Header names of new sections")
    new_entry_count: int = Field(default=0, description="Entries added by this run")
    backfilled: bool = Field(default=False, description="Whether legacy sections were versioned")
    seed_version: str = Field(default=str(DEFAULT_SEED_VERSION), description="Seed detected from tags")
    content: Optional[str] = Field(default=None, description="Rendered document (dry runs only)")
