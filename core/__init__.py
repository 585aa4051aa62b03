"""Core changelog engine.

Uses lazy imports to avoid loading GitPython when only using the
parsing, versioning and rendering functions.
"""

from typing import TYPE_CHECKING

# Always import these (no git dependency)
from .classifier import categorize_commit, is_breaking_change
from .config import ChangelogConfig, load_config
from .dedup import filter_new_entries, flatten_entries
from .errors import ChangelogError, ChangelogIOError, ConfigError, VersionParseError
from .models import (
    CommitEntry,
    CommitType,
    GenerationResult,
    HistoryCommit,
    ParsedSection,
    SectionData,
    SemanticVersion,
)
from .parser import backfill_versions, parse_changelog
from .renderer import format_entry, merge_changelog, render_sections
from .versioning import compute_next_version, detect_seed_version

# Type checking imports for IDE support
if TYPE_CHECKING:
    from .generator import ChangelogGenerator
    from .history import GitHistoryProvider

# Lazy loading for GitPython-dependent modules
_lazy_modules = {
    'ChangelogGenerator': '.generator',
    'GitHistoryProvider': '.history',
    'normalize_remote_url': '.history',
    'resolve_remote_url': '.history',
}

_loaded = {}


def __getattr__(name: str):
    """Lazy load GitPython-dependent names on first access."""
    if name in _lazy_modules:
        if name not in _loaded:
            import importlib
            module_name = _lazy_modules[name]
            module = importlib.import_module(module_name, package=__name__)
            _loaded[name] = getattr(module, name)
        return _loaded[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Orchestration (lazy loaded)
    'ChangelogGenerator',
    'GitHistoryProvider',
    'normalize_remote_url',
    'resolve_remote_url',
    # Models
    'CommitEntry',
    'CommitType',
    'GenerationResult',
    'HistoryCommit',
    'ParsedSection',
    'SectionData',
    'SemanticVersion',
    # Configuration and errors
    'ChangelogConfig',
    'load_config',
    'ChangelogError',
    'ChangelogIOError',
    'ConfigError',
    'VersionParseError',
    # Engine functions
    'categorize_commit',
    'is_breaking_change',
    'compute_next_version',
    'detect_seed_version',
    'parse_changelog',
    'backfill_versions',
    'flatten_entries',
    'filter_new_entries',
    'format_entry',
    'render_sections',
    'merge_changelog',
]
