"""Semantic version bumping and seed detection."""

import logging
from typing import Iterable

from .errors import VersionParseError
from .models import (
    DEFAULT_SEED_VERSION,
    MINOR_TYPES,
    PATCH_TYPES,
    CommitType,
    SemanticVersion,
)

logger = logging.getLogger("changelog.versioning")


def parse_version(text: str) -> SemanticVersion:
    """Parse a ``v?MAJOR.MINOR.PATCH`` string.

    Raises:
        VersionParseError: If the text is not a version string
    """
    return SemanticVersion.parse(text)


def compute_next_version(
    base: SemanticVersion,
    categories: Iterable[CommitType],
    has_breaking_change: bool,
) -> SemanticVersion:
    """Compute the version that follows ``base``.

    The first matching rule wins:

    - breaking change: +1 MAJOR, MINOR and PATCH reset
    - feat or add present: +1 MINOR, PATCH reset
    - fix, perf or refactor present: +1 PATCH
    - otherwise (docs, test, deprecated only): unchanged
    """
    if has_breaking_change:
        return SemanticVersion(major=base.major + 1, minor=0, patch=0)

    present = set(categories)
    if present & MINOR_TYPES:
        return SemanticVersion(major=base.major, minor=base.minor + 1, patch=0)
    if present & PATCH_TYPES:
        return SemanticVersion(major=base.major, minor=base.minor, patch=base.patch + 1)
    return base


def detect_seed_version(tags: Iterable[str]) -> SemanticVersion:
    """Return the highest version among ``tags``, or ``v0.1.0`` if none parse.

    Tags that are not ``v?MAJOR.MINOR.PATCH`` are skipped.
    """
    seed = None
    for tag in tags:
        try:
            version = parse_version(tag)
        except VersionParseError:
            logger.debug(f"Skipping non-version tag: {tag}")
            continue
        if seed is None or version > seed:
            seed = version

    if seed is None:
        return DEFAULT_SEED_VERSION
    return seed
