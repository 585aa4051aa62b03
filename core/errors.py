"""Error types raised by the changelog engine and its collaborators."""

from typing import Optional


class ChangelogError(Exception):
    """Base class for every error the CLI knows how to report."""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(ChangelogError):
    """Raised when the repository, a ref, a remote or the config file is unusable."""

    exit_code = 2


class ChangelogIOError(ChangelogError):
    """Raised when the changelog file cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class VersionParseError(ChangelogError, ValueError):
    """Raised when a string is not a ``v?MAJOR.MINOR.PATCH`` version."""
