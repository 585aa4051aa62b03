"""Git history access for changelog generation.

Wraps GitPython behind a small interface: commits reachable from HEAD,
a path-touch predicate, tag names, and remote URL resolution. A ``git.Repo``
is opened for each call and closed before the call returns.
"""

import logging
import os
import re
from contextlib import contextmanager
from typing import Iterator, List, Optional

from git import Commit, Repo
from git.diff import NULL_TREE
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import ConfigError
from .models import HistoryCommit

logger = logging.getLogger("changelog.history")

SHORT_HASH_LENGTH = 7

_SCP_LIKE_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>(?!//).+)$")
_SSH_URL_RE = re.compile(r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$")
# Everything str.splitlines() treats as a line boundary
_LINE_BREAK_RE = re.compile(r"[\r\n\x0b\x0c\x1c-\x1e\x85\u2028\u2029]+")


class GitHistoryProvider:
    """Read-only view of a git repository's history."""

    def __init__(self, repo_path: str = "."):
        self.repo_path = os.path.abspath(os.path.expanduser(repo_path))

    @contextmanager
    def _open(self) -> Iterator[Repo]:
        try:
            repo = Repo(self.repo_path)
        except NoSuchPathError:
            raise ConfigError(f"Repository {self.repo_path} not found.")
        except InvalidGitRepositoryError:
            raise ConfigError(f"{self.repo_path} is not a git repository.")
        try:
            yield repo
        finally:
            repo.close()

    def iter_commits(self, follow_path: Optional[str] = None) -> List[HistoryCommit]:
        """Commits reachable from HEAD, newest first.

        Args:
            follow_path: Only return commits that changed this path
        """
        with self._open() as repo:
            if not repo.head.is_valid():
                logger.warning(f"Repository {self.repo_path} has no commits yet")
                return []
            try:
                return [
                    _to_history_commit(commit)
                    for commit in repo.iter_commits("HEAD", date_order=True)
                    if not follow_path or _touches(commit, follow_path)
                ]
            except (GitCommandError, ValueError) as e:
                raise ConfigError(f"ref/spec was not in valid format: {e}")

    def touches_path(self, commit_id: str, path: str) -> bool:
        """Whether ``commit_id`` changed ``path`` relative to its first parent.

        A root commit is compared against the empty tree.
        """
        with self._open() as repo:
            try:
                commit = repo.commit(commit_id)
            except (GitCommandError, ValueError) as e:
                raise ConfigError(f"Unknown commit {commit_id}: {e}")
            return _touches(commit, path)

    def tag_names(self) -> List[str]:
        with self._open() as repo:
            return [tag.name for tag in repo.tags]

    def remote_url(self, name: str = "origin") -> str:
        """URL of the named remote.

        Raises:
            ConfigError: If the remote does not exist
        """
        with self._open() as repo:
            try:
                remote = repo.remote(name)
            except ValueError:
                raise ConfigError(
                    f"Remote '{name}' not found in {self.repo_path}; pass --url explicitly."
                )
            urls = list(remote.urls)
            if not urls:
                raise ConfigError(f"Remote '{name}' has no URL configured.")
            return urls[0]


def _touches(commit: Commit, path: str) -> bool:
    if commit.parents:
        diff = commit.parents[0].diff(commit, paths=[path])
    else:
        diff = commit.diff(NULL_TREE, paths=[path])
    return len(diff) > 0


def normalize_summary(summary: str) -> str:
    """Collapse line-break characters so a summary stays on one changelog line."""
    return _LINE_BREAK_RE.sub(" ", summary).strip()


def _to_history_commit(commit: Commit) -> HistoryCommit:
    summary = commit.summary
    if isinstance(summary, bytes):
        summary = summary.decode("utf-8", errors="replace")
    return HistoryCommit(
        summary=normalize_summary(summary),
        short_id=commit.hexsha[:SHORT_HASH_LENGTH],
        full_id=commit.hexsha,
        author_name=commit.author.name or "",
        parent_ids=[parent.hexsha for parent in commit.parents],
    )


def normalize_remote_url(url: str) -> str:
    """Turn a remote URL into an HTTPS web URL usable in hyperlinks.

    ``git@host:org/repo.git`` and ``ssh://git@host/org/repo.git`` both become
    ``https://host/org/repo``. A trailing ``.git`` and ``/`` are removed.
    """
    url = url.strip()
    if "://" not in url:
        match = _SCP_LIKE_RE.match(url)
        if match:
            url = f"https://{match.group('host')}/{match.group('path')}"
    else:
        match = _SSH_URL_RE.match(url)
        if match:
            url = f"https://{match.group('host')}/{match.group('path')}"

    url = url.rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url.rstrip("/")


def resolve_remote_url(explicit_url: Optional[str], provider: GitHistoryProvider) -> str:
    """Pick the URL used for commit links; an explicit URL wins over origin."""
    if explicit_url:
        return normalize_remote_url(explicit_url)
    return normalize_remote_url(provider.remote_url("origin"))
