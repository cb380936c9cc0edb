"""Git repository commit extraction."""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

import git
import structlog
from git import Repo

from smelltracker.models import CommitRecord, FileRename, RepositoryConfig

logger = structlog.get_logger(__name__)

_RENAME_LINE = re.compile(r"^ rename (?P<path>.+ => .+) \((?P<similarity>\d+)%\)$")


class CommitSourceError(ValueError):
    """Raised when a repository cannot be read."""


def parse_renames(summary: str) -> List[FileRename]:
    """Parse the rename lines of ``git show --summary`` output.

    Handles both ``old => new`` and the compacted ``dir/{old => new}/file``
    notations.

    Args:
        summary: Raw summary output

    Returns:
        List of FileRename, in output order
    """
    renames = []
    for line in summary.splitlines():
        match = _RENAME_LINE.match(line)
        if not match:
            continue
        path = match.group("path")
        similarity = int(match.group("similarity"))
        try:
            old_file, new_file = _split_rename_path(path)
        except ValueError:
            logger.warning("unparseable_rename", line=line)
            continue
        renames.append(FileRename(old_file=old_file, new_file=new_file, similarity=similarity))
    return renames


def _split_rename_path(path: str) -> tuple:
    if "{" in path and "}" in path:
        prefix, rest = path.split("{", 1)
        inner, suffix = rest.split("}", 1)
        old_part, new_part = inner.split(" => ", 1)
        old_file = _clean_path(prefix + old_part + suffix)
        new_file = _clean_path(prefix + new_part + suffix)
    else:
        old_file, new_file = path.split(" => ", 1)
    if not old_file or not new_file:
        raise ValueError(f"Incomplete rename: {path}")
    return old_file, new_file


def _clean_path(path: str) -> str:
    # "{ => util}" style renames leave doubled or leading separators
    return re.sub(r"/{2,}", "/", path).strip("/")


class GitExtractor:
    """Extracts commit records from a Git repository."""

    def __init__(self, config: RepositoryConfig) -> None:
        """Initialize the GitExtractor.

        Args:
            config: Repository configuration

        Raises:
            CommitSourceError: If repository path is invalid
        """
        self.config = config
        if not config.repo_path.exists():
            raise CommitSourceError(f"Repository path does not exist: {config.repo_path}")

        try:
            self.repo = Repo(config.repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise CommitSourceError(f"Invalid Git repository: {config.repo_path}") from e

    def list_commits(self, max_count: Optional[int] = None) -> List[CommitRecord]:
        """List every commit of the repository, newest first in topological order.

        Args:
            max_count: Maximum number of commits to list

        Returns:
            List of CommitRecord, children before their parents

        Raises:
            CommitSourceError: If the history cannot be read
        """
        commits = list(self.iter_commits(max_count=max_count))
        logger.info(
            "listed_commits",
            repository=str(self.config.repo_path),
            count=len(commits),
            all_refs=self.config.all_refs,
        )
        return commits

    def iter_commits(self, max_count: Optional[int] = None) -> Iterator[CommitRecord]:
        """Iterate over commit records, newest first in topological order."""
        rev = "--all" if self.config.all_refs else "HEAD"
        kwargs = {"topo_order": True}
        if max_count:
            kwargs["max_count"] = max_count

        try:
            for commit in self.repo.iter_commits(rev, **kwargs):
                yield self._extract_commit_record(commit)
        except (git.exc.GitCommandError, ValueError) as e:
            raise CommitSourceError(
                f"Unable to read history of {self.config.repo_path}: {e}"
            ) from e

    def extract_commit(self, commit_hash: str) -> CommitRecord:
        """Extract the record of a specific commit.

        Args:
            commit_hash: Commit hash (full or short)

        Returns:
            CommitRecord object

        Raises:
            CommitSourceError: If commit not found
        """
        try:
            commit = self.repo.commit(commit_hash)
            return self._extract_commit_record(commit)
        except (git.exc.BadName, ValueError) as e:
            raise CommitSourceError(f"Commit not found: {commit_hash}") from e

    def extract_renames(self, commit_hash: str) -> List[FileRename]:
        """Extract the renamed files of a commit.

        Args:
            commit_hash: Commit hash

        Returns:
            List of FileRename for files passing the configured filters
        """
        summary = self.repo.git.show(
            commit_hash,
            f"-M{self.config.rename_similarity}%",
            "--summary",
            "--format=",
        )
        return [
            rename
            for rename in parse_renames(summary)
            if self._should_include_file(rename.old_file) and self._should_include_file(rename.new_file)
        ]

    def _extract_commit_record(self, commit: git.Commit) -> CommitRecord:
        """Extract a CommitRecord from a GitPython Commit object.

        Args:
            commit: GitPython Commit object

        Returns:
            CommitRecord object
        """
        additions = deletions = files_changed = 0
        try:
            git_stats = commit.stats.total
            additions = git_stats.get("insertions", 0)
            deletions = git_stats.get("deletions", 0)
            files_changed = git_stats.get("files", 0)
        except (git.exc.GitCommandError, ValueError) as e:
            logger.warning("commit_stats_unavailable", sha=commit.hexsha, error=str(e))

        return CommitRecord(
            sha=commit.hexsha,
            parent_shas=[p.hexsha for p in commit.parents],
            author_name=commit.author.name or "",
            author_email=commit.author.email or "",
            timestamp=datetime.fromtimestamp(commit.committed_date, tz=timezone.utc),
            message=commit.message.strip(),
            additions=additions,
            deletions=deletions,
            files_changed=files_changed,
            renames=self.extract_renames(commit.hexsha),
        )

    def _should_include_file(self, file_path: str) -> bool:
        """Check if a file should be included based on configuration.

        Args:
            file_path: File path

        Returns:
            True if file should be included
        """
        for excluded in self.config.excluded_paths:
            if excluded in file_path:
                return False

        if not self.config.included_extensions:
            return True

        file_extension = Path(file_path).suffix
        return file_extension in self.config.included_extensions
