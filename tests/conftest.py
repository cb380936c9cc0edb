"""Shared fixtures: temporary Git repositories and commit records."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import git
import pytest

from smelltracker.models import CommitRecord, FileRename


def _commit(repo: git.Repo, repo_path: Path, files: Dict[str, str], message: str) -> str:
    for name, content in files.items():
        path = repo_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        repo.git.add(name)
    repo.git.commit("-m", message)
    return repo.head.commit.hexsha


@pytest.fixture
def merge_repo():
    """Repository with a feature branch merged back, then a file rename.

    History (oldest first)::

        initial ── update ── merge ── rename
             \\              /
              feature ─────

    Yields:
        (repo path, dict of commit name -> sha)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_path = Path(tmpdir)
        repo = git.Repo.init(repo_path)

        repo.config_writer().set_value("user", "name", "Test User").release()
        repo.config_writer().set_value("user", "email", "test@example.com").release()

        shas = {}
        shas["initial"] = _commit(
            repo, repo_path, {"src/Foo.java": "class Foo {\n  void run() {}\n}\n"}, "Add Foo"
        )
        main_branch = repo.active_branch.name

        repo.git.checkout("-b", "feature")
        shas["feature"] = _commit(
            repo, repo_path, {"src/Bar.java": "class Bar {\n  void walk() {}\n}\n"}, "Add Bar"
        )

        repo.git.checkout(main_branch)
        shas["update"] = _commit(
            repo,
            repo_path,
            {"src/Foo.java": "class Foo {\n  void run() {}\n  void stop() {}\n}\n"},
            "Update Foo",
        )

        repo.git.merge("feature", "--no-ff", "-m", "Merge feature")
        shas["merge"] = repo.head.commit.hexsha

        repo.git.mv("src/Foo.java", "src/Baz.java")
        repo.git.commit("-m", "Rename Foo to Baz")
        shas["rename"] = repo.head.commit.hexsha

        yield repo_path, shas


def make_record(
    sha: str,
    parents: Optional[List[str]] = None,
    renames: Optional[List[FileRename]] = None,
    minutes: int = 0,
) -> CommitRecord:
    """Build a commit record for graph tests."""
    return CommitRecord(
        sha=sha,
        parent_shas=parents or [],
        author_name="Test User",
        author_email="test@example.com",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        message=f"Commit {sha}",
        renames=renames or [],
    )


@pytest.fixture
def record_factory():
    """Factory building commit records."""
    return make_record
