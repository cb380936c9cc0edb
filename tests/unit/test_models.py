"""Tests for configuration and data models."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from smelltracker.models import (
    Commit,
    FileRename,
    RepositoryConfig,
    Settings,
    Smell,
    SmellCategory,
    SmellOccurrence,
)


# ============================================================================
# Settings
# ============================================================================


class TestSettings:
    """Tests for environment driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("THREADS", "ANALYSIS_TIMEOUT_HOURS", "ALL_REFS", "LOG_LEVEL"):
            monkeypatch.delenv(f"SMELLTRACKER_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.threads == 1
        assert settings.analysis_timeout == timedelta(hours=24)
        assert settings.all_refs is False
        assert settings.log_level == "INFO"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("SMELLTRACKER_THREADS", "4")
        monkeypatch.setenv("SMELLTRACKER_ANALYSIS_TIMEOUT_HOURS", "0.5")

        settings = Settings(_env_file=None)

        assert settings.threads == 4
        assert settings.analysis_timeout == timedelta(minutes=30)

    def test_threads_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, threads=0)

    def test_repository_config(self):
        settings = Settings(_env_file=None, rename_similarity=80, all_refs=True)

        config = settings.repository_config(Path("/tmp/repo"))

        assert config.repo_path == Path("/tmp/repo")
        assert config.rename_similarity == 80
        assert config.all_refs is True


class TestRepositoryConfig:
    def test_defaults(self):
        config = RepositoryConfig(repo_path=Path("/tmp/repo"))

        assert config.included_extensions == [".java", ".kt"]
        assert config.rename_similarity == 50
        assert not config.all_refs

    def test_similarity_bounds(self):
        with pytest.raises(ValidationError):
            RepositoryConfig(repo_path=Path("/tmp/repo"), rename_similarity=120)


# ============================================================================
# Commits
# ============================================================================


class TestCommit:
    """Tests for placed commits."""

    def test_from_record(self, record_factory):
        record = record_factory(
            "abcdef1234567890",
            parents=["p1", "p2"],
            renames=[FileRename(old_file="A.java", new_file="B.java", similarity=90)],
        )

        commit = Commit.from_record(record, ordinal=3, branch_ordinal=1)

        assert commit.sha == "abcdef1234567890"
        assert commit.short_sha == "abcdef1"
        assert commit.ordinal == 3
        assert commit.branch_ordinal == 1
        assert commit.is_merge
        assert commit.renames[0].new_file == "B.java"

    def test_message_summary(self):
        commit = Commit(
            sha="abc",
            author_email="test@example.com",
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            message="Fix leak\n\nRelease the cursor in onDestroy",
            ordinal=0,
            branch_ordinal=0,
        )

        assert commit.message_summary == "Fix leak"

    def test_commit_is_immutable(self, record_factory):
        commit = Commit.from_record(record_factory("abc"), ordinal=0, branch_ordinal=0)

        with pytest.raises(ValidationError):
            commit.ordinal = 5

    def test_negative_ordinal(self, record_factory):
        with pytest.raises(ValidationError):
            Commit.from_record(record_factory("abc"), ordinal=-1, branch_ordinal=0)


# ============================================================================
# Smells
# ============================================================================


class TestSmell:
    """Tests for smell identity."""

    def test_equality_ignores_commit_and_file(self):
        first = Smell(type="MIM", instance="run#Foo", commit_sha="c1", file="Foo.java")
        second = Smell(type="MIM", instance="run#Foo", commit_sha="c2", file="Bar.java")

        assert first == second
        assert len({first, second}) == 1
        assert first.key == ("MIM", "run#Foo")

    def test_type_takes_part_in_identity(self):
        assert Smell(type="MIM", instance="x", commit_sha="c1") != Smell(type="Leak", instance="x", commit_sha="c1")

    def test_parent_key(self):
        smell = Smell(type="MIM", instance="b", commit_sha="c1", parent_instance="a")

        assert smell.parent_key == ("MIM", "a")
        assert Smell(type="MIM", instance="a", commit_sha="c1").parent_key is None

    def test_from_occurrence(self):
        occurrence = SmellOccurrence(type="Leak", instance=" x ", commit_sha="c1", file="")

        smell = Smell.from_occurrence(occurrence)

        assert smell.instance == "x"
        assert smell.file is None

    @pytest.mark.parametrize("smell_type", ["", "1MIM", "MIM smell"])
    def test_invalid_occurrence_type(self, smell_type):
        with pytest.raises(ValidationError):
            SmellOccurrence(type=smell_type, instance="x", commit_sha="c1")

    def test_category_tables(self):
        assert [category.table for category in SmellCategory] == [
            "smell_presence",
            "smell_introduction",
            "smell_refactoring",
        ]
