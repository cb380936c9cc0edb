"""High-level write operations on the smell event database.

Every write is a parameterized ``INSERT ... ON CONFLICT DO NOTHING``; rows
referencing other rows resolve their ids through sub-selects on the logical
keys (project + sha, project + instance + type), so statements can be
buffered before the rows they reference are flushed.
"""

from typing import Iterable, List, Optional

import structlog

from smelltracker.history import History
from smelltracker.models import Commit, CommitSize, Smell, SmellCategory
from smelltracker.storage.persistence import Persistence, Statement

logger = structlog.get_logger(__name__)

_DEVELOPER_ID = "(SELECT id FROM developer WHERE username = ?)"
_COMMIT_ID = "(SELECT id FROM commit_entry WHERE project_id = ? AND sha1 = ?)"
_SMELL_ID = "(SELECT id FROM smell WHERE project_id = ? AND instance = ? AND type = ?)"


class ProjectStore:
    """Writes projects, developers, commits, renames and branches."""

    def __init__(self, persistence: Persistence) -> None:
        self.persistence = persistence

    def ensure_project(self, name: str, url: Optional[str] = None) -> int:
        """Insert the project if needed and return its id.

        Flushes the statement buffer.
        """
        self.persistence.add_statements(
            ("INSERT INTO project (name, url) VALUES (?, ?) ON CONFLICT DO NOTHING", (name, url))
        )
        self.persistence.commit()
        rows = self.persistence.query("SELECT id FROM project WHERE name = ?", (name,))
        return rows[0]["id"]

    def add_history(self, project_id: int, history: History) -> int:
        """Buffer developers, then commits, then renames, then branches.

        Args:
            project_id: Project id
            history: Reconstructed history

        Returns:
            Number of buffered statements
        """
        commits = history.walk_order()
        statements: List[Statement] = []
        statements.extend(self.developer_statements(project_id, {c.author_email for c in commits}))
        statements.extend(self.commit_statement(project_id, c) for c in commits)
        for commit in commits:
            statements.extend(self.rename_statements(project_id, commit))
        for branch in history.branches:
            statements.append(
                (
                    "INSERT INTO branch (project_id, ordinal, parent_commit_id, merged_into_id) "
                    f"VALUES (?, ?, {_COMMIT_ID}, {_COMMIT_ID}) ON CONFLICT DO NOTHING",
                    (
                        project_id,
                        branch.ordinal,
                        project_id,
                        branch.parent_commit.sha if branch.parent_commit else None,
                        project_id,
                        branch.merged_into.sha if branch.merged_into else None,
                    ),
                )
            )
            for commit in branch.commits:
                statements.append(
                    (
                        "INSERT INTO branch_commit (branch_id, commit_id, ordinal) VALUES ("
                        "(SELECT id FROM branch WHERE project_id = ? AND ordinal = ?), "
                        f"{_COMMIT_ID}, ?) ON CONFLICT DO NOTHING",
                        (project_id, branch.ordinal, project_id, commit.sha, commit.ordinal),
                    )
                )

        self.persistence.add_statements(*statements)
        logger.info(
            "buffered_history",
            project_id=project_id,
            commits=len(commits),
            branches=len(history.branches),
            statements=len(statements),
        )
        return len(statements)

    @staticmethod
    def developer_statements(project_id: int, emails: Iterable[str]) -> List[Statement]:
        statements: List[Statement] = []
        for email in sorted(emails):
            statements.append(
                ("INSERT INTO developer (username) VALUES (?) ON CONFLICT DO NOTHING", (email,))
            )
            statements.append(
                (
                    "INSERT INTO project_developer (developer_id, project_id) "
                    f"VALUES ({_DEVELOPER_ID}, ?) ON CONFLICT DO NOTHING",
                    (email, project_id),
                )
            )
        return statements

    @staticmethod
    def commit_statement(project_id: int, commit: Commit) -> Statement:
        return (
            "INSERT INTO commit_entry (project_id, developer_id, sha1, ordinal, branch_ordinal, "
            "date, additions, deletions, files_changed, message) "
            f"VALUES (?, {_DEVELOPER_ID}, ?, ?, ?, ?, ?, ?, ?, ?) ON CONFLICT DO NOTHING",
            (
                project_id,
                commit.author_email,
                commit.sha,
                commit.ordinal,
                commit.branch_ordinal,
                commit.timestamp.isoformat(),
                commit.additions,
                commit.deletions,
                commit.files_changed,
                commit.message,
            ),
        )

    @staticmethod
    def rename_statements(project_id: int, commit: Commit) -> List[Statement]:
        return [
            (
                "INSERT INTO file_rename (project_id, commit_id, old_file, new_file, similarity) "
                f"VALUES (?, {_COMMIT_ID}, ?, ?, ?) ON CONFLICT DO NOTHING",
                (project_id, project_id, commit.sha, rename.old_file, rename.new_file, rename.similarity),
            )
            for rename in commit.renames
        ]

    def add_commit_sizes(self, project_id: int, sizes: Iterable[CommitSize]) -> int:
        """Buffer snapshot size updates of already inserted commits."""
        count = 0
        for size in sizes:
            self.persistence.add_statements(
                (
                    "UPDATE commit_entry SET number_of_classes = ?, number_of_methods = ?, "
                    "number_of_views = ?, number_of_activities = ?, number_of_inner_classes = ? "
                    "WHERE project_id = ? AND sha1 = ?",
                    (
                        size.number_of_classes,
                        size.number_of_methods,
                        size.number_of_views,
                        size.number_of_activities,
                        size.number_of_inner_classes,
                        project_id,
                        size.sha,
                    ),
                )
            )
            count += 1
        return count


class SmellStore:
    """Writes smell instances and their lifecycle events for one project."""

    def __init__(self, persistence: Persistence, project_id: int) -> None:
        self.persistence = persistence
        self.project_id = project_id

    def insert_smell(self, smell: Smell) -> None:
        """Buffer a smell instance, linked to the instance it was renamed from."""
        self.persistence.add_statements(
            (
                "INSERT INTO smell (project_id, instance, type, file, renamed_from) "
                f"VALUES (?, ?, ?, ?, {_SMELL_ID}) ON CONFLICT DO NOTHING",
                (
                    self.project_id,
                    smell.instance,
                    smell.type,
                    smell.file,
                    self.project_id,
                    smell.parent_instance,
                    smell.type,
                ),
            )
        )

    def insert_event(self, category: SmellCategory, smell: Smell, commit_sha: str) -> None:
        """Buffer a lifecycle event of ``smell`` at ``commit_sha``."""
        self.persistence.add_statements(
            (
                f"INSERT INTO {category.table} (smell_id, commit_id) "
                "SELECT s.id, c.id FROM smell s, commit_entry c "
                "WHERE s.project_id = ? AND s.instance = ? AND s.type = ? "
                "AND c.project_id = ? AND c.sha1 = ? "
                "ON CONFLICT DO NOTHING",
                (self.project_id, smell.instance, smell.type, self.project_id, commit_sha),
            )
        )

    def flush(self) -> int:
        """Persist buffered writes as one transaction."""
        return self.persistence.commit()
