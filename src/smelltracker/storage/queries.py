"""Point lookups on the smell event database."""

from typing import List, Optional

from smelltracker.models import SmellCategory, SmellEvent
from smelltracker.storage.persistence import Persistence


class EventQueries:
    """Read-only queries scoped to one project."""

    def __init__(self, persistence: Persistence, project_id: int) -> None:
        self.persistence = persistence
        self.project_id = project_id

    @staticmethod
    def project_id(persistence: Persistence, name: str) -> Optional[int]:
        """Id of a project by name, None if it was never analysed."""
        rows = persistence.query("SELECT id FROM project WHERE name = ?", (name,))
        return rows[0]["id"] if rows else None

    def commit_id(self, sha: str) -> Optional[int]:
        rows = self.persistence.query(
            "SELECT id FROM commit_entry WHERE project_id = ? AND sha1 = ?",
            (self.project_id, sha),
        )
        return rows[0]["id"] if rows else None

    def has_commit(self, sha: str) -> bool:
        """Tell if the commit exists for the project."""
        return self.commit_id(sha) is not None

    def last_commit_sha(self) -> Optional[str]:
        """Sha of the most recent commit of the principal branch."""
        rows = self.persistence.query(
            "SELECT sha1 FROM commit_entry WHERE project_id = ? AND branch_ordinal = 0 "
            "ORDER BY ordinal DESC LIMIT 1",
            (self.project_id,),
        )
        return rows[0]["sha1"] if rows else None

    def smell_id(self, instance: str, smell_type: str) -> Optional[int]:
        rows = self.persistence.query(
            "SELECT id FROM smell WHERE project_id = ? AND instance = ? AND type = ?",
            (self.project_id, instance, smell_type),
        )
        return rows[0]["id"] if rows else None

    def renamed_from(self, instance: str, smell_type: str) -> Optional[str]:
        """Instance a smell was renamed from, None if it was not renamed."""
        rows = self.persistence.query(
            "SELECT parent.instance AS instance FROM smell s "
            "JOIN smell parent ON parent.id = s.renamed_from "
            "WHERE s.project_id = ? AND s.instance = ? AND s.type = ?",
            (self.project_id, instance, smell_type),
        )
        return rows[0]["instance"] if rows else None

    def smell_count(self) -> int:
        rows = self.persistence.query(
            "SELECT COUNT(*) AS count FROM smell WHERE project_id = ?", (self.project_id,)
        )
        return rows[0]["count"]

    def commit_count(self) -> int:
        rows = self.persistence.query(
            "SELECT COUNT(*) AS count FROM commit_entry WHERE project_id = ?", (self.project_id,)
        )
        return rows[0]["count"]

    def events(self, category: SmellCategory, commit_sha: Optional[str] = None) -> List[SmellEvent]:
        """Lifecycle events of a category, optionally restricted to one commit.

        Events are ordered by commit ordinal, then smell type and instance.
        """
        sql = (
            "SELECT s.type AS type, s.instance AS instance, c.sha1 AS sha1 "
            f"FROM {category.table} e "
            "JOIN smell s ON s.id = e.smell_id "
            "JOIN commit_entry c ON c.id = e.commit_id "
            "WHERE s.project_id = ?"
        )
        params: list = [self.project_id]
        if commit_sha is not None:
            sql += " AND c.sha1 = ?"
            params.append(commit_sha)
        sql += " ORDER BY c.branch_ordinal, c.ordinal, s.type, s.instance"
        return [
            SmellEvent(category=category, type=row["type"], instance=row["instance"], commit_sha=row["sha1"])
            for row in self.persistence.query(sql, params)
        ]
