"""Branch model for reconstructed commit histories."""

from typing import Iterable, List, Optional

from smelltracker.models.commit import Commit

MOTHER_ORDINAL = -1


class Branch:
    """A branch of a Git repository, as rebuilt from parent links.

    Commits are kept in insertion order, which is the branch's commit order.
    Merge commits recorded against the branch are kept separately. A branch
    without parent commit is the principal (master) branch.
    """

    def __init__(self, ordinal: int = MOTHER_ORDINAL, merged_into: Optional[Commit] = None) -> None:
        self.ordinal = ordinal
        self.merged_into = merged_into
        self.parent_commit: Optional[Commit] = None
        self._commits: List[Commit] = []
        self._shas: set = set()
        self._merges: List[Commit] = []

    @classmethod
    def from_mother(cls, mother: Optional["Branch"], ordinal: int) -> "Branch":
        """Create a branch discovered from ``mother``.

        The new branch eventually merges wherever its mother merges, until a
        direct merge target is known.

        Args:
            mother: Branch the new one was discovered from, None for the principal branch
            ordinal: Counter of seen branches

        Returns:
            A new Branch
        """
        merged_into = mother.merged_into if mother is not None else None
        return cls(ordinal, merged_into)

    @classmethod
    def new_mother(cls, mother: Optional["Branch"], current: "Branch") -> "Branch":
        """Aggregate ``mother`` and ``current`` into a synthetic mother branch.

        The result has ordinal -1, no merge target and the commits of both
        branches. It is only used for membership checks.
        """
        branch = cls()
        if mother is not None:
            branch.add_commits(mother.commits)
        branch.add_commits(current.commits)
        return branch

    @property
    def commits(self) -> List[Commit]:
        return list(self._commits)

    @property
    def merges(self) -> List[Commit]:
        return list(self._merges)

    @property
    def is_master(self) -> bool:
        """True if the branch is the repository's principal branch."""
        return self.parent_commit is None

    @property
    def is_mother(self) -> bool:
        return self.ordinal == MOTHER_ORDINAL

    def add_commit(self, commit: Commit) -> None:
        if commit.branch_ordinal != self.ordinal:
            raise ValueError(
                f"Commit {commit.sha} belongs to branch {commit.branch_ordinal}, not {self.ordinal}"
            )
        self._append(commit)

    def add_commits(self, commits: Iterable[Commit]) -> None:
        """Add commits owned by other branches (mother aggregation)."""
        for commit in commits:
            self._append(commit)

    def add_merge(self, commit: Commit) -> None:
        self._merges.append(commit)

    def contains(self, commit: Commit) -> bool:
        return commit.sha in self._shas

    def contains_sha(self, sha: str) -> bool:
        return sha in self._shas

    def head(self) -> Optional[Commit]:
        """Most recent commit of the branch."""
        return self._commits[-1] if self._commits else None

    def _append(self, commit: Commit) -> None:
        if commit.sha in self._shas:
            return
        self._shas.add(commit.sha)
        self._commits.append(commit)

    def __len__(self) -> int:
        return len(self._commits)

    def __repr__(self) -> str:
        parent = self.parent_commit.short_sha if self.parent_commit else None
        merged = self.merged_into.short_sha if self.merged_into else None
        return (
            f"Branch(ordinal={self.ordinal}, commits={len(self._commits)}, "
            f"parent={parent}, merged_into={merged})"
        )
