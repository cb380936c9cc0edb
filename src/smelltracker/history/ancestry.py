"""Union-find over branch lineages.

Every branch starts in its own lineage group. Once a branch has been rebuilt it
is collapsed into the group of the branch it was discovered from (its mother),
so a group always holds a mother and all of its descendants. A group also
holds the commits of its branches: membership checks look at one set per
lineage instead of one per branch, and collapsing merges the sets. Collapsing
only ever joins a finished branch to an existing group, which keeps the
branch-ancestry graph a forest.
"""

from typing import Dict, List, Optional, Set

from smelltracker.models import Branch


class BranchAncestry:
    """Lineage groups of branches, with commit membership."""

    def __init__(self) -> None:
        self._parent: Dict[int, int] = {}
        self._branches: Dict[int, Branch] = {}
        self._commits: Dict[int, Set[str]] = {}

    def add(self, ordinal: int, branch: Optional[Branch] = None) -> None:
        """Register a branch as a lineage group of its own.

        Args:
            ordinal: Branch ordinal
            branch: Branch object; its commits become members of the group
        """
        if ordinal in self._parent:
            raise ValueError(f"Branch {ordinal} already registered")
        self._parent[ordinal] = ordinal
        self._commits[ordinal] = set()
        if branch is not None:
            self._branches[ordinal] = branch
            self._commits[ordinal].update(commit.sha for commit in branch.commits)

    def find(self, ordinal: int) -> int:
        """Representative of the lineage group of ``ordinal``."""
        if ordinal not in self._parent:
            raise KeyError(f"Unknown branch: {ordinal}")
        root = ordinal
        while self._parent[root] != root:
            self._parent[root] = self._parent[self._parent[root]]
            root = self._parent[root]
        return root

    def collapse(self, mother: int, current: int) -> int:
        """Merge the lineage of ``current`` into the lineage of ``mother``.

        The oldest branch of the two groups stays representative.

        Returns:
            Representative of the merged group
        """
        mother_root = self.find(mother)
        current_root = self.find(current)
        if mother_root == current_root:
            return mother_root
        root, child = sorted((mother_root, current_root))
        self._parent[child] = root
        self._commits[root] |= self._commits.pop(child)
        return root

    def roots(self) -> List[int]:
        """Representatives of every lineage group, oldest first."""
        return sorted(self._commits)

    def members(self, ordinal: int) -> List[int]:
        """Ordinals of every branch in the lineage group of ``ordinal``."""
        root = self.find(ordinal)
        return sorted(o for o in self._parent if self.find(o) == root)

    def lineage_of(self, sha: str, hint: Optional[int] = None) -> Optional[int]:
        """Representative of the lineage holding a commit, None if unassigned.

        Args:
            sha: Commit sha
            hint: Branch whose lineage is checked first
        """
        if hint is not None:
            root = self.find(hint)
            if sha in self._commits[root]:
                return root
        for root, commits in self._commits.items():
            if sha in commits:
                return root
        return None

    def contains(self, sha: str, hint: Optional[int] = None) -> bool:
        return self.lineage_of(sha, hint) is not None

    def mother_of(self, ordinal: int) -> Branch:
        """Build the synthetic mother branch of a lineage group.

        The mother has ordinal -1, no merge target, and the commits of every
        branch of the group, branch by branch in ordinal order.
        """
        mother: Optional[Branch] = None
        for member in self.members(ordinal):
            branch = self._branches.get(member)
            if branch is None:
                continue
            mother = Branch.new_mother(mother, branch)
        return mother if mother is not None else Branch()

    def __len__(self) -> int:
        return len(self._parent)
