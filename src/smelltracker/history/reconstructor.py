"""Branch reconstruction from raw parent links."""

import heapq
from collections import deque
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Tuple

import structlog

from smelltracker.history.ancestry import BranchAncestry
from smelltracker.models import Branch, Commit, CommitRecord

logger = structlog.get_logger(__name__)

PRINCIPAL_ORDINAL = 0


class ReconstructionError(Exception):
    """Raised when commit parent links cannot form a branch history."""

    def __init__(self, sha: str, reason: str) -> None:
        self.sha = sha
        self.reason = reason
        super().__init__(f"{reason}: {sha}")


class History:
    """Reconstructed history of a project: its branches and commit order."""

    def __init__(
        self,
        branches: List[Branch],
        commits: Dict[str, Commit],
        walk_order: List[str],
        ancestry: BranchAncestry,
    ) -> None:
        self.branches = branches
        self.commits = commits
        self.ancestry = ancestry
        self._walk_order = walk_order
        self._by_ordinal = {branch.ordinal: branch for branch in branches}

    @property
    def principal(self) -> Optional[Branch]:
        return self._by_ordinal.get(PRINCIPAL_ORDINAL)

    def branch(self, ordinal: int) -> Branch:
        return self._by_ordinal[ordinal]

    def branch_of(self, sha: str) -> Branch:
        return self._by_ordinal[self.commits[sha].branch_ordinal]

    def commit(self, sha: str) -> Commit:
        return self.commits[sha]

    def mother(self, ordinal: int) -> Branch:
        """Synthetic mother branch of the lineage containing ``ordinal``."""
        return self.ancestry.mother_of(ordinal)

    def lineages(self) -> List[Branch]:
        """Synthetic mother branch of every lineage, oldest lineage first."""
        return [self.mother(root) for root in self.ancestry.roots()]

    def walk_order(self) -> List[Commit]:
        """Every commit once, parents before children, oldest first."""
        return [self.commits[sha] for sha in self._walk_order]

    def __iter__(self) -> Iterator[Commit]:
        return iter(self.walk_order())

    def __len__(self) -> int:
        return len(self.commits)


class BranchReconstructor:
    """Assigns commits to branches and orders them.

    The principal branch follows first parents from the most recent commit.
    Each non-first parent of a merge starts a new branch merged into that merge
    commit. Tips no merge reaches become branches too, inheriting the merge
    target of the branch they forked from.
    """

    def reconstruct(self, records: Sequence[CommitRecord]) -> History:
        """Rebuild the branches of a newest-first commit stream.

        Args:
            records: Commit records, children before parents

        Returns:
            History of the project

        Raises:
            ReconstructionError: On malformed, dangling or cyclic parent references
        """
        index, position = self._index(records)
        walk_order = self._topological_order(records, index, position)

        ancestry = BranchAncestry()
        commits: Dict[str, Commit] = {}
        branches: List[Branch] = []

        pending: Deque[Tuple[str, Optional[Branch], Optional[str]]] = deque()
        for tip in self._tips(records):
            if ancestry.contains(tip):
                continue
            pending.append((tip, None, None))
            while pending:
                tip_sha, mother, merge_sha = pending.popleft()
                branch = self._build_branch(
                    tip_sha, mother, merge_sha, branches, index, commits, ancestry
                )
                if branch is None:
                    continue
                branches.append(branch)
                for merge in branch.merges:
                    for parent_sha in merge.parent_shas[1:]:
                        pending.append((parent_sha, branch, merge.sha))

        for record in records:
            if not ancestry.contains(record.sha):
                raise ReconstructionError(record.sha, "Commit in no branch")

        logger.info(
            "reconstructed_history",
            commits=len(commits),
            branches=len(branches),
            lineages=len(ancestry.roots()),
            merges=sum(len(b.merges) for b in branches),
        )
        return History(branches, commits, walk_order, ancestry)

    def _build_branch(
        self,
        tip_sha: str,
        mother: Optional[Branch],
        merge_sha: Optional[str],
        branches: List[Branch],
        index: Dict[str, CommitRecord],
        commits: Dict[str, Commit],
        ancestry: BranchAncestry,
    ) -> Optional[Branch]:
        # Walk first parents until some lineage owns the commit, looking in the mother's first
        hint = mother.ordinal if mother is not None else None
        chain = []
        sha: Optional[str] = tip_sha
        while sha is not None and not ancestry.contains(sha, hint):
            chain.append(sha)
            parents = index[sha].parent_shas
            sha = parents[0] if parents else None
        fork_sha = sha

        if not chain:
            # Merge of a commit some branch already owns (e.g. a back-merge)
            logger.debug("merged_known_commit", sha=tip_sha, merge=merge_sha)
            return None

        if mother is None and fork_sha is not None:
            mother = branches[commits[fork_sha].branch_ordinal]

        ordinal = len(branches)
        branch = Branch.from_mother(mother, ordinal)
        if merge_sha is not None:
            branch.merged_into = commits[merge_sha]

        if fork_sha is not None:
            branch.parent_commit = commits[fork_sha]
        elif ordinal != PRINCIPAL_ORDINAL:
            if merge_sha is None:
                raise ReconstructionError(tip_sha, "Disconnected history")
            # Unrelated history merged in: attach it where it was merged
            branch.parent_commit = commits[commits[merge_sha].parent_shas[0]]

        for position, chain_sha in enumerate(reversed(chain)):
            commit = Commit.from_record(index[chain_sha], position, ordinal)
            commits[chain_sha] = commit
            branch.add_commit(commit)
            if commit.is_merge:
                branch.add_merge(commit)

        ancestry.add(ordinal, branch)
        if mother is not None:
            ancestry.collapse(mother.ordinal, ordinal)

        logger.debug(
            "built_branch",
            ordinal=ordinal,
            commits=len(branch),
            parent=branch.parent_commit.sha if branch.parent_commit else None,
            merged_into=branch.merged_into.sha if branch.merged_into else None,
        )
        return branch

    @staticmethod
    def _index(records: Sequence[CommitRecord]) -> Tuple[Dict[str, CommitRecord], Dict[str, int]]:
        index: Dict[str, CommitRecord] = {}
        position: Dict[str, int] = {}
        for i, record in enumerate(records):
            if not record.sha or not record.sha.strip():
                raise ReconstructionError(repr(record.sha), "Malformed commit sha")
            if record.sha in index:
                raise ReconstructionError(record.sha, "Duplicate commit")
            index[record.sha] = record
            position[record.sha] = i

        for record in records:
            for parent_sha in record.parent_shas:
                if parent_sha not in index:
                    raise ReconstructionError(
                        record.sha, f"Dangling parent reference {parent_sha}"
                    )
        return index, position

    @staticmethod
    def _topological_order(
        records: Sequence[CommitRecord],
        index: Dict[str, CommitRecord],
        position: Dict[str, int],
    ) -> List[str]:
        """Order commits parents first (Kahn), oldest input first on ties."""
        children: Dict[str, List[str]] = {sha: [] for sha in index}
        waiting: Dict[str, int] = {}
        for record in records:
            parents = set(record.parent_shas)
            waiting[record.sha] = len(parents)
            for parent_sha in parents:
                children[parent_sha].append(record.sha)

        ready = [(-position[sha], sha) for sha, count in waiting.items() if count == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            _, sha = heapq.heappop(ready)
            order.append(sha)
            for child in children[sha]:
                waiting[child] -= 1
                if waiting[child] == 0:
                    heapq.heappush(ready, (-position[child], child))

        if len(order) != len(index):
            stuck = min(
                (sha for sha, count in waiting.items() if count > 0),
                key=lambda sha: position[sha],
            )
            raise ReconstructionError(stuck, "Cyclic parent reference")
        return order

    @staticmethod
    def _tips(records: Sequence[CommitRecord]) -> List[str]:
        """Commits without children, most recent first."""
        has_children = {p for record in records for p in record.parent_shas}
        return [record.sha for record in records if record.sha not in has_children]
