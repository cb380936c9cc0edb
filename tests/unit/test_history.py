"""Unit tests for branch reconstruction and branch ancestry."""

from datetime import datetime, timezone

import pytest

from smelltracker.history import BranchAncestry, BranchReconstructor, ReconstructionError
from smelltracker.models import Branch, Commit


def _commit(sha, branch_ordinal, ordinal=0):
    return Commit(
        sha=sha,
        author_email="test@example.com",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ordinal=ordinal,
        branch_ordinal=branch_ordinal,
    )


def _branch(ordinal, *shas):
    branch = Branch(ordinal)
    for position, sha in enumerate(shas):
        branch.add_commit(_commit(sha, ordinal, position))
    return branch


class TestBranch:
    """Tests for the Branch model."""

    def test_principal_branch_has_no_parent(self):
        branch = Branch.from_mother(None, 0)

        assert branch.is_master
        assert branch.merged_into is None

    def test_from_mother_inherits_merge_target(self):
        """A new branch merges wherever its mother merges."""
        target = _commit("m", 0)
        mother = Branch(1, merged_into=target)

        branch = Branch.from_mother(mother, 2)

        assert branch.ordinal == 2
        assert branch.merged_into == target

    def test_new_mother_aggregates_commits(self):
        mother = _branch(0, "a", "b")
        current = _branch(1, "c")
        current.merged_into = _commit("b", 0, 1)

        aggregate = Branch.new_mother(mother, current)

        assert aggregate.is_mother
        assert aggregate.merged_into is None
        assert [c.sha for c in aggregate.commits] == ["a", "b", "c"]

    def test_add_commit_of_other_branch(self):
        """Commits are owned by exactly one branch."""
        branch = Branch(0)

        with pytest.raises(ValueError, match="belongs to branch 1"):
            branch.add_commit(_commit("a", 1))

    def test_commits_keep_insertion_order(self):
        branch = _branch(3, "x", "y", "z")

        assert [c.sha for c in branch.commits] == ["x", "y", "z"]
        assert branch.head().sha == "z"
        assert branch.contains_sha("y")
        assert not branch.contains_sha("w")


class TestBranchAncestry:
    """Tests for lineage collapsing."""

    def test_each_branch_starts_alone(self):
        ancestry = BranchAncestry()
        for ordinal in range(3):
            ancestry.add(ordinal)

        assert ancestry.find(0) != ancestry.find(1)
        assert ancestry.roots() == [0, 1, 2]
        assert ancestry.members(2) == [2]
        assert len(ancestry) == 3

    def test_collapse_keeps_oldest_representative(self):
        ancestry = BranchAncestry()
        for ordinal in range(4):
            ancestry.add(ordinal)

        ancestry.collapse(2, 3)
        ancestry.collapse(0, 2)

        assert ancestry.find(3) == 0
        assert ancestry.members(1) == [1]
        assert ancestry.members(3) == [0, 2, 3]

    def test_collapse_within_lineage_is_noop(self):
        ancestry = BranchAncestry()
        ancestry.add(0)
        ancestry.add(1)
        ancestry.collapse(0, 1)

        assert ancestry.collapse(1, 0) == 0

    def test_double_registration(self):
        ancestry = BranchAncestry()
        ancestry.add(0)

        with pytest.raises(ValueError, match="already registered"):
            ancestry.add(0)

    def test_unknown_branch(self):
        with pytest.raises(KeyError):
            BranchAncestry().find(7)

    def test_commit_membership(self):
        ancestry = BranchAncestry()
        ancestry.add(0, _branch(0, "a", "b"))
        ancestry.add(1, _branch(1, "c"))

        assert ancestry.lineage_of("b") == 0
        assert ancestry.lineage_of("c", hint=0) == 1
        assert ancestry.lineage_of("z") is None
        assert ancestry.contains("a")

    def test_collapse_merges_membership(self):
        """Commits of a collapsed branch are found in its mother's lineage."""
        ancestry = BranchAncestry()
        ancestry.add(0, _branch(0, "a", "b"))
        ancestry.add(1, _branch(1, "c"))

        ancestry.collapse(0, 1)

        assert ancestry.roots() == [0]
        assert ancestry.lineage_of("c") == 0
        assert ancestry.lineage_of("c", hint=1) == 0

    def test_mother_of_lineage(self):
        ancestry = BranchAncestry()
        ancestry.add(0, _branch(0, "a", "b"))
        ancestry.add(1, _branch(1, "c"))
        ancestry.add(2, _branch(2, "d"))
        ancestry.collapse(0, 1)

        mother = ancestry.mother_of(1)

        assert mother.ordinal == -1
        assert [c.sha for c in mother.commits] == ["a", "b", "c"]
        assert [c.sha for c in ancestry.mother_of(2).commits] == ["d"]


class TestBranchReconstructor:
    """Tests for BranchReconstructor."""

    def test_linear_history(self, record_factory):
        records = [
            record_factory("c3", ["c2"]),
            record_factory("c2", ["c1"]),
            record_factory("c1"),
        ]

        history = BranchReconstructor().reconstruct(records)

        assert len(history.branches) == 1
        principal = history.principal
        assert principal.is_master
        assert [c.sha for c in principal.commits] == ["c1", "c2", "c3"]
        assert [c.ordinal for c in principal.commits] == [0, 1, 2]
        assert [c.sha for c in history.walk_order()] == ["c1", "c2", "c3"]

    def test_merge_commit(self, record_factory):
        """A merge stays on its first parent's branch and targets the merged branch."""
        records = [
            record_factory("m", ["b", "f"]),
            record_factory("f", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        assert history.commit("m").branch_ordinal == history.commit("b").branch_ordinal == 0
        feature = history.branch_of("f")
        assert feature.ordinal == 1
        assert feature.merged_into.sha == "m"
        assert feature.parent_commit.sha == "a"
        assert [c.sha for c in history.principal.merges] == ["m"]

    def test_every_commit_in_exactly_one_branch(self, record_factory):
        records = [
            record_factory("m2", ["m1", "g"]),
            record_factory("g", ["f2"]),
            record_factory("m1", ["b", "f2"]),
            record_factory("f2", ["f1"]),
            record_factory("f1", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        for record in records:
            owners = [b.ordinal for b in history.branches if b.contains_sha(record.sha)]
            assert owners == [history.commit(record.sha).branch_ordinal]
        for branch in history.branches:
            assert branch.is_master == (branch.ordinal == 0)

    def test_nested_branches(self, record_factory):
        """A branch merged into a feature branch targets that merge, not the final one."""
        records = [
            record_factory("m2", ["b", "fm"]),
            record_factory("fm", ["f1", "n1"]),
            record_factory("n1", ["f1"]),
            record_factory("f1", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        feature = history.branch_of("fm")
        nested = history.branch_of("n1")
        assert feature.merged_into.sha == "m2"
        assert nested.merged_into.sha == "fm"
        assert nested.parent_commit.sha == "f1"
        assert history.ancestry.find(nested.ordinal) == 0
        mother = history.mother(nested.ordinal)
        assert {c.sha for c in mother.commits} == {"a", "b", "m2", "f1", "fm", "n1"}

    def test_unmerged_tip_inherits_mother_target(self, record_factory):
        """A tip no merge reaches merges wherever the branch it forked from merges."""
        records = [
            record_factory("m", ["b", "f2"]),
            record_factory("x", ["f1"]),
            record_factory("f2", ["f1"]),
            record_factory("f1", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        stray = history.branch_of("x")
        assert stray.parent_commit.sha == "f1"
        assert stray.merged_into.sha == "m"

    def test_back_merge_of_known_commit(self, record_factory):
        """Merging a commit already owned by a branch creates no branch."""
        records = [
            record_factory("m2", ["m1", "f2"]),
            record_factory("f2", ["f1", "b"]),
            record_factory("m1", ["b"]),
            record_factory("f1", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        assert len(history.branches) == 2
        assert history.branch_of("f2").ordinal == 1

    def test_unrelated_history_merged(self, record_factory):
        """A merged root history attaches to the merge's first parent."""
        records = [
            record_factory("m", ["b", "o2"]),
            record_factory("o2", ["o1"]),
            record_factory("o1"),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        orphan = history.branch_of("o1")
        assert orphan.parent_commit.sha == "b"
        assert [c.sha for c in orphan.commits] == ["o1", "o2"]

    def test_disconnected_unmerged_history(self, record_factory):
        records = [record_factory("x"), record_factory("a")]

        with pytest.raises(ReconstructionError, match="Disconnected history"):
            BranchReconstructor().reconstruct(records)

    def test_walk_order_parents_first(self, record_factory):
        records = [
            record_factory("m", ["b", "f"]),
            record_factory("f", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        order = [c.sha for c in BranchReconstructor().reconstruct(records).walk_order()]

        assert order == ["a", "b", "f", "m"]

    def test_branches_collapse_into_one_lineage(self, record_factory):
        records = [
            record_factory("m", ["b", "o2"]),
            record_factory("o2", ["o1"]),
            record_factory("o1"),
            record_factory("x", ["f"]),
            record_factory("f", ["a"]),
            record_factory("b", ["a"]),
            record_factory("a"),
        ]

        history = BranchReconstructor().reconstruct(records)

        assert len(history.branches) == 3
        lineages = history.lineages()
        assert len(lineages) == 1
        assert lineages[0].is_mother
        assert {c.sha for c in lineages[0].commits} == {r.sha for r in records}

    def test_duplicate_sha(self, record_factory):
        records = [record_factory("a"), record_factory("a")]

        with pytest.raises(ReconstructionError, match="Duplicate commit: a"):
            BranchReconstructor().reconstruct(records)

    def test_empty_sha(self, record_factory):
        with pytest.raises(ReconstructionError, match="Malformed commit sha"):
            BranchReconstructor().reconstruct([record_factory("")])

    def test_dangling_parent(self, record_factory):
        records = [record_factory("b", ["ghost"])]

        with pytest.raises(ReconstructionError, match="Dangling parent reference ghost") as e:
            BranchReconstructor().reconstruct(records)
        assert e.value.sha == "b"

    def test_cyclic_parents(self, record_factory):
        records = [record_factory("a", ["b"]), record_factory("b", ["a"])]

        with pytest.raises(ReconstructionError, match="Cyclic parent reference"):
            BranchReconstructor().reconstruct(records)

    def test_empty_history(self):
        history = BranchReconstructor().reconstruct([])

        assert len(history) == 0
        assert history.principal is None

    def test_repository_with_merge(self, merge_repo):
        """Branches of a real repository."""
        from smelltracker.extraction import GitExtractor
        from smelltracker.models import RepositoryConfig

        repo_path, shas = merge_repo
        records = GitExtractor(RepositoryConfig(repo_path=repo_path)).list_commits()

        history = BranchReconstructor().reconstruct(records)

        assert [c.sha for c in history.principal.commits] == [
            shas["initial"],
            shas["update"],
            shas["merge"],
            shas["rename"],
        ]
        feature = history.branch_of(shas["feature"])
        assert feature.ordinal == 1
        assert feature.merged_into.sha == shas["merge"]
        assert feature.parent_commit.sha == shas["initial"]
