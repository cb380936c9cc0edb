"""Matching of renamed or duplicated smell instances across commits.

Detectors assign instance identifiers per run, so the same logical smell can
show up under a new identifier in the next commit, typically after its file or
method was renamed. A previous-commit instance ``p`` is taken as the
predecessor of a new occurrence ``o`` when:

- both have the same smell type and different instance identifiers;
- ``o`` is not itself a continuation (its identifier is not in the previous commit);
- ``p`` is not observed again, nor already claimed, in the current commit;
- ``p``'s file, mapped through the current commit's file renames, is ``o``'s file.

Candidates are ranked by the Jaccard similarity of the identifiers' tokens,
then by identifier, so the outcome never depends on iteration order.
"""

import re
from typing import Collection, Dict, FrozenSet, Mapping, Optional, Sequence

from smelltracker.models import FileRename, Smell, SmellKey

_TOKEN_SEPARATOR = re.compile(r"[^0-9A-Za-z]+")


def instance_tokens(instance: str) -> FrozenSet[str]:
    """Lower-cased alphanumeric tokens of an instance identifier."""
    return frozenset(token for token in _TOKEN_SEPARATOR.split(instance.lower()) if token)


def jaccard(first: FrozenSet[str], second: FrozenSet[str]) -> float:
    """Jaccard similarity between two token sets."""
    if not first and not second:
        return 1.0
    union = len(first | second)
    return len(first & second) / union if union else 0.0


class SmellDuplicationChecker:
    """Finds the previous-commit instance a new occurrence continues."""

    def __init__(self, renames: Optional[Mapping[str, Sequence[FileRename]]] = None) -> None:
        """Initialize the checker.

        Args:
            renames: File renames per commit sha
        """
        self._renames: Dict[str, Dict[str, str]] = {}
        for sha, commit_renames in (renames or {}).items():
            self._renames[sha] = {r.old_file: r.new_file for r in commit_renames}

    def renamed_path(self, commit_sha: str, path: Optional[str]) -> Optional[str]:
        """Path of ``path`` after the renames of ``commit_sha``."""
        if path is None:
            return None
        return self._renames.get(commit_sha, {}).get(path, path)

    def original(
        self,
        smell: Smell,
        previous: Mapping[SmellKey, Smell],
        excluded: Collection[SmellKey] = (),
    ) -> Optional[Smell]:
        """Find the instance ``smell`` was renamed or duplicated from.

        Args:
            smell: New occurrence, in the commit being tracked
            previous: Smells of the previous commit by key
            excluded: Keys that cannot be predecessors (already observed or claimed)

        Returns:
            The matched previous smell, or None
        """
        if smell.key in previous or not smell.file:
            return None

        candidates = [
            candidate
            for key, candidate in previous.items()
            if candidate.type == smell.type
            and candidate.instance != smell.instance
            and key not in excluded
            and self.renamed_path(smell.commit_sha, candidate.file) == smell.file
        ]
        if not candidates:
            return None

        tokens = instance_tokens(smell.instance)
        return min(
            candidates,
            key=lambda c: (-jaccard(tokens, instance_tokens(c.instance)), c.instance),
        )
