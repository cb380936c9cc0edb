"""Smell lifecycle tracking over an ordered commit sequence."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, Field

from smelltracker.models import Smell, SmellCategory, SmellKey, SmellOccurrence
from smelltracker.storage import SmellStore
from smelltracker.tracking.duplication import SmellDuplicationChecker

logger = structlog.get_logger(__name__)

RawOccurrence = Union[SmellOccurrence, Mapping[str, Any]]


def coerce_occurrence(raw: RawOccurrence) -> Optional[SmellOccurrence]:
    """Validate a raw occurrence, warning and returning None if malformed."""
    if isinstance(raw, SmellOccurrence):
        return raw
    try:
        return SmellOccurrence.model_validate(dict(raw))
    except (TypeError, ValueError) as e:
        logger.warning("malformed_smell_occurrence", occurrence=raw, error=str(e))
        return None


class TrackingStats(BaseModel):
    """Counters of a tracking run."""

    commits: int = Field(0, description="Finalized commits")
    occurrences: int = Field(0, description="Accepted occurrences")
    rejected: int = Field(0, description="Malformed occurrences skipped")
    smells: int = Field(0, description="Smell instances inserted")
    introductions: int = Field(0, description="Introduction events")
    refactorings: int = Field(0, description="Refactoring events")
    renames: int = Field(0, description="Occurrences matched to a renamed predecessor")



class SmellTracker:
    """Classifies smell occurrences commit by commit.

    Occurrences of a commit must be ingested contiguously, commits oldest
    first; their order within a commit does not matter. The tracker keeps the
    smells of the previous and current commits only. Re-observed smells are
    recorded as they arrive; new smells are matched to renamed predecessors
    and recorded when the commit is finalized (when the next one starts or on
    ``finish``), once every occurrence of the commit is known.
    """

    def __init__(
        self,
        store: SmellStore,
        duplication_checker: Optional[SmellDuplicationChecker] = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Sink for smell instances and lifecycle events
            duplication_checker: Rename matcher (defaults to one without file renames)
        """
        self.store = store
        self.duplication_checker = duplication_checker or SmellDuplicationChecker()
        self.stats = TrackingStats()
        self.current_sha = ""
        self._previous: Dict[SmellKey, Smell] = {}
        self._current: Dict[SmellKey, Smell] = {}

    @property
    def previous_commit_smells(self) -> List[Smell]:
        return list(self._previous.values())

    @property
    def current_commit_smells(self) -> List[Smell]:
        return list(self._current.values())

    @property
    def current_commit_renamed(self) -> List[Smell]:
        """New smells of the current commit matched to a predecessor so far."""
        return list(self._match_renames().values())

    def ingest(self, occurrence: RawOccurrence) -> bool:
        """Track one smell occurrence.

        Args:
            occurrence: Occurrence, or raw mapping with type/instance/commit_sha/file

        Returns:
            False if the occurrence was malformed and skipped
        """
        valid = self._accept(occurrence)
        if valid is None:
            return False

        if valid.commit_sha != self.current_sha:
            self.start_commit(valid.commit_sha)

        smell = Smell.from_occurrence(valid)
        if smell.key in self._current:
            logger.debug("duplicate_occurrence", sha=self.current_sha, type=smell.type, instance=smell.instance)
            return True
        self._current[smell.key] = smell
        self.stats.occurrences += 1

        if smell.key in self._previous:
            self.store.insert_event(SmellCategory.PRESENCE, smell, self.current_sha)
        return True

    def start_commit(self, sha: str, previous: Optional[Iterable[Union[Smell, SmellOccurrence]]] = None) -> None:
        """Finalize the current commit and start tracking ``sha``.

        Args:
            sha: Commit to start
            previous: Smells to compare the new commit against, when its
                predecessor is not the commit tracked just before (first
                commit of a branch, merge commit)
        """
        self._finalize()
        self._previous = self._current
        if previous is not None:
            self._previous = {}
            for item in previous:
                smell = item if isinstance(item, Smell) else Smell.from_occurrence(item)
                self._previous[smell.key] = smell
        self._current = {}
        self.current_sha = sha

    def track_commit(
        self,
        sha: str,
        occurrences: Iterable[RawOccurrence],
        previous: Optional[Iterable[Union[Smell, SmellOccurrence]]] = None,
    ) -> None:
        """Track every occurrence of one commit.

        Occurrences of other commits are logged and skipped.
        """
        self.start_commit(sha, previous)
        for raw in occurrences:
            valid = self._accept(raw)
            if valid is None:
                continue
            if valid.commit_sha != sha:
                logger.warning("occurrence_of_other_commit", sha=sha, occurrence_sha=valid.commit_sha)
                self.stats.rejected += 1
                continue
            self.ingest(valid)

    def finish(self) -> TrackingStats:
        """Finalize the last commit.

        Returns:
            Counters of the run
        """
        self._finalize()
        self._previous = self._current
        self._current = {}
        self.current_sha = ""
        return self.stats

    def _accept(self, raw: RawOccurrence) -> Optional[SmellOccurrence]:
        valid = coerce_occurrence(raw)
        if valid is None:
            self.stats.rejected += 1
        return valid

    def _match_renames(self) -> Dict[SmellKey, Smell]:
        """Match the new smells of the current commit to their predecessors.

        New smells are taken in (type, file, instance) order; a predecessor
        re-observed in the commit or claimed by an earlier new smell is not
        available.
        """
        unavailable = set(self._current)
        renamed: Dict[SmellKey, Smell] = {}
        new_smells = sorted(
            (smell for key, smell in self._current.items() if key not in self._previous),
            key=lambda s: (s.type, s.file or "", s.instance),
        )
        for smell in new_smells:
            original = self.duplication_checker.original(smell, self._previous, excluded=unavailable)
            if original is None:
                continue
            unavailable.add(original.key)
            renamed[smell.key] = smell.model_copy(update={"parent_instance": original.instance})
        return renamed

    def _finalize(self) -> None:
        if not self.current_sha:
            return

        renamed = self._match_renames()
        for key in list(self._current):
            if key in self._previous:
                continue
            # The smell row goes first: presence statements look up its id
            smell = renamed.get(key, self._current[key])
            self._current[key] = smell
            self.store.insert_smell(smell)
            self.store.insert_event(SmellCategory.PRESENCE, smell, self.current_sha)
            self.stats.smells += 1
            if smell.parent_instance is not None:
                logger.debug(
                    "matched_renamed_smell",
                    sha=self.current_sha,
                    type=smell.type,
                    instance=smell.instance,
                    renamed_from=smell.parent_instance,
                )

        matched_parents = {smell.parent_key for smell in renamed.values()}
        introductions = [
            smell
            for key, smell in self._current.items()
            if key not in self._previous and key not in renamed
        ]
        refactorings = [
            smell
            for key, smell in self._previous.items()
            if key not in self._current and key not in matched_parents
        ]

        for smell in introductions:
            self.store.insert_event(SmellCategory.INTRODUCTION, smell, self.current_sha)
        for smell in refactorings:
            self.store.insert_event(SmellCategory.REFACTORING, smell, self.current_sha)
        self.store.flush()

        self.stats.commits += 1
        self.stats.introductions += len(introductions)
        self.stats.refactorings += len(refactorings)
        self.stats.renames += len(renamed)
        logger.debug(
            "finalized_commit",
            sha=self.current_sha,
            smells=len(self._current),
            introductions=len(introductions),
            refactorings=len(refactorings),
            renames=len(renamed),
        )
