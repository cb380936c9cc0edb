"""Single project analysis: history, then smells, then lifecycle events."""

from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from smelltracker.extraction import CsvSmellSource, GitExtractor
from smelltracker.history import BranchReconstructor, History
from smelltracker.models import Settings, SmellOccurrence
from smelltracker.storage import Persistence, ProjectStore, SmellStore
from smelltracker.tracking import SmellDuplicationChecker, SmellTracker, TrackingStats, coerce_occurrence

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class AnalysisResult:
    """Result of a project analysis."""

    def __init__(
        self,
        project: str,
        success: bool,
        project_id: Optional[int] = None,
        commits_processed: int = 0,
        branches: int = 0,
        stats: Optional[TrackingStats] = None,
        error: Optional[str] = None,
    ):
        self.project = project
        self.success = success
        self.project_id = project_id
        self.commits_processed = commits_processed
        self.branches = branches
        self.stats = stats or TrackingStats()
        self.error = error

    def __repr__(self) -> str:
        return (
            f"AnalysisResult(project={self.project!r}, success={self.success}, "
            f"commits={self.commits_processed}, error={self.error!r})"
        )


def group_occurrences(
    raw_occurrences: Iterable[Mapping[str, Optional[str]]],
    history: History,
) -> Tuple[Dict[str, List[SmellOccurrence]], int]:
    """Validate occurrences and group them by commit.

    Malformed occurrences and occurrences of commits missing from the history
    are logged and skipped.

    Returns:
        Occurrences per commit sha, and the number of malformed occurrences
    """
    grouped: Dict[str, List[SmellOccurrence]] = defaultdict(list)
    unknown: Dict[str, int] = defaultdict(int)
    rejected = 0
    for raw in raw_occurrences:
        occurrence = coerce_occurrence(raw)
        if occurrence is None:
            rejected += 1
            continue
        if occurrence.commit_sha not in history.commits:
            unknown[occurrence.commit_sha] += 1
            continue
        grouped[occurrence.commit_sha].append(occurrence)

    for sha, count in unknown.items():
        logger.warning("occurrences_of_unknown_commit", sha=sha, occurrences=count)
    return dict(grouped), rejected


class ProjectAnalysis:
    """Analyses one project into the event database.

    Steps run in order and each one fails the whole analysis:
    commit listing, branch reconstruction, commit persistence, smell reading,
    then the commit-by-commit walk of the smell tracker.
    """

    def __init__(
        self,
        name: str,
        repo_path: Path,
        smells_path: Path,
        persistence: Persistence,
        settings: Optional[Settings] = None,
        url: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize the analysis.

        Args:
            name: Project name, unique in the database
            repo_path: Local Git repository
            smells_path: Smell export (CSV file or directory of CSV files)
            persistence: Event sink
            settings: Application settings (loaded from environment if None)
            url: Remote URL recorded with the project
            progress_callback: Called with (walked commits, total commits)
        """
        self.name = name
        self.repo_path = Path(repo_path)
        self.smells_path = Path(smells_path)
        self.persistence = persistence
        self.settings = settings or Settings()
        self.url = url
        self.progress_callback = progress_callback

    def analyze(self) -> AnalysisResult:
        """Run the analysis.

        Raises:
            CommitSourceError: If the repository cannot be read
            SmellSourceError: If the smell export cannot be read
            ReconstructionError: If the commit graph is inconsistent
            PersistenceError: If a write fails
        """
        log = logger.bind(project=self.name)
        log.info("starting_project_analysis", repo=str(self.repo_path), smells=str(self.smells_path))

        project_store = ProjectStore(self.persistence)
        project_id = project_store.ensure_project(self.name, self.url)

        extractor = GitExtractor(self.settings.repository_config(self.repo_path))
        records = extractor.list_commits()
        history = BranchReconstructor().reconstruct(records)

        project_store.add_history(project_id, history)
        source = CsvSmellSource(self.smells_path)
        sizes = source.commit_sizes()
        if sizes:
            project_store.add_commit_sizes(project_id, sizes)
        self.persistence.commit()
        log.info("persisted_commits", commits=len(history), branches=len(history.branches), sizes=len(sizes))

        occurrences, rejected = group_occurrences(source.detect_smells(), history)
        checker = SmellDuplicationChecker({c.sha: c.renames for c in history if c.renames})
        tracker = SmellTracker(SmellStore(self.persistence, project_id), checker)
        tracker.stats.rejected += rejected
        self.walk(history, occurrences, tracker)
        stats = tracker.finish()

        log.info(
            "finished_project_analysis",
            commits=stats.commits,
            smells=stats.smells,
            introductions=stats.introductions,
            refactorings=stats.refactorings,
            renames=stats.renames,
            rejected=stats.rejected,
        )
        return AnalysisResult(
            project=self.name,
            success=True,
            project_id=project_id,
            commits_processed=stats.commits,
            branches=len(history.branches),
            stats=stats,
        )

    def walk(
        self,
        history: History,
        occurrences: Mapping[str, List[SmellOccurrence]],
        tracker: SmellTracker,
    ) -> None:
        """Feed every commit to the tracker, parents before children.

        A commit is compared with the commit walked just before it when that
        is its only parent; otherwise (root, branch start, merge) with the
        union of its parents' smells.
        """
        commits = history.walk_order()
        last_sha: Optional[str] = None
        for walked, commit in enumerate(commits, start=1):
            previous = None
            if list(commit.parent_shas) != [last_sha]:
                previous = [
                    occurrence
                    for parent_sha in commit.parent_shas
                    for occurrence in occurrences.get(parent_sha, [])
                ]
            tracker.track_commit(commit.sha, occurrences.get(commit.sha, []), previous)
            last_sha = commit.sha
            if self.progress_callback:
                self.progress_callback(walked, len(commits))
