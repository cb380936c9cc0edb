"""Concurrent analysis of several projects into one event database."""

import csv
import tempfile
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import git
import structlog
from pydantic import BaseModel, Field

from smelltracker.analysis.project import AnalysisResult, ProjectAnalysis
from smelltracker.extraction import CommitSourceError, SmellSourceError
from smelltracker.history import ReconstructionError
from smelltracker.models import Settings
from smelltracker.storage import ConnectionPool, DatabaseConfig, PersistenceError, SQLitePersistence

logger = structlog.get_logger(__name__)

PROJECT_ERRORS = (CommitSourceError, SmellSourceError, ReconstructionError, PersistenceError)


class AppsFileError(ValueError):
    """Raised when the list of projects cannot be read."""


class AppEntry(BaseModel):
    """A project to analyse, as listed in the apps CSV."""

    name: str = Field(..., min_length=1, description="Project name")
    url: Optional[str] = Field(None, description="Remote to clone when no local copy exists")


def read_apps(apps_file: Path) -> List[AppEntry]:
    """Read ``name[,remote_url]`` rows, skipping blank names.

    Raises:
        AppsFileError: If the file cannot be read
    """
    entries = []
    try:
        with open(apps_file, newline="", encoding="utf-8") as f:
            for row in csv.reader(f):
                if not row or not row[0].strip():
                    continue
                url = row[1].strip() if len(row) > 1 and row[1].strip() else None
                entries.append(AppEntry(name=row[0].strip(), url=url))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise AppsFileError(f"Unable to load applications CSV {apps_file}: {e}") from e
    return entries


class MultiProjectAnalysis:
    """Runs one ``ProjectAnalysis`` per listed project on a fixed worker pool.

    Each worker borrows its own database connection. Submission blocks while
    every worker is busy; one deadline bounds both submission and the wait for
    results. A failing project is logged without stopping the others.
    """

    def __init__(
        self,
        apps: List[AppEntry],
        smells_dir: Path,
        repos_dir: Optional[Path] = None,
        settings: Optional[Settings] = None,
        db_config: Optional[DatabaseConfig] = None,
    ):
        """Initialize the batch.

        Args:
            apps: Projects to analyse
            smells_dir: Directory holding one smell export per project (``smells_dir/<name>``)
            repos_dir: Directory holding local clones (``repos_dir/<name>``); remotes
                are cloned into a temporary directory when None
            settings: Application settings (loaded from environment if None)
            db_config: Database configuration (loaded from environment if None)
        """
        self.apps = apps
        self.smells_dir = Path(smells_dir)
        self.repos_dir = Path(repos_dir) if repos_dir else None
        self.settings = settings or Settings()
        self.db_config = db_config or DatabaseConfig()

    @classmethod
    def from_file(cls, apps_file: Path, smells_dir: Path, **kwargs) -> "MultiProjectAnalysis":
        return cls(read_apps(apps_file), smells_dir, **kwargs)

    def analyze(self) -> Dict[str, AnalysisResult]:
        """Analyse every project and wait for them, up to the configured timeout.

        Returns:
            Result per project name; projects still running or not yet started
            at the timeout are absent
        """
        threads = self.settings.threads
        timeout = self.settings.analysis_timeout.total_seconds()
        deadline = time.monotonic() + timeout
        slots = threading.BoundedSemaphore(threads)
        logger.info("starting_batch_analysis", projects=len(self.apps), threads=threads)

        results: Dict[str, AnalysisResult] = {}
        with ConnectionPool(self.db_config) as pool:
            with pool.connection() as conn:
                SQLitePersistence(self.db_config, connection=conn).initialize()

            executor = ThreadPoolExecutor(max_workers=threads, thread_name_prefix="smelltracker")
            futures: Dict[Future, AppEntry] = {}
            unsubmitted: List[str] = []
            try:
                for position, app in enumerate(self.apps):
                    if not slots.acquire(timeout=_remaining(deadline)):
                        unsubmitted = [a.name for a in self.apps[position:]]
                        break
                    logger.info("submitted_project", project=app.name)
                    futures[executor.submit(self._run, app, pool, slots)] = app

                done, not_done = wait(futures, timeout=_remaining(deadline))
                for future in done:
                    app = futures[future]
                    try:
                        results[app.name] = future.result()
                    except Exception as e:
                        logger.exception("project_analysis_crashed", project=app.name)
                        results[app.name] = AnalysisResult(app.name, False, error=str(e))
                if not_done or unsubmitted:
                    logger.error(
                        "batch_analysis_timed_out",
                        timeout_seconds=timeout,
                        pending=sorted(futures[f].name for f in not_done),
                        unsubmitted=unsubmitted,
                    )
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        failed = sorted(name for name, result in results.items() if not result.success)
        logger.info("finished_batch_analysis", succeeded=len(results) - len(failed), failed=failed)
        return results

    def _run(self, app: AppEntry, pool: ConnectionPool, slots: threading.BoundedSemaphore) -> AnalysisResult:
        log = logger.bind(project=app.name)
        try:
            with pool.connection() as conn, self._repository(app) as repo_path:
                with SQLitePersistence(self.db_config, connection=conn) as persistence:
                    return ProjectAnalysis(
                        name=app.name,
                        repo_path=repo_path,
                        smells_path=self.smells_dir / app.name,
                        persistence=persistence,
                        settings=self.settings,
                        url=app.url,
                    ).analyze()
        except PROJECT_ERRORS as e:
            log.error("project_analysis_failed", error=str(e), error_type=type(e).__name__)
            return AnalysisResult(app.name, False, error=str(e))
        except git.GitCommandError as e:
            log.error("project_clone_failed", url=app.url, error=str(e))
            return AnalysisResult(app.name, False, error=str(e))
        finally:
            slots.release()

    @contextmanager
    def _repository(self, app: AppEntry) -> Iterator[Path]:
        """Local repository of a project, cloning its remote if needed."""
        if self.repos_dir is not None:
            yield self.repos_dir / app.name
            return
        if not app.url:
            raise CommitSourceError(f"No local repository nor remote for project {app.name}")

        with tempfile.TemporaryDirectory(prefix="smelltracker-") as tmp:
            target = Path(tmp) / app.name
            logger.info("cloning_repository", project=app.name, url=app.url)
            git.Repo.clone_from(app.url, target)
            yield target


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())
