"""Project analysis orchestration."""

from smelltracker.analysis.batch import AppEntry, AppsFileError, MultiProjectAnalysis, read_apps
from smelltracker.analysis.project import AnalysisResult, ProjectAnalysis, group_occurrences

__all__ = [
    "AnalysisResult",
    "AppEntry",
    "AppsFileError",
    "MultiProjectAnalysis",
    "ProjectAnalysis",
    "group_occurrences",
    "read_apps",
]
