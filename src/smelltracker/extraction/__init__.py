"""Commit and smell sources."""

from smelltracker.extraction.git_extractor import CommitSourceError, GitExtractor, parse_renames
from smelltracker.extraction.smell_source import CsvSmellSource, SmellSourceError

__all__ = [
    "CommitSourceError",
    "CsvSmellSource",
    "GitExtractor",
    "SmellSourceError",
    "parse_renames",
]
