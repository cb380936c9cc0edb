"""Data models for smell history mining."""

from smelltracker.models.branch import MOTHER_ORDINAL, Branch
from smelltracker.models.commit import Commit, CommitRecord, CommitSize, FileRename
from smelltracker.models.config import RepositoryConfig, Settings
from smelltracker.models.smell import (
    Smell,
    SmellCategory,
    SmellEvent,
    SmellKey,
    SmellOccurrence,
)

__all__ = [
    "Branch",
    "MOTHER_ORDINAL",
    "Commit",
    "CommitRecord",
    "CommitSize",
    "FileRename",
    "RepositoryConfig",
    "Settings",
    "Smell",
    "SmellCategory",
    "SmellEvent",
    "SmellKey",
    "SmellOccurrence",
]
