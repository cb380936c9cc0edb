"""Smell lifecycle tracking."""

from smelltracker.tracking.duplication import SmellDuplicationChecker, instance_tokens, jaccard
from smelltracker.tracking.tracker import SmellTracker, TrackingStats, coerce_occurrence

__all__ = [
    "SmellDuplicationChecker",
    "SmellTracker",
    "TrackingStats",
    "coerce_occurrence",
    "instance_tokens",
    "jaccard",
]
