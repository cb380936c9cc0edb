"""Branch-aware reconstruction of commit histories."""

from smelltracker.history.ancestry import BranchAncestry
from smelltracker.history.reconstructor import (
    PRINCIPAL_ORDINAL,
    BranchReconstructor,
    History,
    ReconstructionError,
)

__all__ = [
    "BranchAncestry",
    "BranchReconstructor",
    "History",
    "PRINCIPAL_ORDINAL",
    "ReconstructionError",
]
