"""Data models for code smells and their lifecycle events."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

SmellKey = Tuple[str, str]

# Smell category names as produced by detectors: "MIM", "Leak", "No-Low-Memory-Resolver"...
SMELL_TYPE_PATTERN = r"^[A-Za-z][A-Za-z0-9_\-]*$"


class SmellOccurrence(BaseModel):
    """A single detection of a smell in one commit snapshot.

    Instance identifiers are assigned by the detector on each run and are only
    stable within one commit.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "type": "MIM",
                "instance": "onCreate#com.example.MainActivity",
                "commit_sha": "abc123def456",
                "file": "app/src/main/java/com/example/MainActivity.java",
            }
        },
    )

    type: str = Field(..., min_length=1, pattern=SMELL_TYPE_PATTERN, description="Smell category name")
    instance: str = Field(..., min_length=1, description="Within-commit instance identifier")
    commit_sha: str = Field(..., min_length=1, description="Commit the smell was detected in")
    file: Optional[str] = Field(None, description="Source file containing the smell")

    @field_validator("file")
    @classmethod
    def _empty_file_is_unknown(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class Smell(BaseModel):
    """A smell instance tracked across commits.

    Two instances are the same logical smell when they share type and
    instance identifier; the other fields do not take part in equality.
    """

    type: str = Field(..., description="Smell category name")
    instance: str = Field(..., description="Instance identifier")
    commit_sha: str = Field(..., description="Commit the instance was observed in")
    file: Optional[str] = Field(None, description="Source file containing the smell")
    parent_instance: Optional[str] = Field(
        None, description="Instance this one was renamed/duplicated from (same type)"
    )

    @classmethod
    def from_occurrence(cls, occurrence: SmellOccurrence) -> "Smell":
        return cls(
            type=occurrence.type,
            instance=occurrence.instance,
            commit_sha=occurrence.commit_sha,
            file=occurrence.file,
        )

    @property
    def key(self) -> SmellKey:
        return (self.type, self.instance)

    @property
    def parent_key(self) -> Optional[SmellKey]:
        if self.parent_instance is None:
            return None
        return (self.type, self.parent_instance)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Smell):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class SmellCategory(str, Enum):
    """Lifecycle event categories, mapped to their association tables."""

    PRESENCE = "presence"
    INTRODUCTION = "introduction"
    REFACTORING = "refactoring"

    @property
    def table(self) -> str:
        return f"smell_{self.value}"


class SmellEvent(BaseModel):
    """A lifecycle event of a smell at a commit."""

    model_config = ConfigDict(frozen=True)

    category: SmellCategory = Field(..., description="Event category")
    type: str = Field(..., description="Smell category name")
    instance: str = Field(..., description="Instance identifier")
    commit_sha: str = Field(..., description="Commit the event is attributed to")
