"""Data models for Git commit information."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileRename(BaseModel):
    """A file rename detected by git in a single commit."""

    model_config = ConfigDict(frozen=True)

    old_file: str = Field(..., description="Path before the rename")
    new_file: str = Field(..., description="Path after the rename")
    similarity: int = Field(100, ge=0, le=100, description="Rename similarity index (percent)")


class CommitRecord(BaseModel):
    """Raw commit as produced by the commit source, before branch reconstruction."""

    sha: str = Field(..., description="Full commit SHA hash")
    parent_shas: List[str] = Field(default_factory=list, description="Parent hashes, first parent first")
    author_name: str = Field("", description="Author name")
    author_email: str = Field(..., description="Author email")
    timestamp: datetime = Field(..., description="Commit timestamp")
    message: str = Field("", description="Full commit message")
    additions: int = Field(0, description="Number of lines added")
    deletions: int = Field(0, description="Number of lines deleted")
    files_changed: int = Field(0, description="Number of files changed")
    renames: List[FileRename] = Field(default_factory=list, description="Renamed files")

    @property
    def is_merge(self) -> bool:
        """Whether this is a merge commit."""
        return len(self.parent_shas) > 1

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "sha": "abc123def456",
                "parent_shas": ["parent123"],
                "author_name": "Jane Doe",
                "author_email": "jane@example.com",
                "timestamp": "2024-01-15T10:30:00Z",
                "message": "Cache bitmaps in adapter",
                "additions": 12,
                "deletions": 3,
                "files_changed": 2,
                "renames": [
                    {"old_file": "src/Adapter.java", "new_file": "src/ListAdapter.java", "similarity": 92}
                ],
            }
        }


class Commit(BaseModel):
    """A commit placed in a branch by the branch reconstructor.

    Commits are immutable: ``ordinal`` and ``branch_ordinal`` are fixed when the
    reconstructor adds the commit to its branch.
    """

    model_config = ConfigDict(frozen=True)

    sha: str = Field(..., description="Full commit SHA hash")
    author_name: str = Field("", description="Author name")
    author_email: str = Field(..., description="Author email")
    timestamp: datetime = Field(..., description="Commit timestamp")
    message: str = Field("", description="Full commit message")
    additions: int = Field(0, description="Number of lines added")
    deletions: int = Field(0, description="Number of lines deleted")
    files_changed: int = Field(0, description="Number of files changed")
    ordinal: int = Field(..., ge=0, description="Position of the commit in its branch")
    branch_ordinal: int = Field(..., description="Ordinal of the branch owning the commit")
    parent_shas: List[str] = Field(default_factory=list, description="Parent hashes, first parent first")
    renames: List[FileRename] = Field(default_factory=list, description="Renamed files")

    @classmethod
    def from_record(cls, record: CommitRecord, ordinal: int, branch_ordinal: int) -> "Commit":
        """Place a raw commit record at a position in a branch."""
        return cls(
            sha=record.sha,
            author_name=record.author_name,
            author_email=record.author_email,
            timestamp=record.timestamp,
            message=record.message,
            additions=record.additions,
            deletions=record.deletions,
            files_changed=record.files_changed,
            ordinal=ordinal,
            branch_ordinal=branch_ordinal,
            parent_shas=list(record.parent_shas),
            renames=list(record.renames),
        )

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parent_shas) > 1

    @property
    def message_summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().split("\n")
        return lines[0] if lines else ""


class CommitSize(BaseModel):
    """Size metrics of a commit snapshot, as exported by the smell detector."""

    sha: str = Field(..., description="Commit SHA hash")
    number_of_classes: Optional[int] = Field(None, description="Classes in the snapshot")
    number_of_methods: Optional[int] = Field(None, description="Methods in the snapshot")
    number_of_views: Optional[int] = Field(None, description="Views in the snapshot")
    number_of_activities: Optional[int] = Field(None, description="Activities in the snapshot")
    number_of_inner_classes: Optional[int] = Field(None, description="Inner classes in the snapshot")
