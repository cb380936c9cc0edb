"""Configuration models."""

from datetime import timedelta
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositoryConfig(BaseModel):
    """Configuration for a Git repository to mine."""

    repo_path: Path = Field(..., description="Path to the Git repository")
    included_extensions: List[str] = Field(
        default_factory=lambda: [".java", ".kt"],
        description="Extensions of renamed files to record (empty list records all)",
    )
    excluded_paths: List[str] = Field(
        default_factory=lambda: [".git/", "build/"],
        description="Paths to exclude from rename records",
    )
    rename_similarity: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Minimum similarity (percent) for git to report a rename",
    )
    all_refs: bool = Field(
        False, description="List commits of every ref instead of HEAD only"
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "repo_path": "/path/to/repo",
                "included_extensions": [".java"],
                "excluded_paths": [".git/"],
                "rename_similarity": 50,
                "all_refs": False,
            }
        }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SMELLTRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Processing Settings
    threads: int = Field(1, ge=1, description="Projects analysed in parallel")
    analysis_timeout_hours: float = Field(24.0, gt=0, description="Upper bound for a batch run")
    rename_similarity: int = Field(50, ge=0, le=100)
    all_refs: bool = False

    # Logging
    log_level: str = "INFO"

    @property
    def analysis_timeout(self) -> timedelta:
        return timedelta(hours=self.analysis_timeout_hours)

    def repository_config(self, repo_path: Path) -> RepositoryConfig:
        """Build the repository configuration for one project."""
        return RepositoryConfig(
            repo_path=repo_path,
            rename_similarity=self.rename_similarity,
            all_refs=self.all_refs,
        )
