"""Event database configuration."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_DATABASE = ":memory:"


class DatabaseConfig(BaseSettings):
    """Configuration for the smell event database (SQLite).

    Settings can be loaded from environment variables or .env file.
    All settings are prefixed with SMELLTRACKER_DB_ (e.g., SMELLTRACKER_DB_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="SMELLTRACKER_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    path: Path = Field(
        default=Path("./.smelltracker/smells.db"),
        description="SQLite database file (':memory:' for a throwaway database)",
    )

    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a locked database",
    )

    pool_size: int = Field(
        default=4,
        ge=1,
        description="Maximum number of pooled connections",
    )

    journal_mode: str = Field(
        default="WAL",
        description="SQLite journal mode (WAL lets workers read while one writes)",
    )

    @property
    def in_memory(self) -> bool:
        return str(self.path) == MEMORY_DATABASE

    def ensure_parent_dir(self) -> None:
        """Ensure the database directory exists."""
        if not self.in_memory:
            self.path.parent.mkdir(parents=True, exist_ok=True)
