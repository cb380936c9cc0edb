"""Smell occurrences exported by a static-analysis detector.

The detector writes one CSV per smell type (``MIM.csv``, ``LIC.csv``...), or a
single CSV with a ``type`` column. Each row is one occurrence of a smell in one
commit snapshot.
"""

import csv
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import structlog

from smelltracker.models import CommitSize

logger = structlog.get_logger(__name__)

COMMIT_SIZE_FILE = "commit_size.csv"

# Column aliases found in detector exports
_COLUMN_ALIASES = {
    "type": ("type", "smell_type", "smell"),
    "instance": ("instance", "instance_id", "key"),
    "commit_sha": ("commit_sha", "sha1", "sha", "commit"),
    "file": ("file", "file_path", "path"),
}

_SIZE_COLUMNS = (
    "number_of_classes",
    "number_of_methods",
    "number_of_views",
    "number_of_activities",
    "number_of_inner_classes",
)


class SmellSourceError(ValueError):
    """Raised when the smell export cannot be read."""


class CsvSmellSource:
    """Reads smell occurrences from a detector CSV export.

    Rows are yielded as raw mappings with the keys ``type``, ``instance``,
    ``commit_sha`` and ``file``; validation is left to the consumer so that a
    malformed row only costs that row.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the source.

        Args:
            path: CSV file, or directory of per-type CSV files

        Raises:
            SmellSourceError: If the path does not exist
        """
        self.path = Path(path)
        if not self.path.exists():
            raise SmellSourceError(f"Smell export does not exist: {self.path}")

    def smell_files(self) -> List[Path]:
        """CSV files holding occurrences, in a stable order."""
        if self.path.is_file():
            return [self.path]
        return sorted(
            p for p in self.path.glob("*.csv") if p.name != COMMIT_SIZE_FILE
        )

    def detect_smells(self) -> Iterator[Dict[str, Optional[str]]]:
        """Yield every occurrence of every commit in one pass.

        Yields:
            Raw occurrence mappings

        Raises:
            SmellSourceError: If a file cannot be read or has no usable header
        """
        for smell_file in self.smell_files():
            default_type = smell_file.stem
            count = 0
            for row in self._read_rows(smell_file):
                occurrence = {
                    field: _pick(row, aliases) for field, aliases in _COLUMN_ALIASES.items()
                }
                if not occurrence["type"]:
                    occurrence["type"] = default_type
                count += 1
                yield occurrence
            logger.info("read_smell_file", file=str(smell_file), occurrences=count)

    def commit_sizes(self) -> List[CommitSize]:
        """Read snapshot size metrics, if the export has them.

        Returns:
            List of CommitSize, empty when no ``commit_size.csv`` is present
        """
        size_file = self.path / COMMIT_SIZE_FILE if self.path.is_dir() else None
        if size_file is None or not size_file.exists():
            return []

        sizes = []
        for row in self._read_rows(size_file):
            sha = _pick(row, _COLUMN_ALIASES["commit_sha"])
            if not sha:
                logger.warning("commit_size_without_sha", file=str(size_file), row=row)
                continue
            try:
                values = {column: _to_int(row.get(column)) for column in _SIZE_COLUMNS}
            except ValueError as e:
                logger.warning("malformed_commit_size", sha=sha, error=str(e))
                continue
            sizes.append(CommitSize(sha=sha, **values))
        return sizes

    def _read_rows(self, csv_file: Path) -> Iterator[Dict[str, str]]:
        try:
            with open(csv_file, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f)
                if not reader.fieldnames:
                    raise SmellSourceError(f"Missing CSV header: {csv_file}")
                for row in reader:
                    yield {
                        (key or "").strip().lower(): value
                        for key, value in row.items()
                    }
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SmellSourceError(f"Unable to read smell export {csv_file}: {e}") from e


def _pick(row: Dict[str, str], aliases) -> Optional[str]:
    for alias in aliases:
        value = row.get(alias)
        if value is not None and value.strip():
            return value.strip()
    return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)
