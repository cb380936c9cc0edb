"""Relational schema of the smell event database.

Every table carries a uniqueness constraint matching its logical identity so
that inserts can use ``ON CONFLICT DO NOTHING`` and re-running an analysis on
overlapping history never duplicates rows.
"""

from typing import List

from smelltracker.models import SmellCategory

SCHEMA_VERSION = 1

PROJECT_TABLE = """
CREATE TABLE IF NOT EXISTS project (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    url TEXT
)
"""

DEVELOPER_TABLE = """
CREATE TABLE IF NOT EXISTS developer (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE
)
"""

PROJECT_DEVELOPER_TABLE = """
CREATE TABLE IF NOT EXISTS project_developer (
    developer_id INTEGER NOT NULL REFERENCES developer (id),
    project_id INTEGER NOT NULL REFERENCES project (id),
    PRIMARY KEY (developer_id, project_id)
)
"""

COMMIT_TABLE = """
CREATE TABLE IF NOT EXISTS commit_entry (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES project (id),
    developer_id INTEGER REFERENCES developer (id),
    sha1 TEXT NOT NULL,
    ordinal INTEGER NOT NULL,
    branch_ordinal INTEGER NOT NULL,
    date TEXT NOT NULL,
    additions INTEGER NOT NULL DEFAULT 0,
    deletions INTEGER NOT NULL DEFAULT 0,
    files_changed INTEGER NOT NULL DEFAULT 0,
    message TEXT,
    number_of_classes INTEGER,
    number_of_methods INTEGER,
    number_of_views INTEGER,
    number_of_activities INTEGER,
    number_of_inner_classes INTEGER,
    UNIQUE (project_id, sha1)
)
"""

FILE_RENAME_TABLE = """
CREATE TABLE IF NOT EXISTS file_rename (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES project (id),
    commit_id INTEGER NOT NULL REFERENCES commit_entry (id),
    old_file TEXT NOT NULL,
    new_file TEXT NOT NULL,
    similarity INTEGER NOT NULL,
    UNIQUE (project_id, commit_id, old_file)
)
"""

BRANCH_TABLE = """
CREATE TABLE IF NOT EXISTS branch (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES project (id),
    ordinal INTEGER NOT NULL,
    parent_commit_id INTEGER REFERENCES commit_entry (id),
    merged_into_id INTEGER REFERENCES commit_entry (id),
    UNIQUE (project_id, ordinal)
)
"""

BRANCH_COMMIT_TABLE = """
CREATE TABLE IF NOT EXISTS branch_commit (
    branch_id INTEGER NOT NULL REFERENCES branch (id),
    commit_id INTEGER NOT NULL REFERENCES commit_entry (id),
    ordinal INTEGER NOT NULL,
    PRIMARY KEY (branch_id, commit_id)
)
"""

SMELL_TABLE = """
CREATE TABLE IF NOT EXISTS smell (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES project (id),
    instance TEXT NOT NULL,
    type TEXT NOT NULL,
    file TEXT,
    renamed_from INTEGER REFERENCES smell (id),
    UNIQUE (project_id, instance, type)
)
"""

EVENT_TABLE_TEMPLATE = """
CREATE TABLE IF NOT EXISTS {table} (
    smell_id INTEGER NOT NULL REFERENCES smell (id),
    commit_id INTEGER NOT NULL REFERENCES commit_entry (id),
    PRIMARY KEY (smell_id, commit_id)
)
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_commit_sha ON commit_entry (sha1)",
    "CREATE INDEX IF NOT EXISTS idx_smell_type ON smell (project_id, type)",
]


def schema_statements() -> List[str]:
    """DDL statements creating the whole schema, in dependency order."""
    statements = [
        PROJECT_TABLE,
        DEVELOPER_TABLE,
        PROJECT_DEVELOPER_TABLE,
        COMMIT_TABLE,
        FILE_RENAME_TABLE,
        BRANCH_TABLE,
        BRANCH_COMMIT_TABLE,
        SMELL_TABLE,
    ]
    statements.extend(EVENT_TABLE_TEMPLATE.format(table=category.table) for category in SmellCategory)
    statements.extend(INDEXES)
    return statements
