"""Additive SQLite schema migrations for the post store.

Migrations only ever create tables or add columns. Existing columns are
never dropped or retyped, so a database written by any earlier version
keeps working.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from hypeseeker.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 2


@dataclass(frozen=True)
class Migration:
    """A forward-only schema change.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: Idempotent SQL script to run.
        add_columns: ``(table, column, type)`` triples added when missing.
    """

    version: int
    description: str
    up_sql: str = ""
    add_columns: tuple[tuple[str, str, str], ...] = field(default_factory=tuple)


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Posts table keyed by (id, source)",
        up_sql="""
CREATE TABLE IF NOT EXISTS posts (
    id TEXT NOT NULL,
    source TEXT NOT NULL,
    username TEXT,
    name TEXT,
    stars INTEGER,
    description TEXT,
    url TEXT,
    created_at TEXT,
    relevance_score REAL,
    matched_interest TEXT,
    summary TEXT,
    relevance TEXT,
    scored_at TEXT,
    inserted_at TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (id, source)
);
CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at);
CREATE INDEX IF NOT EXISTS idx_posts_relevance ON posts(relevance_score DESC);
CREATE INDEX IF NOT EXISTS idx_posts_source ON posts(source);
""",
    ),
    Migration(
        version=2,
        description="Per-channel sent markers for telegram and slack",
        add_columns=(
            ("posts", "sent_to_telegram", "TEXT"),
            ("posts", "sent_to_slack", "TEXT"),
        ),
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations newer than the current version, in order."""
    return [m for m in MIGRATIONS if m.version > current_version]


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Return the column names of a table."""
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cursor.fetchall()}


def ensure_columns(
    conn: sqlite3.Connection,
    columns: tuple[tuple[str, str, str], ...],
) -> list[str]:
    """Add each ``(table, column, type)`` that does not exist yet.

    Column names must be validated by the caller; they are interpolated.

    Returns:
        Names of the columns that were added.
    """
    added: list[str] = []
    existing: dict[str, set[str]] = {}
    for table, column, column_type in columns:
        if table not in existing:
            existing[table] = table_columns(conn, table)
        if column in existing[table]:
            continue
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
        existing[table].add(column)
        added.append(column)
    return added


class MigrationManager:
    """Applies pending migrations and tracks the schema version."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def get_current_version(self) -> int:
        """Get the current schema version (0 for a fresh database)."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            Versions that were applied.

        Raises:
            MigrationError: If a migration fails; it is rolled back.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.debug("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []
        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                if migration.up_sql:
                    self._conn.executescript(migration.up_sql)
                added = ensure_columns(self._conn, migration.add_columns)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                self._log.error(
                    "migration_failed", version=migration.version, error=str(exc)
                )
                raise MigrationError(migration.version, str(exc)) from exc

            applied.append(migration.version)
            self._log.info(
                "migration_applied", version=migration.version, columns_added=added
            )

        return applied
