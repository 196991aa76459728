"""
SQLite Schema Management Component

This module creates the tables, indices and constraints for the concept pool,
generated connections, critic evaluations and human ratings.
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS concepts (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        description TEXT,
        category TEXT NOT NULL DEFAULT 'general',
        usage_count INTEGER NOT NULL DEFAULT 0 CHECK (usage_count >= 0),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS connections (
        id TEXT PRIMARY KEY,
        concept_a_id TEXT NOT NULL REFERENCES concepts(id) ON DELETE CASCADE,
        concept_b_id TEXT NOT NULL REFERENCES concepts(id) ON DELETE CASCADE,
        connection_text TEXT NOT NULL,
        explanation TEXT NOT NULL,
        generated_at TEXT NOT NULL,
        prompt_version TEXT NOT NULL DEFAULT 'v1.0',
        model_used TEXT,
        status TEXT NOT NULL DEFAULT 'unrated' CHECK (status IN ('unrated', 'rated')),
        rated_at TEXT,
        CHECK (concept_a_id <> concept_b_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS critic_evaluations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        connection_id TEXT NOT NULL REFERENCES connections(id) ON DELETE CASCADE,
        critic_run TEXT NOT NULL,
        novelty REAL NOT NULL CHECK (novelty BETWEEN 1 AND 10),
        coherence REAL NOT NULL CHECK (coherence BETWEEN 1 AND 10),
        usefulness REAL NOT NULL CHECK (usefulness BETWEEN 1 AND 10),
        total REAL NOT NULL,
        degraded INTEGER NOT NULL DEFAULT 0,
        evaluated_at TEXT NOT NULL,
        UNIQUE (connection_id, critic_run)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ratings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        connection_id TEXT NOT NULL UNIQUE REFERENCES connections(id) ON DELETE CASCADE,
        rating TEXT NOT NULL CHECK (rating IN ('bad', 'good', 'wow')),
        notes TEXT,
        rated_at TEXT NOT NULL
    )
    """,
)

INDEX_STATEMENTS = (
    # One connection per unordered pair, whichever order it was inserted in.
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_connections_unordered_pair
        ON connections (min(concept_a_id, concept_b_id), max(concept_a_id, concept_b_id))
    """,
    "CREATE INDEX IF NOT EXISTS ix_concepts_usage ON concepts (usage_count, name)",
    "CREATE INDEX IF NOT EXISTS ix_connections_status ON connections (status)",
    "CREATE INDEX IF NOT EXISTS ix_connections_generated_at ON connections (generated_at)",
    "CREATE INDEX IF NOT EXISTS ix_critic_evaluations_connection ON critic_evaluations (connection_id)",
)


class SQLiteSchema:
    """Creates and checks the database schema."""

    def initialize_schema(self, conn: sqlite3.Connection) -> None:
        """Create all tables and indices if they do not exist."""
        conn.execute("BEGIN")
        try:
            for statement in SCHEMA_STATEMENTS + INDEX_STATEMENTS:
                conn.execute(statement)
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
        logger.debug("SQLite schema initialized")

    def table_names(self, conn: sqlite3.Connection) -> set[str]:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        return {row["name"] for row in rows}


__all__ = ["INDEX_STATEMENTS", "SCHEMA_STATEMENTS", "SQLiteSchema"]
