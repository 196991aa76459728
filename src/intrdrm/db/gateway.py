"""
Datastore gateway.

:class:`DatastoreGateway` is the narrow interface the pipeline and the health
monitor use to reach persistent state. :class:`SQLiteGateway` implements it on
the standard-library ``sqlite3`` driver.

Guarantees relied on by callers:

* ``increment_usage`` is a single atomic ``UPDATE``, so concurrent increments
  are never lost;
* ``insert_connection`` is backed by a unique index over the unordered pair,
  so two racing inserts for the same pair (in either order) cannot both win;
* ``insert_critic_evaluations`` stores all rows or none.
"""

from __future__ import annotations

import abc
import logging
import sqlite3
import uuid
from datetime import UTC, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, TypeVar

from intrdrm.core.exceptions import (
    ConceptNotFoundError,
    DuplicateConnectionError,
    IntrdrmError,
    PersistenceError,
)
from intrdrm.core.models import (
    Concept,
    Connection,
    ConnectionStatus,
    CriticEvaluation,
    CriticRun,
    CriticScores,
)
from intrdrm.db.connection import SQLiteConnection
from intrdrm.db.schema import SQLiteSchema

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class DatastoreGateway(abc.ABC):
    """Async access to concepts, connections and critic evaluations."""

    async def initialize(self) -> None:
        """Prepare the store (create schema, open connections)."""

    @abc.abstractmethod
    async def get_least_used_concepts(self, limit: int) -> list[Concept]:
        """Return up to ``limit`` concepts ordered by ascending usage."""

    @abc.abstractmethod
    async def find_connection_by_pair(self, concept_a_id: str, concept_b_id: str) -> Optional[Connection]:
        """Return the connection for the pair in either ordering, if any."""

    @abc.abstractmethod
    async def insert_connection(
        self,
        concept_a_id: str,
        concept_b_id: str,
        text: str,
        explanation: str,
        prompt_version: str = "v1.0",
        model_used: Optional[str] = None,
    ) -> Connection:
        """Store a new unrated connection."""

    @abc.abstractmethod
    async def insert_critic_evaluations(self, evaluations: Sequence[CriticEvaluation]) -> None:
        """Store all evaluations atomically."""

    @abc.abstractmethod
    async def increment_usage(self, concept_id: str) -> None:
        """Atomically add one to a concept's usage count."""

    @abc.abstractmethod
    async def count_concepts(self) -> int:
        ...

    @abc.abstractmethod
    async def count_connections(self, status: Optional[ConnectionStatus] = None) -> int:
        ...

    @abc.abstractmethod
    async def latest_generation_time(self) -> Optional[datetime]:
        ...

    @abc.abstractmethod
    async def critic_score_averages(self) -> Optional[CriticScores]:
        """Mean novelty/coherence/usefulness over all evaluations, or None."""

    @abc.abstractmethod
    async def add_concepts(self, concepts: Iterable[Mapping[str, Any]]) -> int:
        """Insert concepts whose names are not stored yet; return how many were added."""

    @abc.abstractmethod
    async def ping(self) -> None:
        """Raise if the store cannot answer a trivial query."""

    async def close(self) -> None:
        """Release resources."""


class SQLiteGateway(DatastoreGateway):
    """DatastoreGateway backed by a SQLite database file."""

    def __init__(self, db_path: str, timeout: float = 10.0):
        self.connection_manager = SQLiteConnection(db_path, operation_timeout=timeout)
        self.schema = SQLiteSchema()
        self._initialized = False

    @property
    def db_path(self) -> str:
        return self.connection_manager.db_path

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        if not self._initialized:
            await self.initialize()
        try:
            return await self.connection_manager.execute_async(operation, func, *args)
        except IntrdrmError:
            raise
        except sqlite3.Error as e:
            raise PersistenceError(operation, cause=e) from e

    async def initialize(self) -> None:
        if self._initialized:
            return
        try:
            await self.connection_manager.execute_async("initialize", self.schema.initialize_schema)
        except sqlite3.Error as e:
            raise PersistenceError("initialize", cause=e) from e
        self._initialized = True
        logger.info("SQLite datastore ready at %s", self.db_path)

    # Concepts

    @staticmethod
    def _row_to_concept(row: sqlite3.Row) -> Concept:
        return Concept(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            usage_count=row["usage_count"],
            description=row["description"],
        )

    async def get_least_used_concepts(self, limit: int) -> list[Concept]:
        def query(conn: sqlite3.Connection) -> list[Concept]:
            rows = conn.execute(
                "SELECT * FROM concepts ORDER BY usage_count ASC, created_at ASC, name ASC LIMIT ?",
                (limit,),
            ).fetchall()
            return [self._row_to_concept(row) for row in rows]

        return await self._run("get_least_used_concepts", query)

    async def get_concept(self, concept_id: str) -> Optional[Concept]:
        def query(conn: sqlite3.Connection) -> Optional[Concept]:
            row = conn.execute("SELECT * FROM concepts WHERE id = ?", (concept_id,)).fetchone()
            return self._row_to_concept(row) if row else None

        return await self._run("get_concept", query)

    async def increment_usage(self, concept_id: str) -> None:
        def update(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                "UPDATE concepts SET usage_count = usage_count + 1, updated_at = ? WHERE id = ?",
                (_now(), concept_id),
            )
            return cursor.rowcount

        if await self._run("increment_usage", update) == 0:
            raise ConceptNotFoundError(concept_id)

    async def add_concepts(self, concepts: Iterable[Mapping[str, Any]]) -> int:
        rows = []
        for concept in concepts:
            timestamp = _now()
            rows.append((
                str(uuid.uuid4()),
                concept["name"],
                concept.get("description"),
                concept.get("category", "general"),
                timestamp,
                timestamp,
            ))

        def insert(conn: sqlite3.Connection) -> int:
            before = conn.total_changes
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.executemany(
                    "INSERT OR IGNORE INTO concepts (id, name, description, category, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    rows,
                )
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            return conn.total_changes - before

        added = await self._run("add_concepts", insert)
        logger.info("Added %d new concept(s); %d already present", added, len(rows) - added)
        return added

    async def count_concepts(self) -> int:
        return await self._run(
            "count_concepts",
            lambda conn: conn.execute("SELECT COUNT(*) FROM concepts").fetchone()[0],
        )

    # Connections

    @staticmethod
    def _row_to_connection(row: sqlite3.Row) -> Connection:
        return Connection(
            id=row["id"],
            concept_a_id=row["concept_a_id"],
            concept_b_id=row["concept_b_id"],
            text=row["connection_text"],
            explanation=row["explanation"],
            status=ConnectionStatus(row["status"]),
            generated_at=_parse_timestamp(row["generated_at"]),
            prompt_version=row["prompt_version"],
            model_used=row["model_used"],
        )

    async def find_connection_by_pair(self, concept_a_id: str, concept_b_id: str) -> Optional[Connection]:
        def query(conn: sqlite3.Connection) -> Optional[Connection]:
            row = conn.execute(
                "SELECT * FROM connections "
                "WHERE (concept_a_id = ? AND concept_b_id = ?) OR (concept_a_id = ? AND concept_b_id = ?) "
                "LIMIT 1",
                (concept_a_id, concept_b_id, concept_b_id, concept_a_id),
            ).fetchone()
            return self._row_to_connection(row) if row else None

        return await self._run("find_connection_by_pair", query)

    async def insert_connection(
        self,
        concept_a_id: str,
        concept_b_id: str,
        text: str,
        explanation: str,
        prompt_version: str = "v1.0",
        model_used: Optional[str] = None,
    ) -> Connection:
        connection = Connection(
            id=str(uuid.uuid4()),
            concept_a_id=concept_a_id,
            concept_b_id=concept_b_id,
            text=text,
            explanation=explanation,
            prompt_version=prompt_version,
            model_used=model_used,
        )

        def insert(conn: sqlite3.Connection) -> None:
            try:
                conn.execute(
                    "INSERT INTO connections (id, concept_a_id, concept_b_id, connection_text, explanation, "
                    "generated_at, prompt_version, model_used, status) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        connection.id,
                        connection.concept_a_id,
                        connection.concept_b_id,
                        connection.text,
                        connection.explanation,
                        connection.generated_at.isoformat(),
                        connection.prompt_version,
                        connection.model_used,
                        connection.status.value,
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e).upper():
                    raise DuplicateConnectionError(concept_a_id, concept_b_id, cause=e) from e
                raise PersistenceError("insert_connection", cause=e) from e

        await self._run("insert_connection", insert)
        logger.debug("Stored connection %s", connection.id)
        return connection

    async def count_connections(self, status: Optional[ConnectionStatus] = None) -> int:
        def query(conn: sqlite3.Connection) -> int:
            if status is None:
                return conn.execute("SELECT COUNT(*) FROM connections").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM connections WHERE status = ?", (ConnectionStatus(status).value,)
            ).fetchone()[0]

        return await self._run("count_connections", query)

    async def latest_generation_time(self) -> Optional[datetime]:
        value = await self._run(
            "latest_generation_time",
            lambda conn: conn.execute("SELECT MAX(generated_at) FROM connections").fetchone()[0],
        )
        return _parse_timestamp(value)

    async def recent_connections(self, limit: int = 5) -> list[Connection]:
        def query(conn: sqlite3.Connection) -> list[Connection]:
            rows = conn.execute(
                "SELECT * FROM connections ORDER BY generated_at DESC LIMIT ?", (limit,)
            ).fetchall()
            return [self._row_to_connection(row) for row in rows]

        return await self._run("recent_connections", query)

    # Critic evaluations

    async def insert_critic_evaluations(self, evaluations: Sequence[CriticEvaluation]) -> None:
        rows = [
            (
                evaluation.connection_id,
                evaluation.critic_run.value,
                evaluation.scores.novelty,
                evaluation.scores.coherence,
                evaluation.scores.usefulness,
                evaluation.scores.total,
                int(evaluation.degraded),
                evaluation.evaluated_at.isoformat(),
            )
            for evaluation in evaluations
        ]

        def insert(conn: sqlite3.Connection) -> None:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.executemany(
                    "INSERT INTO critic_evaluations (connection_id, critic_run, novelty, coherence, usefulness, "
                    "total, degraded, evaluated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

        await self._run("insert_critic_evaluations", insert)

    async def get_critic_evaluations(self, connection_id: str) -> list[CriticEvaluation]:
        def query(conn: sqlite3.Connection) -> list[CriticEvaluation]:
            rows = conn.execute(
                "SELECT * FROM critic_evaluations WHERE connection_id = ? ORDER BY critic_run",
                (connection_id,),
            ).fetchall()
            return [
                CriticEvaluation(
                    connection_id=row["connection_id"],
                    critic_run=CriticRun(row["critic_run"]),
                    scores=CriticScores(
                        novelty=row["novelty"], coherence=row["coherence"], usefulness=row["usefulness"]
                    ),
                    degraded=bool(row["degraded"]),
                    evaluated_at=_parse_timestamp(row["evaluated_at"]),
                )
                for row in rows
            ]

        return await self._run("get_critic_evaluations", query)

    async def critic_score_averages(self) -> Optional[CriticScores]:
        def query(conn: sqlite3.Connection) -> Optional[CriticScores]:
            row = conn.execute(
                "SELECT COUNT(*) AS n, AVG(novelty) AS novelty, AVG(coherence) AS coherence, "
                "AVG(usefulness) AS usefulness FROM critic_evaluations"
            ).fetchone()
            if not row["n"]:
                return None
            return CriticScores(
                novelty=row["novelty"], coherence=row["coherence"], usefulness=row["usefulness"]
            )

        return await self._run("critic_score_averages", query)

    async def ping(self) -> None:
        await self._run("ping", lambda conn: conn.execute("SELECT COUNT(*) FROM concepts").fetchone())

    async def close(self) -> None:
        self.connection_manager.close()
        self._initialized = False


__all__ = ["DatastoreGateway", "SQLiteGateway"]
