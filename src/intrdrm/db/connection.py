"""
SQLite Connection Management Component

This module provides a class for managing SQLite database connections.
Every worker thread of the default executor gets its own connection; all of
them are tracked so :meth:`SQLiteConnection.close` can release them together.
"""

import asyncio
import logging
import os
import sqlite3
import threading
from typing import Any, Callable, TypeVar

from intrdrm.core.exceptions import DatastoreTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SQLiteConnection:
    """
    Manages SQLite database connections with async support.

    Blocking sqlite3 calls run in the event loop's default executor and every
    round trip is bounded by ``operation_timeout``.
    """

    def __init__(
        self,
        db_path: str,
        operation_timeout: float = 10.0,
        busy_timeout: float = 30.0,
    ):
        """
        Initialize the SQLite connection manager.

        Args:
            db_path: Path to the SQLite database file
            operation_timeout: Upper bound in seconds for one datastore round trip
            busy_timeout: How long sqlite waits on a locked database
        """
        if db_path == ":memory:":
            raise ValueError("SQLiteConnection needs a file path; in-memory databases are per-connection")
        self.db_path = db_path
        self.operation_timeout = operation_timeout
        self.busy_timeout = busy_timeout
        self._thread_local = threading.local()
        self._all_connections: list[sqlite3.Connection] = []
        self._registry_lock = threading.Lock()

    def _ensure_connection(self) -> sqlite3.Connection:
        """Create the connection for the current thread if it does not exist yet."""
        conn = getattr(self._thread_local, "conn", None)
        if conn is None:
            if os.path.dirname(self.db_path):
                os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

            conn = sqlite3.connect(
                self.db_path,
                timeout=self.busy_timeout,
                isolation_level=None,  # autocommit; transactions are explicit
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._thread_local.conn = conn
            with self._registry_lock:
                self._all_connections.append(conn)

            logger.debug("Created new SQLite connection to %s for thread %s", self.db_path, threading.get_ident())
        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Return the SQLite connection for the current thread."""
        return self._ensure_connection()

    async def execute_async(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        """
        Run ``func(connection, *args)`` in the executor.

        Args:
            operation: Name used in timeout errors and logs
            func: Blocking callable receiving the thread's connection first

        Raises:
            DatastoreTimeoutError: If the call exceeds ``operation_timeout``
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, lambda: func(self._ensure_connection(), *args))
        try:
            return await asyncio.wait_for(future, timeout=self.operation_timeout)
        except TimeoutError as e:
            raise DatastoreTimeoutError(operation, self.operation_timeout) from e

    def close(self) -> None:
        """Close every connection opened by this manager."""
        with self._registry_lock:
            connections, self._all_connections = self._all_connections, []
        for conn in connections:
            conn.close()
        self._thread_local = threading.local()
        if connections:
            logger.debug("Closed %d SQLite connection(s) to %s", len(connections), self.db_path)


__all__ = ["SQLiteConnection"]
