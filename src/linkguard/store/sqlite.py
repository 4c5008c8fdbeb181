"""
SQLite Document Store

This module stores documents as JSON in a single SQLite table keyed by
``(tbl, id)``. All database work runs on one dedicated worker thread that owns
the connection, so an atomic batch is a plain ``BEGIN IMMEDIATE ... COMMIT``
transaction that is rolled back on any failure.
"""

import asyncio
import json
import logging
import os
import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from linkguard.store.base import BaseDocumentStore
from linkguard.store.statements import Document, Statement

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteConnection:
    """
    Owns the SQLite connection and the thread it is used from.

    Every call is funnelled through a single-worker executor so the
    connection is never shared between threads.
    """

    def __init__(self, db_path: str, connection_timeout: float = 30.0):
        """
        Initialize the SQLite connection manager.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``
            connection_timeout: Seconds to wait on a locked database
        """
        self.db_path = db_path
        self.connection_timeout = connection_timeout
        self._executor: Optional[ThreadPoolExecutor] = None
        self._conn: Optional[sqlite3.Connection] = None

    def _connect(self) -> None:
        if self.db_path != ":memory:" and os.path.dirname(self.db_path):
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

        self._conn = sqlite3.connect(
            self.db_path,
            timeout=self.connection_timeout,
            isolation_level=None,  # transactions are managed explicitly
        )
        self._conn.row_factory = sqlite3.Row
        logger.debug(f"Created SQLite connection to {self.db_path}")

    async def start(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="linkguard-sqlite")
        await self.execute_async(self._connect)

    async def execute_async(self, func: Callable[..., T], *args: Any) -> T:
        """Run *func* on the connection thread."""
        if self._executor is None:
            raise RuntimeError("SQLite connection has not been started")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, lambda: func(*args))

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Failed to create SQLite connection")
        return self._conn

    async def close(self) -> None:
        if self._executor is None:
            return

        def _close() -> None:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"Closed SQLite connection to {self.db_path}")

        try:
            await self.execute_async(_close)
        finally:
            self._executor.shutdown(wait=True)
            self._executor = None


class SQLiteDocumentStore(BaseDocumentStore):
    """
    SQLite implementation of the document store contract.

    Config:
        database_path: database file (default ``:memory:``)
        timeout_seconds: busy timeout of the connection, never longer than
            the operation policy timeout
    """

    store_type = "sqlite"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        busy_timeout = float(self.config.get("timeout_seconds", 30.0))
        policy_timeout = self.operation_policy.timeout_seconds
        if policy_timeout and policy_timeout > 0:
            busy_timeout = min(busy_timeout, policy_timeout)
        self.connection = SQLiteConnection(
            self.config.get("database_path", ":memory:"),
            connection_timeout=busy_timeout,
        )

    async def _open(self) -> None:
        await self.connection.start()
        await self.connection.execute_async(self._initialize_schema)

    async def _close(self) -> None:
        await self.connection.close()

    def _initialize_schema(self) -> None:
        conn = self.connection.get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                tbl TEXT NOT NULL,
                id TEXT NOT NULL,
                body TEXT NOT NULL,
                PRIMARY KEY (tbl, id)
            )
        """)

    def _select(self, table: str, record_id: str) -> Optional[Document]:
        conn = self.connection.get_connection()
        row = conn.execute(
            "SELECT body FROM documents WHERE tbl = ? AND id = ?", (table, record_id)
        ).fetchone()
        return json.loads(row["body"]) if row is not None else None

    def _select_many(self, table: str, ids: List[str]) -> List[Document]:
        documents = []
        for record_id in ids:
            document = self._select(table, record_id)
            if document is not None:
                documents.append(document)
        return documents

    @staticmethod
    def _check_deadline(deadline: Optional[float], statements: List[Statement]) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise TimeoutError(f"Atomic batch of {len(statements)} statements missed its deadline")

    def _write_batch(self, statements: List[Statement], deadline: Optional[float] = None) -> None:
        self._check_deadline(deadline, statements)
        conn = self.connection.get_connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            staged: Dict[Tuple[str, str], Optional[Document]] = {}
            for statement in statements:
                key = (statement.table, statement.id)
                if key not in staged:
                    staged[key] = self._select(statement.table, statement.id)
                staged[key] = statement.apply(staged[key])

            for (table, record_id), document in staged.items():
                conn.execute(
                    "INSERT OR REPLACE INTO documents (tbl, id, body) VALUES (?, ?, ?)",
                    (table, record_id, json.dumps(document)),
                )
            self._check_deadline(deadline, statements)
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise

    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        return await self.connection.execute_async(self._select, table, record_id)

    async def _read_documents(self, table: str, ids: List[str]) -> List[Document]:
        return await self.connection.execute_async(self._select_many, table, ids)

    async def _apply_batch(self, statements: List[Statement], deadline: Optional[float] = None) -> None:
        await self.connection.execute_async(self._write_batch, statements, deadline)
