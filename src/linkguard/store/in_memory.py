"""
In-Memory Document Store

This module provides a document store that keeps every table in process
memory. Documents are deep-copied on the way in and out so callers never share
state with the store. Atomic batches are staged against copies under a lock
and committed only when every statement applied cleanly.
"""

import asyncio
import copy
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from linkguard.store.base import BaseDocumentStore
from linkguard.store.statements import Document, Statement

logger = logging.getLogger(__name__)


class InMemoryTables:
    """
    Table storage for the in-memory store.

    Holds ``table -> id -> document`` and the lock that serializes batches.
    The accessors here do no locking themselves.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Document]] = {}
        self.lock = asyncio.Lock()

    def get(self, table: str, record_id: str) -> Optional[Document]:
        document = self._data.get(table, {}).get(record_id)
        if document is None:
            return None
        return copy.deepcopy(document)

    def set(self, table: str, record_id: str, document: Document) -> None:
        self._data.setdefault(table, {})[record_id] = copy.deepcopy(document)

    def snapshot(self) -> Dict[str, Dict[str, Document]]:
        return copy.deepcopy(self._data)

    def clear(self) -> None:
        self._data.clear()


class InMemoryDocumentStore(BaseDocumentStore):
    """
    In-process implementation of the document store contract.

    Suitable for tests and local runs. Contents are lost on close unless
    ``config["keep_on_close"]`` is set.
    """

    store_type = "memory"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.tables = InMemoryTables()

    async def _open(self) -> None:
        logger.debug("Initialized in-memory document store")

    async def _close(self) -> None:
        if not self.config.get("keep_on_close"):
            self.tables.clear()

    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        return self.tables.get(table, record_id)

    async def _read_documents(self, table: str, ids: List[str]) -> List[Document]:
        documents = []
        for record_id in ids:
            document = self.tables.get(table, record_id)
            if document is not None:
                documents.append(document)
        return documents

    async def _apply_batch(self, statements: List[Statement], deadline: Optional[float] = None) -> None:
        async with self.tables.lock:
            staged: Dict[Tuple[str, str], Optional[Document]] = {}
            for statement in statements:
                key = (statement.table, statement.id)
                if key not in staged:
                    staged[key] = self.tables.get(statement.table, statement.id)
                staged[key] = statement.apply(staged[key])

            if deadline is not None and time.monotonic() > deadline:
                raise TimeoutError(f"Atomic batch of {len(statements)} statements missed its deadline")
            for (table, record_id), document in staged.items():
                self.tables.set(table, record_id, document)

    def seed(self, table: str, documents: Iterable[Document]) -> None:
        """Load raw documents directly, bypassing statements (fixtures and imports)."""
        for document in documents:
            self.tables.set(table, document["id"], document)

    def snapshot(self) -> Dict[str, Dict[str, Document]]:
        """Return a deep copy of every table."""
        return self.tables.snapshot()
