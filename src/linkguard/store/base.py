"""
Base Document Store

This module provides the BaseDocumentStore class, the contract every store
adapter implements for the relationship engines:

    get(table, id) -> Record | None
    get_all(table, ids) -> [Record]
    insert(table, data) / update(table, id, patch) / update_all(table, ids, patch)
    run_atomic_batch([Statement])  (all-or-nothing)

The base class owns the lifecycle (open/close), the per-call timeout and
retry policy, and the wrapping of adapter failures into StoreError.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from linkguard.exceptions import ConfigurationError, RecordNotFoundError, StoreError
from linkguard.models.record import Record
from linkguard.store.policies import DEFAULT_OPERATION_POLICY, StoreOperationPolicy
from linkguard.store.statements import Document, InsertRecord, MergePatch, Statement

logger = logging.getLogger(__name__)


_NonRetryableExceptions = (ConfigurationError, RecordNotFoundError)
_ResultT = TypeVar("_ResultT")


class BaseDocumentStore(abc.ABC):
    """
    Base class for all document stores.

    Subclasses implement the underscore-prefixed primitives for their storage
    technology. Callers own the lifecycle: ``open()`` before use, ``close()``
    when done, or ``async with store:``.
    """

    store_type = "base"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the store.

        Args:
            config: Store-specific configuration; an ``operation_policy``
                entry configures timeouts and retries
        """
        self.config = dict(config or {})
        policy_config = self.config.pop("operation_policy", None)
        self.operation_policy: StoreOperationPolicy = StoreOperationPolicy.from_mapping(
            policy_config,
            fallback=DEFAULT_OPERATION_POLICY,
        )
        self.opened = False

    async def open(self) -> None:
        """
        Open the store.

        Raises:
            StoreError: If the store cannot be opened
        """
        if self.opened:
            return
        try:
            await self._open()
            self.opened = True
            logger.info(f"{self.__class__.__name__} opened successfully")
        except Exception as e:
            logger.exception(f"Failed to open {self.__class__.__name__}")
            raise StoreError(
                f"Failed to open document store: {str(e)}",
                operation="open",
                store_type=self.store_type,
            ) from e

    async def close(self) -> None:
        """Close the store and release its resources."""
        if not self.opened:
            logger.warning(f"{self.__class__.__name__} close called but not opened")
            return
        try:
            await self._close()
            logger.info(f"{self.__class__.__name__} closed successfully")
        except Exception as e:
            logger.exception(f"Failed to close {self.__class__.__name__}")
            raise StoreError(
                f"Failed to close document store: {str(e)}",
                operation="close",
                store_type=self.store_type,
            ) from e
        finally:
            self.opened = False

    async def __aenter__(self) -> "BaseDocumentStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def configure_operation_policy(self, policy: Optional[StoreOperationPolicy]) -> None:
        """Configure timeout and retry behaviour for store operations."""
        self.operation_policy = policy or DEFAULT_OPERATION_POLICY

    def _ensure_opened(self, operation: str) -> None:
        if not self.opened:
            raise StoreError(
                f"{self.__class__.__name__} is not open",
                operation=operation,
                store_type=self.store_type,
            )

    async def _execute_with_policy(
        self,
        operation: str,
        action: Callable[[], Awaitable[_ResultT]],
        *,
        retry: bool = True,
        bounded: bool = True,
    ) -> _ResultT:
        """
        Execute *action* under the configured timeout and, for reads, retry rules.

        With ``bounded=False`` the action is awaited to completion and must
        enforce the timeout itself by raising ``TimeoutError``.
        """

        self._ensure_opened(operation)
        policy = self.operation_policy or DEFAULT_OPERATION_POLICY
        attempts = policy.retry.normalized_attempts() if retry else 1
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt < attempts:
            attempt += 1
            try:
                coroutine = action()
                if bounded and policy.timeout_seconds and policy.timeout_seconds > 0:
                    return await asyncio.wait_for(coroutine, timeout=policy.timeout_seconds)
                return await coroutine
            except _NonRetryableExceptions:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Store %s operation %s attempt %d/%d failed: %s",
                    self.__class__.__name__,
                    operation,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt >= attempts:
                    break

                delay = policy.retry.compute_delay(attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

        if isinstance(last_error, (asyncio.TimeoutError, TimeoutError)):
            raise StoreError(
                f"{self.__class__.__name__}.{operation} timed out after "
                f"{policy.timeout_seconds}s (attempts={attempts})",
                operation=operation,
                store_type=self.store_type,
            ) from last_error

        if isinstance(last_error, StoreError):
            raise last_error

        raise StoreError(
            f"{self.__class__.__name__}.{operation} failed after {attempts} attempts: {last_error}",
            operation=operation,
            store_type=self.store_type,
        ) from last_error

    #-----------------------------------------------------------------------
    # Collaborator contract
    #-----------------------------------------------------------------------

    async def get(self, table: str, record_id: str) -> Optional[Record]:
        """Fetch one record, or None if it does not exist."""
        document = await self._execute_with_policy(
            "get", lambda: self._read_document(table, record_id)
        )
        return Record.from_document(document) if document is not None else None

    async def get_all(self, table: str, ids: Sequence[str]) -> List[Record]:
        """Fetch the existing records among *ids*, in the order of *ids*."""
        if not ids:
            return []
        documents = await self._execute_with_policy(
            "get_all", lambda: self._read_documents(table, list(ids))
        )
        return [Record.from_document(document) for document in documents]

    async def insert(self, table: str, data: Document) -> Record:
        """Insert a new record; *data* must carry its ``id``."""
        if not data.get("id"):
            raise StoreError("Tried inserting a record without an id", operation="insert", store_type=self.store_type)
        await self.run_atomic_batch([InsertRecord.of(table, data)])
        return await self._require(table, data["id"], "insert")

    async def update(self, table: str, record_id: str, patch: Document) -> Record:
        """Deep-merge *patch* into an existing record."""
        await self.run_atomic_batch([MergePatch.of(table, record_id, patch)])
        return await self._require(table, record_id, "update")

    async def update_all(self, table: str, ids: Sequence[str], patch: Document) -> int:
        """Deep-merge *patch* into every record of *ids* atomically."""
        return await self.run_atomic_batch([MergePatch.of(table, record_id, patch) for record_id in ids])

    async def run_atomic_batch(self, statements: Sequence[Statement]) -> int:
        """
        Apply *statements* as one all-or-nothing unit.

        Returns:
            The number of statements applied

        Raises:
            RecordNotFoundError: If a statement addresses a missing record
            StoreError: If the batch fails; no statement has been applied
        """
        batch = list(statements)
        if not batch:
            return 0
        logger.debug(f"{self.__class__.__name__} running atomic batch of {len(batch)} statements")
        await self._execute_with_policy(
            "run_atomic_batch",
            lambda: self._apply_batch(batch, self._batch_deadline()),
            retry=False,
            bounded=False,
        )
        return len(batch)

    def _batch_deadline(self) -> Optional[float]:
        """Monotonic time after which a batch must roll back instead of committing."""
        policy = self.operation_policy or DEFAULT_OPERATION_POLICY
        if policy.timeout_seconds and policy.timeout_seconds > 0:
            return time.monotonic() + policy.timeout_seconds
        return None

    async def _require(self, table: str, record_id: str, operation: str) -> Record:
        record = await self.get(table, record_id)
        if record is None:
            raise RecordNotFoundError(table, record_id, operation=operation)
        return record

    #-----------------------------------------------------------------------
    # Adapter primitives
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    async def _open(self) -> None:
        """Acquire the adapter's resources."""

    @abc.abstractmethod
    async def _close(self) -> None:
        """Release the adapter's resources."""

    @abc.abstractmethod
    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        """Return the raw document or None."""

    @abc.abstractmethod
    async def _read_documents(self, table: str, ids: List[str]) -> List[Document]:
        """Return the raw documents that exist among *ids*, in order."""

    @abc.abstractmethod
    async def _apply_batch(self, statements: List[Statement], deadline: Optional[float] = None) -> None:
        """
        Apply every statement or none of them.

        *deadline* is a ``time.monotonic()`` value. When it has passed before
        the commit point, the adapter must discard the batch and raise
        ``TimeoutError``; a batch is never cancelled once it may commit.
        """
