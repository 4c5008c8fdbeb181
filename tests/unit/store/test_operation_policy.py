"""Timeout and retry behaviour of document stores."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from linkguard.exceptions import StoreError
from linkguard.store.in_memory import InMemoryDocumentStore
from linkguard.store.policies import RetryPolicy, StoreOperationPolicy
from linkguard.store.statements import Document, Statement, UpdateAttributes


class _FlakyStore(InMemoryDocumentStore):
    """Test double whose reads fail a configurable number of times before succeeding."""

    def __init__(self, failures: int = 0, **kwargs):
        super().__init__(kwargs)
        self.reads = 0
        self.batches = 0
        self._remaining_failures = failures

    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        self.reads += 1
        if self._remaining_failures > 0:
            self._remaining_failures -= 1
            raise ConnectionError("forced failure")
        return await super()._read_document(table, record_id)

    async def _apply_batch(self, statements: List[Statement], deadline: Optional[float] = None) -> None:
        self.batches += 1
        raise ConnectionError("forced batch failure")


class _SlowStore(InMemoryDocumentStore):
    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        await asyncio.sleep(0.2)
        return await super()._read_document(table, record_id)


def test_policy_from_nested_mapping() -> None:
    policy = StoreOperationPolicy.from_mapping(
        {"timeout_seconds": 0.25, "retry": {"attempts": 2, "initial_delay_seconds": 0.01}}
    )

    assert policy.timeout_seconds == pytest.approx(0.25)
    assert policy.retry.attempts == 2
    assert policy.retry.initial_delay_seconds == pytest.approx(0.01)


def test_policy_from_flat_mapping_uses_fallback() -> None:
    fallback = StoreOperationPolicy(timeout_seconds=3.0, retry=RetryPolicy(attempts=5, backoff_multiplier=2.0))
    policy = StoreOperationPolicy.from_mapping({"retry_attempts": 4}, fallback=fallback)

    assert policy.timeout_seconds == pytest.approx(3.0)
    assert policy.retry.attempts == 4
    assert policy.retry.backoff_multiplier == pytest.approx(2.0)
    assert StoreOperationPolicy.from_mapping(None, fallback=fallback) is fallback


def test_retry_delay_backs_off_and_caps() -> None:
    retry = RetryPolicy(attempts=4, initial_delay_seconds=0.1, backoff_multiplier=2.0, max_delay_seconds=0.3)

    assert retry.compute_delay(0) == 0.0
    assert retry.compute_delay(1) == pytest.approx(0.1)
    assert retry.compute_delay(2) == pytest.approx(0.2)
    assert retry.compute_delay(3) == pytest.approx(0.3)
    assert RetryPolicy(attempts=0).normalized_attempts() == 1


@pytest.mark.asyncio
async def test_reads_are_retried() -> None:
    store = _FlakyStore(failures=2, operation_policy={"retry": {"attempts": 3}})
    async with store:
        store.seed("user", [{"id": "1"}])
        record = await store.get("user", "1")

    assert record.id == "1"
    assert store.reads == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_store_error() -> None:
    store = _FlakyStore(failures=5, operation_policy={"retry": {"attempts": 2}})
    async with store:
        with pytest.raises(StoreError, match="failed after 2 attempts") as excinfo:
            await store.get("user", "1")

    assert excinfo.value.operation == "get"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_batches_are_never_retried() -> None:
    store = _FlakyStore(operation_policy={"retry": {"attempts": 3}})
    async with store:
        store.seed("user", [{"id": "1"}])
        with pytest.raises(StoreError):
            await store.run_atomic_batch([UpdateAttributes(table="user", id="1", attributes=(("name", "x"),))])

    assert store.batches == 1


@pytest.mark.asyncio
async def test_timeout_raises_store_error() -> None:
    store = _SlowStore({"operation_policy": {"timeout_seconds": 0.01}})
    async with store:
        with pytest.raises(StoreError, match="timed out"):
            await store.get("user", "1")


def test_configure_operation_policy_resets_to_default() -> None:
    store = InMemoryDocumentStore({"operation_policy": {"timeout_seconds": 1.0}})
    store.configure_operation_policy(None)

    assert store.operation_policy == StoreOperationPolicy.default()
