"""Unit tests for the archive executor."""

from typing import List

import pytest

from linkguard.core.cascade import CascadeGraphBuilder
from linkguard.core.executor import ArchiveExecutor
from linkguard.exceptions import StoreError
from linkguard.models.archive import ArchiveObject
from linkguard.store.statements import ArchivePointer, ArchiveRecord, Statement


def test_compile_emits_one_statement_per_record_and_field(registry) -> None:
    archive_object = ArchiveObject()
    archive_object.mark_archived("user", "1")
    archive_object.add_patch("company", "1", "employees", "1")
    archive_object.add_patch("company", "1", "employees", "2")
    archive_object.add_patch("passport", "1", "holder", "1")

    statements = ArchiveExecutor(None, registry).compile(archive_object)

    assert statements == [
        ArchiveRecord(table="user", id="1"),
        ArchivePointer(table="company", id="1", field="employees", target_ids=("1", "2"), many=True),
        ArchivePointer(table="passport", id="1", field="holder", target_ids=("1",), many=False),
    ]


@pytest.mark.asyncio
async def test_execute_applies_plan(store, registry) -> None:
    archive_object = await CascadeGraphBuilder(store, registry).build("company", "1")

    applied = await ArchiveExecutor(store, registry).execute(archive_object)

    assert applied == 6
    company = await store.get("company", "1")
    brand = await store.get("brand", "1")
    user = await store.get("user", "2")
    assert company.is_archived
    assert brand.is_archived
    assert brand.pointer("company").archived
    assert not user.is_archived
    assert user.pointer("company").archived
    assert user.pointer("company").related


@pytest.mark.asyncio
async def test_failed_batch_leaves_store_untouched(store, registry, monkeypatch) -> None:
    archive_object = await CascadeGraphBuilder(store, registry).build("user", "1")
    before = store.snapshot()
    submitted: List[List[Statement]] = []

    async def _failing_apply(statements, deadline=None):
        submitted.append(statements)
        raise ConnectionError("write lost")

    monkeypatch.setattr(store, "_apply_batch", _failing_apply)

    with pytest.raises(StoreError):
        await ArchiveExecutor(store, registry).execute(archive_object)

    assert len(submitted) == 1
    assert store.snapshot() == before
