"""Unit tests for the cascade graph builder."""

from collections import Counter
from typing import Optional

import pytest

from linkguard.core.cascade import CascadeGraphBuilder
from linkguard.exceptions import ConfigurationError, RecordNotFoundError
from linkguard.models.archive import TraversalEntry
from linkguard.schema.declarations import belongs_to, has_many
from linkguard.schema.registry import DescriptorRegistry
from linkguard.store.in_memory import InMemoryDocumentStore
from linkguard.store.statements import Document


class _CountingStore(InMemoryDocumentStore):
    def __init__(self, config=None):
        super().__init__(config)
        self.reads = Counter()

    async def _read_document(self, table: str, record_id: str) -> Optional[Document]:
        self.reads[(table, record_id)] += 1
        return await super()._read_document(table, record_id)


@pytest.mark.asyncio
async def test_archive_user_builds_full_plan(store, registry) -> None:
    archive_object = await CascadeGraphBuilder(store, registry).build("user", "1")

    assert archive_object.to_dict() == {
        "archive": {
            "animal": ["1", "2"],
            "blog": ["1"],
            "profile": ["1"],
            "toy": ["1"],
            "user": ["1"],
        },
        "patch": {
            "animal": {"1": {"owner": ["1"], "toys": ["1"]}, "2": {"owner": ["1"]}},
            "blog": {"1": {"author": ["1"]}},
            "company": {"1": {"employees": ["1"]}},
            "passport": {"1": {"holder": ["1"]}},
            "profile": {"1": {"user": ["1"]}},
            "tag": {"1": {"blogs": ["1"]}},
            "toy": {"1": {"animal": ["1"]}},
            "user": {
                "1": {"blogs": ["1"], "pets": ["1", "2"], "profile": ["1"]},
                "2": {"friends": ["1"]},
            },
        },
    }
    assert archive_object.archive_count == 6
    assert archive_object.patch_count == 14


@pytest.mark.asyncio
async def test_traversal_is_breadth_first(store, registry) -> None:
    archive_object = await CascadeGraphBuilder(store, registry).build("user", "1")

    assert archive_object.visited == [
        TraversalEntry("user", "1"),
        TraversalEntry("blog", "1"),
        TraversalEntry("animal", "1"),
        TraversalEntry("animal", "2"),
        TraversalEntry("profile", "1"),
        TraversalEntry("toy", "1"),
    ]


@pytest.mark.asyncio
async def test_patch_edges_are_not_followed(store, registry) -> None:
    archive_object = await CascadeGraphBuilder(store, registry).build("user", "1")

    assert not archive_object.is_archived("company", "1")
    assert not archive_object.is_archived("user", "2")
    assert not archive_object.is_archived("tag", "1")
    assert not archive_object.is_archived("passport", "1")


@pytest.mark.asyncio
async def test_shared_targets_are_expanded_once() -> None:
    registry = DescriptorRegistry.build({
        "root": {"relationships": {"lefts": has_many("left", "root"), "rights": has_many("right", "root")}},
        "left": {"relationships": {"root": belongs_to("root", "lefts"), "parts": has_many("part", "left")}},
        "right": {"relationships": {"root": belongs_to("root", "rights"), "parts": has_many("part", "right")}},
        "part": {"relationships": {"left": belongs_to("left", "parts"), "right": belongs_to("right", "parts")}},
    })
    pointer = {"id": "1", "archived": False, "related": True}
    store = _CountingStore()
    async with store:
        store.seed("root", [{"id": "1", "relationships": {"lefts": [pointer], "rights": [pointer]}}])
        store.seed("left", [{"id": "1", "relationships": {"root": pointer, "parts": [pointer]}}])
        store.seed("right", [{"id": "1", "relationships": {"root": pointer, "parts": [pointer]}}])
        store.seed("part", [{"id": "1", "relationships": {"left": pointer, "right": pointer}}])

        archive_object = await CascadeGraphBuilder(store, registry).build("root", "1")

        assert archive_object.archive_count == 4
        assert len(archive_object.visited) == 4
        assert set(store.reads.values()) == {1}
        assert archive_object.patch_count == 8


@pytest.mark.asyncio
async def test_inactive_pointers_are_patched_but_not_followed(store, registry, document_factory) -> None:
    store.seed("user", [document_factory("2", {"name": "Cai"}, pets=[{"id": "3", "related": False}])])

    archive_object = await CascadeGraphBuilder(store, registry).build("user", "2")

    assert not archive_object.is_archived("animal", "3")
    assert archive_object.patch["animal"]["3"] == {"owner": {"2"}}


@pytest.mark.asyncio
async def test_dangling_pointer_aborts(store, registry, document_factory) -> None:
    store.seed("user", [document_factory("3", pets=["99"])])

    with pytest.raises(RecordNotFoundError) as excinfo:
        await CascadeGraphBuilder(store, registry).build("user", "3")

    assert excinfo.value.table == "animal"
    assert excinfo.value.record_id == "99"


@pytest.mark.asyncio
async def test_unknown_table(store, registry) -> None:
    with pytest.raises(ConfigurationError):
        await CascadeGraphBuilder(store, registry).build("spaceship", "1")
