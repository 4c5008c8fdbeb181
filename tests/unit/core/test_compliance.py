"""Unit tests for the compliance checker."""

import pytest

from linkguard.core.compliance import ComplianceChecker, slot_is_free
from linkguard.exceptions import ComplianceError
from linkguard.models.record import Record


@pytest.fixture
def checker(store, registry):
    return ComplianceChecker(store, registry)


def test_slot_is_free(document_factory) -> None:
    assert slot_is_free(Record.from_document(document_factory("1")), "holder")
    assert slot_is_free(Record.from_document(document_factory("1", holder={"id": "2", "archived": True})), "holder")
    assert slot_is_free(Record.from_document(document_factory("1", holder={"id": "2", "related": False})), "holder")
    assert not slot_is_free(Record.from_document(document_factory("1", holder="2")), "holder")
    assert slot_is_free(Record.from_document(document_factory("1", holder="2")), "holder", owner_id="2")


@pytest.mark.asyncio
async def test_inverse_has_many_requires_live_targets(checker, registry, store, document_factory) -> None:
    descriptor = registry.descriptor("user", "friends")
    await checker.check_push(descriptor, "3", ["1", "2"])

    with pytest.raises(ComplianceError, match="no 'user' records") as excinfo:
        await checker.check_push(descriptor, "3", ["1", "404"])
    assert excinfo.value.ids == ["404"]

    store.seed("user", [document_factory("2", archived=True)])
    with pytest.raises(ComplianceError, match="archived"):
        await checker.check_push(descriptor, "3", ["2"])


@pytest.mark.asyncio
async def test_inverse_has_one_requires_free_slot(checker, registry) -> None:
    descriptor = registry.descriptor("user", "passport")

    await checker.check_put(descriptor, "3", "2")
    await checker.check_put(descriptor, "1", "1")
    with pytest.raises(ComplianceError, match="already related"):
        await checker.check_put(descriptor, "3", "1")


@pytest.mark.asyncio
async def test_inverse_belongs_to_is_rejected(checker, registry) -> None:
    with pytest.raises(ComplianceError, match="belongsTo"):
        await checker.check_push(registry.descriptor("user", "pets"), "3", ["1"])
    with pytest.raises(ComplianceError, match="belongsTo"):
        await checker.check_put(registry.descriptor("user", "profile"), "3", "1")


@pytest.mark.asyncio
async def test_put_on_belongs_to_is_rejected(checker, registry) -> None:
    with pytest.raises(ComplianceError, match="set when the record is created"):
        await checker.check_put(registry.descriptor("animal", "owner"), "1", "2")


@pytest.mark.asyncio
async def test_check_remove(checker, registry, store) -> None:
    user = await store.get("user", "1")
    stranger = await store.get("user", "3")

    checker.check_remove(registry.descriptor("user", "company"), user)
    with pytest.raises(ComplianceError, match="no related 'company'"):
        checker.check_remove(registry.descriptor("user", "company"), stranger)
    with pytest.raises(ComplianceError, match="orphan"):
        checker.check_remove(registry.descriptor("user", "profile"), user)


@pytest.mark.asyncio
async def test_check_splice(checker, registry, store) -> None:
    user = await store.get("user", "1")
    blog = await store.get("blog", "1")

    checker.check_splice(registry.descriptor("user", "friends"), user, ["2"])
    checker.check_splice(registry.descriptor("blog", "tags"), blog, ["1"])
    with pytest.raises(ComplianceError, match="not in record"):
        checker.check_splice(registry.descriptor("user", "friends"), user, ["3"])
    with pytest.raises(ComplianceError, match="inverse relation is 'belongsTo'"):
        checker.check_splice(registry.descriptor("user", "pets"), user, ["1"])


@pytest.mark.asyncio
async def test_check_create(checker) -> None:
    await checker.check_create("user", "9", {"friends": ["1"], "company": ["2"], "pets": ["3"], "passport": ["2"]})
    await checker.check_create("animal", "9", {"owner": ["3"], "toys": []})

    with pytest.raises(ComplianceError, match="adopted"):
        await checker.check_create("user", "9", {"profile": ["1"]})
    with pytest.raises(ComplianceError, match="already related"):
        await checker.check_create("user", "9", {"passport": ["1"]})
    with pytest.raises(ComplianceError):
        await checker.check_create("user", "9", {"pets": ["404"]})
