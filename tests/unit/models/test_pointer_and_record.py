"""Unit tests for resource pointers and records."""

import pytest

from linkguard.models.pointer import ResourcePointer, activate, archive_pointer, deactivate, to_pointer
from linkguard.models.record import Record


def test_to_pointer_is_live() -> None:
    pointer = to_pointer("3")

    assert pointer == ResourcePointer(id="3", archived=False, related=True)
    assert pointer.is_live


def test_archive_pointer_keeps_related() -> None:
    pointer = archive_pointer(deactivate(to_pointer("3")))

    assert pointer.archived is True
    assert pointer.related is False
    assert not pointer.is_live


def test_deactivate_carries_archived_through() -> None:
    archived = archive_pointer(to_pointer("3"))

    assert deactivate(archived).to_document() == {"id": "3", "archived": True, "related": False}
    assert activate(deactivate(archived)).to_document() == {"id": "3", "archived": True, "related": True}


def test_pointers_are_immutable() -> None:
    pointer = to_pointer("1")
    with pytest.raises(Exception):
        pointer.related = False


def test_record_from_document(document_factory) -> None:
    record = Record.from_document(
        document_factory("1", {"name": "Dylan"}, company="1", pets=["1", {"id": "2", "related": False}])
    )

    assert record.attribute("name") == "Dylan"
    assert record.pointer("company").id == "1"
    assert record.related_ids("pets") == ["1", "2"]
    assert record.pointers("pets")[1].related is False
    assert record.pointers("company") == [record.pointer("company")]
    assert record.pointers("blogs") == []
    assert not record.is_archived


def test_record_pointer_rejects_many_field(document_factory) -> None:
    record = Record.from_document(document_factory("1", pets=["1"]))

    with pytest.raises(TypeError):
        record.pointer("pets")


def test_record_round_trip_keeps_meta(document_factory) -> None:
    document = document_factory("1", archived=True, company=None)
    record = Record.from_document(document)

    assert record.is_archived
    assert record.to_document()["relationships"] == {"company": None}
    assert record.to_document()["meta"]["archived"] is True
