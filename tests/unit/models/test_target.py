"""Unit tests for mutation target classification."""

from dataclasses import dataclass
from typing import List

import pytest

from linkguard.exceptions import InvalidInputError
from linkguard.models.record import Record
from linkguard.models.target import Id, Ids, Ref, Refs, classify_target, normalize_target


@dataclass
class Handle:
    id: str


@dataclass
class Collection:
    records: List[Handle]


def test_classify_shapes() -> None:
    handle = Handle("7")

    assert classify_target("1") == Id("1")
    assert classify_target(["1", "2"]) == Ids(("1", "2"))
    assert classify_target(handle) == Ref(handle)
    assert classify_target([handle, Handle("8")]) == Refs((handle, Handle("8")))
    assert classify_target(Collection([handle])) == Refs((handle,))


def test_records_are_handles() -> None:
    assert normalize_target(Record(id="9")) == ["9"]


def test_normalize_dedupes_in_order() -> None:
    assert normalize_target(["2", "1", "2"]) == ["2", "1"]
    assert normalize_target([]) == []


@pytest.mark.parametrize("value", [42, None, {"id": "1"}, ["1", Handle("2")], [1, 2], b"1"])
def test_rejects_other_input(value) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        normalize_target(value, "push")

    assert excinfo.value.operation == "push"
    assert isinstance(excinfo.value, TypeError)
