"""
Mutation Targets

Relationship mutations accept their targets in several shapes. They are
classified once at the API boundary into one of

    Id(str) | Ids([str]) | Ref(handle) | Refs([handle])

where a handle is any object exposing a string ``id`` (a Record or a Node),
and then normalized to a list of id strings.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Protocol, Tuple, Union, runtime_checkable

from linkguard.exceptions import InvalidInputError


@runtime_checkable
class RecordHandle(Protocol):
    """Anything that identifies a record by its ``id``."""

    id: str


@dataclass(frozen=True)
class Id:
    value: str

    def ids(self) -> List[str]:
        return [self.value]


@dataclass(frozen=True)
class Ids:
    values: Tuple[str, ...]

    def ids(self) -> List[str]:
        return list(self.values)


@dataclass(frozen=True)
class Ref:
    handle: RecordHandle

    def ids(self) -> List[str]:
        return [self.handle.id]


@dataclass(frozen=True)
class Refs:
    handles: Tuple[RecordHandle, ...]

    def ids(self) -> List[str]:
        return [handle.id for handle in self.handles]


Target = Union[Id, Ids, Ref, Refs]


def _is_handle(value: Any) -> bool:
    return not isinstance(value, (str, bytes, Mapping)) and isinstance(getattr(value, "id", None), str)


def classify_target(value: Any, operation: str = "mutation") -> Target:
    """
    Classify raw mutation input into a Target.

    Accepts a string id, a list/tuple of string ids, a record handle, or an
    ordered collection of record handles (a list/tuple, or an object exposing
    ``records``).

    Raises:
        InvalidInputError: If *value* has any other shape
    """
    if isinstance(value, (Id, Ids, Ref, Refs)):
        return value
    if isinstance(value, str):
        return Id(value)
    if _is_handle(value):
        return Ref(value)

    items: Iterable[Any]
    if isinstance(value, (list, tuple)):
        items = value
    elif hasattr(value, "records") and not isinstance(value, Mapping):
        items = list(value.records)
    else:
        raise InvalidInputError(operation, value)

    items = list(items)
    if all(isinstance(item, str) for item in items):
        return Ids(tuple(items))
    if all(_is_handle(item) for item in items):
        return Refs(tuple(items))
    raise InvalidInputError(operation, value)


def normalize_target(value: Any, operation: str = "mutation") -> List[str]:
    """Classify *value* and return its ids in order, without duplicates."""
    ids = classify_target(value, operation).ids()
    return list(dict.fromkeys(ids))
