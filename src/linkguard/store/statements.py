"""
Store Statements

Mutations are expressed as Statement values collected into a list and
submitted through one ``run_atomic_batch`` call. Each statement addresses one
document and knows how to transform it; stores apply the transforms without
knowing anything about relationships.

Every ``apply`` is pure: it receives a copy of the current document (or None)
and returns the new document.
"""

import abc
import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from linkguard.exceptions import RecordNotFoundError, StoreError
from linkguard.models.pointer import ResourcePointer, activate, archive_pointer, deactivate, to_pointer

Document = Dict[str, Any]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _touch(document: Document) -> Document:
    document.setdefault("meta", {})["updated_at"] = _now_iso()
    return document


@dataclass(frozen=True)
class Statement(abc.ABC):
    """A single-document mutation."""

    table: str
    id: str

    @property
    def kind(self) -> str:
        return type(self).__name__

    @abc.abstractmethod
    def apply(self, document: Optional[Document]) -> Document:
        """Return the transformed document."""

    def _require(self, document: Optional[Document]) -> Document:
        if document is None:
            raise RecordNotFoundError(self.table, self.id, operation=self.kind)
        return copy.deepcopy(document)


def _relationships(document: Document) -> Dict[str, Any]:
    return document.setdefault("relationships", {})


def _pointer_list(document: Document, field: str) -> List[ResourcePointer]:
    value = _relationships(document).get(field)
    if value is None:
        return []
    if not isinstance(value, list):
        raise StoreError(f"Field '{field}' holds a single pointer where many were expected")
    return [ResourcePointer.model_validate(item) for item in value]


def _pointer(document: Document, field: str) -> Optional[ResourcePointer]:
    value = _relationships(document).get(field)
    if value is None:
        return None
    if isinstance(value, list):
        raise StoreError(f"Field '{field}' holds many pointers where one was expected")
    return ResourcePointer.model_validate(value)


@dataclass(frozen=True)
class InsertRecord(Statement):
    """Insert a new document; fails if one already exists under the id."""

    document: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, table: str, document: Document) -> "InsertRecord":
        return cls(table=table, id=document["id"], document=tuple(document.items()))

    def apply(self, document: Optional[Document]) -> Document:
        if document is not None:
            raise StoreError(
                f"Record '{self.id}' of table '{self.table}' already exists",
                operation=self.kind,
            )
        now = _now_iso()
        created = copy.deepcopy(dict(self.document))
        meta = created.setdefault("meta", {})
        meta.setdefault("archived", False)
        meta.setdefault("created_at", now)
        meta["updated_at"] = now
        created.setdefault("attributes", {})
        created.setdefault("relationships", {})
        return created


@dataclass(frozen=True)
class UpdateAttributes(Statement):
    """Merge attribute values into a document."""

    attributes: Tuple[Tuple[str, Any], ...] = ()

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        updated.setdefault("attributes", {}).update(copy.deepcopy(dict(self.attributes)))
        return _touch(updated)


@dataclass(frozen=True)
class ArchiveRecord(Statement):
    """Set ``meta.archived = true`` on a document."""

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        updated.setdefault("meta", {})["archived"] = True
        return _touch(updated)


@dataclass(frozen=True)
class ArchivePointer(Statement):
    """
    Mark the pointers to *target_ids* under *field* as archived.

    For a many field only the matching elements change. For a singular field
    the pointer is replaced wholesale when it references one of *target_ids*;
    a slot that is empty or references another record is left alone.
    """

    field: str = ""
    target_ids: Tuple[str, ...] = ()
    many: bool = False

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        relationships = _relationships(updated)
        if self.many:
            relationships[self.field] = [
                (archive_pointer(pointer) if pointer.id in self.target_ids else pointer).to_document()
                for pointer in _pointer_list(updated, self.field)
            ]
        else:
            pointer = _pointer(updated, self.field)
            if pointer is not None and pointer.id in self.target_ids:
                relationships[self.field] = archive_pointer(pointer).to_document()
        return _touch(updated)


@dataclass(frozen=True)
class PutPointer(Statement):
    """Replace the singular pointer under *field* with a fresh pointer to *target_id*."""

    field: str = ""
    target_id: str = ""

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        _relationships(updated)[self.field] = to_pointer(self.target_id).to_document()
        return _touch(updated)


@dataclass(frozen=True)
class AppendPointers(Statement):
    """
    Add edges to the many field *field*.

    Ids with no pointer yet get a fresh pointer appended; ids whose pointer
    exists are re-activated in place so no duplicates are created.
    """

    field: str = ""
    target_ids: Tuple[str, ...] = ()

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        pointers = _pointer_list(updated, self.field)
        existing = {pointer.id for pointer in pointers}
        pointers = [activate(pointer) if pointer.id in self.target_ids else pointer for pointer in pointers]
        for target_id in self.target_ids:
            if target_id not in existing:
                pointers.append(to_pointer(target_id))
                existing.add(target_id)
        _relationships(updated)[self.field] = [pointer.to_document() for pointer in pointers]
        return _touch(updated)


@dataclass(frozen=True)
class DeactivatePointers(Statement):
    """Set ``related = false`` on the pointers to *target_ids* under *field*."""

    field: str = ""
    target_ids: Tuple[str, ...] = ()
    many: bool = False

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        relationships = _relationships(updated)
        if self.many:
            relationships[self.field] = [
                (deactivate(pointer) if pointer.id in self.target_ids else pointer).to_document()
                for pointer in _pointer_list(updated, self.field)
            ]
        else:
            pointer = _pointer(updated, self.field)
            if pointer is not None and pointer.id in self.target_ids:
                relationships[self.field] = deactivate(pointer).to_document()
        return _touch(updated)


def _deep_merge(target: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


@dataclass(frozen=True)
class MergePatch(Statement):
    """Deep-merge a partial document into an existing document."""

    patch: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, table: str, record_id: str, patch: Document) -> "MergePatch":
        return cls(table=table, id=record_id, patch=tuple(patch.items()))

    def apply(self, document: Optional[Document]) -> Document:
        updated = self._require(document)
        patch = dict(self.patch)
        patch.pop("id", None)
        return _touch(_deep_merge(updated, patch))
