"""
Resource Pointer Model

A resource pointer is the embedded ``{id, archived, related}`` stand-in for a
reference to another record. Every relationship edge is stored as a pointer on
both of its records.

- ``archived`` mirrors the referenced record's soft-delete flag; only the
  cascade archive engine sets it.
- ``related`` tells whether this edge is currently active; relationship edits
  toggle it and never touch ``archived``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class ResourcePointer(BaseModel):
    """Embedded reference to another record."""

    model_config = ConfigDict(frozen=True)

    id: str
    archived: bool = False
    related: bool = True

    @classmethod
    def from_document(cls, data: Optional[Dict[str, Any]]) -> Optional["ResourcePointer"]:
        if data is None:
            return None
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()

    @property
    def is_live(self) -> bool:
        """True when the edge is active and its target is not archived."""
        return self.related and not self.archived


def to_pointer(record_id: str) -> ResourcePointer:
    """Pointer for a newly added edge."""
    return ResourcePointer(id=record_id, archived=False, related=True)


def archive_pointer(pointer: ResourcePointer) -> ResourcePointer:
    """Pointer whose referenced record has been archived."""
    return pointer.model_copy(update={"archived": True})


def deactivate(pointer: ResourcePointer) -> ResourcePointer:
    """Pointer for a removed edge; ``archived`` is carried through unchanged."""
    return pointer.model_copy(update={"related": False})


def activate(pointer: ResourcePointer) -> ResourcePointer:
    """Pointer for a re-added edge; ``archived`` is carried through unchanged."""
    return pointer.model_copy(update={"related": True})
