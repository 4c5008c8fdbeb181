"""
Record Models

This module defines the record shape persisted in the document store:

    {
        "id": "1",
        "attributes": {"name": "Dylan"},
        "relationships": {
            "company": {"id": "1", "archived": False, "related": True},
            "pets": [{"id": "2", "archived": False, "related": True}],
        },
        "meta": {"archived": False, "created_at": "...", "updated_at": "..."},
    }

Records are owned by the store. The relationship engines never cache them
across operations; each operation re-fetches what it needs.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from linkguard.models.pointer import ResourcePointer

PointerValue = Union[ResourcePointer, List[ResourcePointer], None]


class RecordMeta(BaseModel):
    """Bookkeeping metadata of a record."""

    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Record(BaseModel):
    """A record of one table, with its relationship pointers."""

    id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    relationships: Dict[str, PointerValue] = Field(default_factory=dict)
    meta: RecordMeta = Field(default_factory=RecordMeta)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Record":
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def is_archived(self) -> bool:
        return self.meta.archived

    def attribute(self, name: str) -> Any:
        return self.attributes.get(name)

    def pointer(self, field: str) -> Optional[ResourcePointer]:
        """Return the singular pointer stored under *field*, if any."""
        value = self.relationships.get(field)
        if isinstance(value, list):
            raise TypeError(f"Relationship '{field}' of record '{self.id}' holds many pointers")
        return value

    def pointers(self, field: str) -> List[ResourcePointer]:
        """Return the pointers stored under *field* as a list (possibly empty)."""
        value = self.relationships.get(field)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    def related_ids(self, field: str) -> List[str]:
        return [pointer.id for pointer in self.pointers(field)]
