"""
Node

A Node is a handle on one record bound to a LinkContext. It carries the last
fetched state of the record and delegates every mutation to the context,
refreshing itself from the returned record. A Node can be passed wherever a
mutation accepts a record target.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from linkguard.models.archive import ArchiveResult
from linkguard.models.pointer import ResourcePointer
from linkguard.models.record import Record
from linkguard.schema.registry import RelationshipDescriptor

if TYPE_CHECKING:
    from linkguard.context import LinkContext


class Node:
    """Record handle bound to a context."""

    def __init__(self, context: "LinkContext", table: str, record: Record):
        self.context = context
        self.table = table
        self.record = record

    def __repr__(self) -> str:
        return f"Node({self.table!r}, {self.id!r})"

    @property
    def id(self) -> str:
        return self.record.id

    def attribute(self, name: str) -> Any:
        return self.record.attribute(name)

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self.record.attributes)

    def relationship(self, field_name: str) -> Optional[RelationshipDescriptor]:
        """Return the descriptor of *field_name*, or None if the table has no such relationship."""
        return self.context.registry.describe(self.table).get(field_name)

    def retrieve(self, field_name: str) -> Union[ResourcePointer, List[ResourcePointer], None]:
        """
        Return the raw pointer data stored under *field_name*.

        A list for hasMany fields, a single pointer (or None) otherwise, and
        None when the table has no such relationship.
        """
        descriptor = self.relationship(field_name)
        if descriptor is None:
            return None
        if descriptor.is_many:
            return self.record.pointers(field_name)
        return self.record.pointer(field_name)

    async def fetch(self, field_name: str) -> Union["Node", List["Node"], None]:
        """
        Fetch the records currently related through *field_name*.

        Only edges that are related and whose target is not archived are
        followed.
        """
        descriptor = self.context.registry.descriptor(self.table, field_name, operation="fetch")
        ids = [pointer.id for pointer in self.record.pointers(field_name) if pointer.is_live]
        records = await self.context.store.get_all(descriptor.related_table, ids)
        nodes = [Node(self.context, descriptor.related_table, record) for record in records]
        if descriptor.is_many:
            return nodes
        return nodes[0] if nodes else None

    def is_archived(self) -> bool:
        return self.record.is_archived

    def to_dict(self) -> Dict[str, Any]:
        return self.record.to_document()

    def _refresh(self, record: Record) -> "Node":
        self.record = record
        return self

    async def reload(self) -> "Node":
        record = await self.context.fetch(self.table, self.id)
        if record is not None:
            self.record = record
        return self

    async def update(self, attributes: Mapping[str, Any]) -> "Node":
        return self._refresh(await self.context.update(self.table, self.id, attributes))

    async def update_relationships(self, fields: Mapping[str, Any]) -> "Node":
        return self._refresh(await self.context.update_relationships(self.table, self.id, fields))

    async def put(self, field_name: str, target: Any) -> "Node":
        return self._refresh(await self.context.put(self.table, self.id, field_name, target))

    async def remove(self, field_name: str) -> "Node":
        return self._refresh(await self.context.remove(self.table, self.id, field_name))

    async def push(self, field_name: str, targets: Any) -> "Node":
        return self._refresh(await self.context.push(self.table, self.id, field_name, targets))

    async def splice(self, field_name: str, targets: Any) -> "Node":
        return self._refresh(await self.context.splice(self.table, self.id, field_name, targets))

    async def archive(self) -> ArchiveResult:
        result = await self.context.archive(self.table, self.id)
        await self.reload()
        return result
