"""
Relationship Mutation Engine

Edits one relationship of one record together with its inverse. Every
operation follows the same shape:

1. resolve the descriptor and reject unsupported relation kinds
2. normalize the target input to a list of ids
3. fetch the record and run the compliance checks
4. submit one atomic batch touching the original and the inverse side
5. re-fetch and return the original record
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from linkguard.core.compliance import ComplianceChecker
from linkguard.exceptions import InvalidInputError, InvalidRelationError, RecordNotFoundError
from linkguard.models.pointer import to_pointer
from linkguard.models.record import Record
from linkguard.models.target import normalize_target
from linkguard.schema.declarations import Relation
from linkguard.schema.registry import DescriptorRegistry, RelationshipDescriptor
from linkguard.store.base import BaseDocumentStore
from linkguard.store.statements import (
    AppendPointers,
    DeactivatePointers,
    InsertRecord,
    PutPointer,
    Statement,
)

logger = logging.getLogger(__name__)


def _inverse_link(descriptor: RelationshipDescriptor, target_id: str, owner_id: str) -> Statement:
    if descriptor.inverse_is_many:
        return AppendPointers(
            table=descriptor.related_table,
            id=target_id,
            field=descriptor.inverse.field,
            target_ids=(owner_id,),
        )
    return PutPointer(
        table=descriptor.related_table,
        id=target_id,
        field=descriptor.inverse.field,
        target_id=owner_id,
    )


def _inverse_unlink(descriptor: RelationshipDescriptor, target_id: str, owner_id: str) -> Statement:
    return DeactivatePointers(
        table=descriptor.related_table,
        id=target_id,
        field=descriptor.inverse.field,
        target_ids=(owner_id,),
        many=descriptor.inverse_is_many,
    )


class RelationshipMutator:
    """Single-record, single-field relationship edits."""

    def __init__(
        self,
        store: BaseDocumentStore,
        registry: DescriptorRegistry,
        checker: Optional[ComplianceChecker] = None,
    ):
        self.store = store
        self.registry = registry
        self.checker = checker or ComplianceChecker(store, registry)

    def _descriptor(
        self,
        table: str,
        field_name: str,
        operation: str,
        allowed: Tuple[Relation, ...],
    ) -> RelationshipDescriptor:
        descriptor = self.registry.descriptor(table, field_name, operation=operation)
        if descriptor.relation not in allowed:
            raise InvalidRelationError(table, field_name, operation, relation=descriptor.relation.value)
        return descriptor

    async def _fetch(self, table: str, record_id: str, operation: str) -> Record:
        record = await self.store.get(table, record_id)
        if record is None:
            raise RecordNotFoundError(table, record_id, operation=operation)
        return record

    async def _commit(self, table: str, record_id: str, operation: str, statements: List[Statement]) -> Record:
        await self.store.run_atomic_batch(statements)
        logger.debug(f"{operation} on {table}/{record_id} applied {len(statements)} statements")
        return await self._fetch(table, record_id, operation)

    async def put(self, table: str, record_id: str, field_name: str, target: Any) -> Record:
        """
        Point the singular relationship *field_name* at *target*.

        A previously related target loses its inverse pointer in the same batch.

        Raises:
            InvalidRelationError: If the field is not hasOne or belongsTo
            InvalidInputError: If *target* is not exactly one id or record
            ComplianceError: If the target cannot take the edge
        """
        descriptor = self._descriptor(table, field_name, "put", (Relation.HAS_ONE, Relation.BELONGS_TO))
        ids = normalize_target(target, "put")
        if len(ids) != 1:
            raise InvalidInputError("put", target, message=f"Tried calling 'put' with {len(ids)} targets instead of one.")
        target_id = ids[0]

        record = await self._fetch(table, record_id, "put")
        await self.checker.check_put(descriptor, record_id, target_id)

        statements: List[Statement] = [
            PutPointer(table=table, id=record_id, field=field_name, target_id=target_id),
        ]
        previous = record.pointer(field_name)
        if previous is not None and previous.related and previous.id != target_id:
            statements.append(_inverse_unlink(descriptor, previous.id, record_id))
        statements.append(_inverse_link(descriptor, target_id, record_id))

        return await self._commit(table, record_id, "put", statements)

    async def remove(self, table: str, record_id: str, field_name: str) -> Record:
        """
        Deactivate the singular relationship *field_name* on both sides.

        Raises:
            InvalidRelationError: If the field is not hasOne
            ComplianceError: If the slot is empty or owns its target
        """
        descriptor = self._descriptor(table, field_name, "remove", (Relation.HAS_ONE,))
        record = await self._fetch(table, record_id, "remove")
        self.checker.check_remove(descriptor, record)

        pointer = record.pointer(field_name)
        statements: List[Statement] = [
            DeactivatePointers(table=table, id=record_id, field=field_name, target_ids=(pointer.id,)),
            _inverse_unlink(descriptor, pointer.id, record_id),
        ]
        return await self._commit(table, record_id, "remove", statements)

    async def push(self, table: str, record_id: str, field_name: str, targets: Any) -> Record:
        """
        Add *targets* to the many relationship *field_name*.

        Ids already related are skipped; ids whose edge was deactivated are
        re-activated on both sides.

        Raises:
            InvalidRelationError: If the field is not hasMany
            InvalidInputError: If *targets* are not id(s) or record(s)
            ComplianceError: If a target cannot take the edge
        """
        descriptor = self._descriptor(table, field_name, "push", (Relation.HAS_MANY,))
        ids = normalize_target(targets, "push")

        record = await self._fetch(table, record_id, "push")
        related = {pointer.id for pointer in record.pointers(field_name) if pointer.related}
        new_ids = [target_id for target_id in ids if target_id not in related]
        if not new_ids:
            return record

        await self.checker.check_push(descriptor, record_id, new_ids)

        statements: List[Statement] = [
            AppendPointers(table=table, id=record_id, field=field_name, target_ids=tuple(new_ids)),
        ]
        statements.extend(_inverse_link(descriptor, target_id, record_id) for target_id in new_ids)
        return await self._commit(table, record_id, "push", statements)

    async def splice(self, table: str, record_id: str, field_name: str, targets: Any) -> Record:
        """
        Deactivate the edges to *targets* in the many relationship *field_name*.

        Raises:
            InvalidRelationError: If the field is not hasMany
            InvalidInputError: If *targets* are not id(s) or record(s)
            ComplianceError: If the inverse is not hasMany or an id is not related
        """
        descriptor = self._descriptor(table, field_name, "splice", (Relation.HAS_MANY,))
        ids = normalize_target(targets, "splice")

        record = await self._fetch(table, record_id, "splice")
        if not ids:
            return record
        self.checker.check_splice(descriptor, record, ids)

        statements: List[Statement] = [
            DeactivatePointers(table=table, id=record_id, field=field_name, target_ids=tuple(ids), many=True),
        ]
        statements.extend(_inverse_unlink(descriptor, target_id, record_id) for target_id in ids)
        return await self._commit(table, record_id, "splice", statements)

    async def create(self, table: str, record_id: str, attributes: Mapping[str, Any], relationships: Mapping[str, Any]) -> Record:
        """
        Insert a record and the inverse pointers of its initial relationships.

        Args:
            table: Table of the new record
            record_id: Id of the new record
            attributes: Attribute values, already filtered to declared ones
            relationships: Field -> id(s) or record(s); hasMany fields take a
                list, singular fields a single target

        Raises:
            InvalidRelationError: If a field is not declared on *table*
            InvalidInputError: If a value has the wrong shape for its field
            ComplianceError: If a target cannot take the edge
        """
        descriptors = self.registry.describe(table)
        for field_name in relationships:
            self.registry.descriptor(table, field_name, operation="create")

        targets: Dict[str, List[str]] = {}
        for field_name, descriptor in descriptors.items():
            value = relationships.get(field_name)
            if value is None or (not descriptor.is_many and value == ""):
                targets[field_name] = []
                continue
            ids = normalize_target(value, "create")
            if not descriptor.is_many and len(ids) != 1:
                raise InvalidInputError(
                    "create", value,
                    message=f"Tried creating '{table}' with {len(ids)} targets for the singular '{field_name}'.",
                )
            targets[field_name] = ids

        await self.checker.check_create(table, record_id, targets)

        document = {
            "id": record_id,
            "attributes": dict(attributes),
            "relationships": {
                field_name: (
                    [to_pointer(target_id).to_document() for target_id in targets[field_name]]
                    if descriptor.is_many
                    else (to_pointer(targets[field_name][0]).to_document() if targets[field_name] else None)
                )
                for field_name, descriptor in descriptors.items()
            },
        }
        statements: List[Statement] = [InsertRecord.of(table, document)]
        for field_name, descriptor in descriptors.items():
            if not targets[field_name]:
                continue
            if not descriptor.inverse_is_many:
                statements.extend(await self._release_previous_owners(descriptor, targets[field_name]))
            statements.extend(_inverse_link(descriptor, target_id, record_id) for target_id in targets[field_name])

        return await self._commit(table, record_id, "create", statements)

    async def _release_previous_owners(self, descriptor: RelationshipDescriptor, target_ids: List[str]) -> List[Statement]:
        """Deactivate the edges that adopted singular targets are taken away from."""
        statements: List[Statement] = []
        for target in await self.store.get_all(descriptor.related_table, target_ids):
            pointer = target.pointer(descriptor.inverse.field)
            if pointer is None or not pointer.related:
                continue
            statements.append(
                DeactivatePointers(
                    table=descriptor.table,
                    id=pointer.id,
                    field=descriptor.field,
                    target_ids=(target.id,),
                    many=descriptor.is_many,
                )
            )
        return statements

    async def update_relationships(self, table: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        """
        Bring several relationships of a record to the given state.

        hasOne fields are ``put`` when a value is given and ``remove``-d when
        it is falsy; hasMany fields have their missing ids spliced and the new
        ids pushed. Mutations run one after another.

        Raises:
            InvalidRelationError: If a field is undeclared or belongsTo
        """
        descriptors = [
            self._descriptor(table, field_name, "update_relationships", (Relation.HAS_ONE, Relation.HAS_MANY))
            for field_name in fields
        ]
        for descriptor in descriptors:
            value = fields[descriptor.field]
            if descriptor.relation is Relation.HAS_ONE:
                await self._update_one(table, record_id, descriptor, value)
            else:
                await self._update_many(table, record_id, descriptor, value)
        return await self._fetch(table, record_id, "update_relationships")

    async def _update_one(self, table: str, record_id: str, descriptor: RelationshipDescriptor, value: Any) -> None:
        if value:
            await self.put(table, record_id, descriptor.field, value)
            return
        record = await self._fetch(table, record_id, "update_relationships")
        pointer = record.pointer(descriptor.field)
        if pointer is not None and pointer.related:
            await self.remove(table, record_id, descriptor.field)

    async def _update_many(self, table: str, record_id: str, descriptor: RelationshipDescriptor, value: Any) -> None:
        wanted = normalize_target(value if value is not None else [], "update_relationships")
        record = await self._fetch(table, record_id, "update_relationships")
        current = [pointer.id for pointer in record.pointers(descriptor.field) if pointer.related]
        stale = _missing(current, wanted)
        if stale:
            await self.splice(table, record_id, descriptor.field, stale)
        await self.push(table, record_id, descriptor.field, wanted)


def _missing(current: Iterable[str], wanted: Iterable[str]) -> List[str]:
    keep = set(wanted)
    return [record_id for record_id in current if record_id not in keep]
