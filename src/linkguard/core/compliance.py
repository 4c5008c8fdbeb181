"""
Compliance Checker

Validates a proposed relationship mutation against the live state of the
records it references before anything is written. Every rule is keyed on the
inverse relation of the field being mutated:

- inverse ``hasMany``: each target must exist and not be archived
- inverse ``hasOne``: each target must exist, not be archived, and have a
  free inverse slot (empty, archived, or no longer related)
- inverse ``belongsTo``: rejected; the owned side is set when the owned
  record is created

A failed check raises ComplianceError.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from linkguard.exceptions import ComplianceError
from linkguard.models.record import Record
from linkguard.schema.declarations import Relation
from linkguard.schema.registry import DescriptorRegistry, RelationshipDescriptor
from linkguard.store.base import BaseDocumentStore

logger = logging.getLogger(__name__)


def slot_is_free(record: Record, field_name: str, owner_id: Optional[str] = None) -> bool:
    """
    Tell whether the singular slot *field_name* of *record* can take a new edge.

    A slot already pointing at *owner_id* counts as free; repeating a
    ``put`` is harmless.
    """
    pointer = record.pointer(field_name)
    if pointer is None or not pointer.is_live:
        return True
    return owner_id is not None and pointer.id == owner_id


class ComplianceChecker:
    """Pre-write referential-integrity checks for the mutation engine."""

    def __init__(self, store: BaseDocumentStore, registry: DescriptorRegistry):
        self.store = store
        self.registry = registry

    async def check_put(self, descriptor: RelationshipDescriptor, owner_id: str, target_id: str) -> None:
        if descriptor.relation is Relation.BELONGS_TO:
            raise ComplianceError(
                descriptor.table, descriptor.field, "put", [target_id],
                reason="a belongsTo relationship is set when the record is created",
            )
        await self._check_targets(descriptor, owner_id, [target_id], "put")

    async def check_push(self, descriptor: RelationshipDescriptor, owner_id: str, target_ids: Sequence[str]) -> None:
        await self._check_targets(descriptor, owner_id, target_ids, "push")

    def check_remove(self, descriptor: RelationshipDescriptor, record: Record) -> None:
        if descriptor.inverse.relation is Relation.BELONGS_TO:
            raise ComplianceError(
                descriptor.table, descriptor.field, "remove",
                reason=f"removing would orphan the '{descriptor.related_table}' record that belongs to it",
            )
        pointer = record.pointer(descriptor.field)
        if pointer is None or not pointer.related:
            raise ComplianceError(
                descriptor.table, descriptor.field, "remove",
                reason=f"record '{record.id}' has no related '{descriptor.field}'",
            )

    def check_splice(self, descriptor: RelationshipDescriptor, record: Record, target_ids: Sequence[str]) -> None:
        if descriptor.inverse.relation is not Relation.HAS_MANY:
            raise ComplianceError(
                descriptor.table, descriptor.field, "splice", list(target_ids),
                reason=f"the inverse relation is '{descriptor.inverse.relation.value}'",
            )
        present = set(record.related_ids(descriptor.field))
        missing = [target_id for target_id in target_ids if target_id not in present]
        if missing:
            raise ComplianceError(
                descriptor.table, descriptor.field, "splice", missing,
                reason=f"ids {missing} are not in record '{record.id}'",
            )

    async def check_create(
        self,
        table: str,
        record_id: str,
        relationships: Mapping[str, List[str]],
    ) -> None:
        """
        Validate the relationship payload of a record about to be created.

        Args:
            table: Table of the new record
            record_id: Id the new record will get
            relationships: Field -> normalized target ids
        """
        descriptors = self.registry.describe(table)
        for field_name, target_ids in relationships.items():
            descriptor = descriptors[field_name]
            if not target_ids:
                continue
            inverse = descriptor.inverse.relation
            if descriptor.relation is Relation.HAS_ONE and inverse is Relation.BELONGS_TO:
                raise ComplianceError(
                    table, field_name, "create", target_ids,
                    reason="an owned record cannot be adopted by a new owner",
                )
            if inverse is Relation.BELONGS_TO:
                await self._require_live(descriptor, target_ids, "create")
            else:
                await self._check_targets(descriptor, record_id, target_ids, "create")

    async def _check_targets(
        self,
        descriptor: RelationshipDescriptor,
        owner_id: str,
        target_ids: Sequence[str],
        operation: str,
    ) -> None:
        inverse = descriptor.inverse.relation
        if inverse is Relation.BELONGS_TO:
            raise ComplianceError(
                descriptor.table, descriptor.field, operation, list(target_ids),
                reason="the inverse relation is 'belongsTo'",
            )

        records = await self._require_live(descriptor, target_ids, operation)
        if inverse is Relation.HAS_ONE:
            taken = [
                record.id for record in records
                if not slot_is_free(record, descriptor.inverse.field, owner_id)
            ]
            if taken:
                raise ComplianceError(
                    descriptor.table, descriptor.field, operation, taken,
                    reason=(
                        f"'{descriptor.related_table}.{descriptor.inverse.field}' is already "
                        f"related for ids {taken}"
                    ),
                )

    async def _require_live(
        self,
        descriptor: RelationshipDescriptor,
        target_ids: Sequence[str],
        operation: str,
    ) -> List[Record]:
        records = await self.store.get_all(descriptor.related_table, list(target_ids))
        found: Dict[str, Record] = {record.id: record for record in records}

        missing = [target_id for target_id in target_ids if target_id not in found]
        if missing:
            raise ComplianceError(
                descriptor.table, descriptor.field, operation, missing,
                reason=f"no '{descriptor.related_table}' records with ids {missing}",
            )
        archived = [target_id for target_id in target_ids if found[target_id].is_archived]
        if archived:
            raise ComplianceError(
                descriptor.table, descriptor.field, operation, archived,
                reason=f"'{descriptor.related_table}' records {archived} are archived",
            )

        logger.debug(f"{operation} targets {list(target_ids)} of {descriptor} are compliant")
        return [found[target_id] for target_id in target_ids]
