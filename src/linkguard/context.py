"""
Link Context

The LinkContext ties a document store to a descriptor registry and exposes
the relationship operations. It is created and owned by the caller and passed
to wherever relationships are edited; there is no process-wide connection.

Usage:
    registry = DescriptorRegistry.build(load_schemas("schemas.yaml"))
    async with LinkContext(create_store("memory"), registry) as context:
        user = await context.create("user", {"attributes": {"name": "Ada"}})
        await context.push("user", user.id, "friends", ["2", "3"])
        await context.archive("user", user.id)
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from linkguard.core.cascade import CascadeGraphBuilder
from linkguard.core.compliance import ComplianceChecker
from linkguard.core.executor import ArchiveExecutor
from linkguard.core.mutations import RelationshipMutator
from linkguard.exceptions import ConfigurationError, RecordNotFoundError, StoreError
from linkguard.models.archive import ArchiveObject, ArchiveResult
from linkguard.models.record import Record
from linkguard.schema.declarations import load_schemas
from linkguard.schema.registry import DescriptorRegistry
from linkguard.store.base import BaseDocumentStore
from linkguard.store.factory import create_store
from linkguard.store.statements import UpdateAttributes

if TYPE_CHECKING:
    from linkguard.node import Node

logger = logging.getLogger(__name__)


class LinkContext:
    """
    Explicit context for relationship operations.

    Every operation re-fetches the records it needs; nothing is cached
    between calls.
    """

    def __init__(self, store: BaseDocumentStore, registry: DescriptorRegistry):
        self.store = store
        self.registry = registry
        self.checker = ComplianceChecker(store, registry)
        self.mutator = RelationshipMutator(store, registry, self.checker)
        self.builder = CascadeGraphBuilder(store, registry)
        self.executor = ArchiveExecutor(store, registry)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        registry: Optional[DescriptorRegistry] = None,
    ) -> "LinkContext":
        """
        Build an unopened context from a loaded configuration.

        Args:
            config: Mapping with a ``store`` section and, unless *registry* is
                given, a ``schema.path`` entry
            registry: Prebuilt registry to use instead of ``schema.path``
        """
        if registry is None:
            schema_path = (config.get("schema") or {}).get("path")
            if not schema_path:
                raise ConfigurationError("No schema.path configured and no registry given")
            registry = DescriptorRegistry.build(load_schemas(schema_path))
        store = create_store(config=config.get("store") or {})
        return cls(store, registry)

    async def open(self) -> None:
        await self.store.open()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> "LinkContext":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    #-----------------------------------------------------------------------
    # Records
    #-----------------------------------------------------------------------

    async def fetch(self, table: str, record_id: str) -> Optional[Record]:
        """Return the record, or None if it does not exist."""
        self.registry.describe(table)
        return await self.store.get(table, record_id)

    async def node(self, table: str, record_id: str) -> Optional["Node"]:
        """Return a Node bound to this context, or None if the record does not exist."""
        from linkguard.node import Node

        record = await self.fetch(table, record_id)
        return Node(self, table, record) if record is not None else None

    async def create(self, table: str, data: Mapping[str, Any]) -> Record:
        """
        Create a record.

        Args:
            table: Table of the new record
            data: ``{"id"?, "attributes": {...}, "relationships": {field: id(s)}}``;
                a missing id is generated, undeclared attributes are dropped
        """
        record_id = data.get("id") or uuid.uuid4().hex
        attributes = self._declared_attributes(table, data.get("attributes") or {})
        record = await self.mutator.create(table, record_id, attributes, data.get("relationships") or {})
        logger.info(f"Created {table}/{record_id}")
        return record

    async def update(self, table: str, record_id: str, attributes: Mapping[str, Any]) -> Record:
        """Update the declared attributes of a record; other keys are dropped."""
        declared = self._declared_attributes(table, attributes)
        if declared:
            await self.store.run_atomic_batch([
                UpdateAttributes(table=table, id=record_id, attributes=tuple(declared.items())),
            ])
        record = await self.store.get(table, record_id)
        if record is None:
            raise RecordNotFoundError(table, record_id, operation="update")
        return record

    def _declared_attributes(self, table: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        allowed = set(self.registry.attributes(table))
        dropped = sorted(key for key in attributes if key not in allowed)
        if dropped:
            logger.debug(f"Dropping undeclared attributes {dropped} of {table}")
        return {key: value for key, value in attributes.items() if key in allowed}

    #-----------------------------------------------------------------------
    # Cascade archive
    #-----------------------------------------------------------------------

    async def plan_archive(self, table: str, record_id: str) -> ArchiveObject:
        """Compute the cascade of archiving a record without writing anything."""
        return await self.builder.build(table, record_id)

    async def archive(self, table: str, record_id: str) -> ArchiveResult:
        """
        Archive a record and everything it owns, in one atomic batch.

        Returns:
            ``ArchiveResult(deleted=False)`` if the record was already archived

        Raises:
            RecordNotFoundError: If the record or a cascaded record is missing
            StoreError: If a fetch or the batch fails; nothing has been written
        """
        root = await self.fetch(table, record_id)
        if root is None:
            raise RecordNotFoundError(table, record_id, operation="archive")
        if root.is_archived:
            logger.info(f"{table}/{record_id} is already archived")
            return ArchiveResult(deleted=False, id=record_id)

        try:
            archive_object = await self.builder.build(table, record_id)
            await self.executor.execute(archive_object)
        except StoreError:
            logger.exception(f"Cascade archive of {table}/{record_id} failed")
            raise

        return ArchiveResult(
            deleted=True,
            id=record_id,
            archived=archive_object.archive_count,
            patched=archive_object.patch_count,
        )

    #-----------------------------------------------------------------------
    # Relationship mutations
    #-----------------------------------------------------------------------

    async def put(self, table: str, record_id: str, field_name: str, target: Any) -> Record:
        return await self.mutator.put(table, record_id, field_name, target)

    async def remove(self, table: str, record_id: str, field_name: str) -> Record:
        return await self.mutator.remove(table, record_id, field_name)

    async def push(self, table: str, record_id: str, field_name: str, targets: Any) -> Record:
        return await self.mutator.push(table, record_id, field_name, targets)

    async def splice(self, table: str, record_id: str, field_name: str, targets: Any) -> Record:
        return await self.mutator.splice(table, record_id, field_name, targets)

    async def update_relationships(self, table: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        return await self.mutator.update_relationships(table, record_id, fields)
