"""
Archive Executor

Compiles an ArchiveObject into store statements and submits them as one
atomic batch: either every record of the cascade is archived and every
pointer patched, or nothing is written.
"""

import logging
from typing import List

from linkguard.exceptions import StoreError
from linkguard.models.archive import ArchiveObject
from linkguard.schema.registry import DescriptorRegistry
from linkguard.store.base import BaseDocumentStore
from linkguard.store.statements import ArchivePointer, ArchiveRecord, Statement

logger = logging.getLogger(__name__)


class ArchiveExecutor:
    """Turns an ArchiveObject into one atomic store batch."""

    def __init__(self, store: BaseDocumentStore, registry: DescriptorRegistry):
        self.store = store
        self.registry = registry

    def compile(self, archive_object: ArchiveObject) -> List[Statement]:
        """
        Compile *archive_object* into statements.

        One ``ArchiveRecord`` per archived record, then one ``ArchivePointer``
        per patched ``(table, id, field)``.
        """
        statements: List[Statement] = [
            ArchiveRecord(table=table, id=record_id) for table, record_id in archive_object.iter_archive()
        ]
        for table, record_id, field_name, target_ids in archive_object.iter_patch():
            descriptor = self.registry.descriptor(table, field_name, operation="archive")
            statements.append(
                ArchivePointer(
                    table=table,
                    id=record_id,
                    field=field_name,
                    target_ids=tuple(target_ids),
                    many=descriptor.is_many,
                )
            )
        return statements

    async def execute(self, archive_object: ArchiveObject) -> int:
        """
        Submit the compiled statements as one atomic batch.

        Returns:
            The number of statements applied

        Raises:
            StoreError: If the batch fails; nothing has been written
        """
        statements = self.compile(archive_object)
        try:
            applied = await self.store.run_atomic_batch(statements)
        except StoreError:
            logger.exception(
                f"Archive batch of {len(statements)} statements failed; no record was archived"
            )
            raise
        logger.info(
            f"Archived {archive_object.archive_count} records and patched "
            f"{archive_object.patch_count} pointers in one batch of {applied} statements"
        )
        return applied
