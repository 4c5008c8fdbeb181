"""
Cascade Graph Builder

Computes, from one record being archived, every record that must be archived
with it and every pointer that must be marked archived on the records that
survive.

The traversal is a breadth-first loop over an explicit work queue. A record
is marked in ``ArchiveObject.archive`` when it is enqueued, so records
reachable through several paths are fetched and expanded exactly once. I/O is
sequential: one record is fetched and expanded before the next is popped.
"""

import logging
from collections import deque
from typing import Deque

from linkguard.core.classifier import Action, classify_record
from linkguard.exceptions import RecordNotFoundError
from linkguard.models.archive import ArchiveObject, TraversalEntry
from linkguard.schema.registry import DescriptorRegistry
from linkguard.store.base import BaseDocumentStore

logger = logging.getLogger(__name__)


class CascadeGraphBuilder:
    """Builds the ArchiveObject of one cascade archive."""

    def __init__(self, store: BaseDocumentStore, registry: DescriptorRegistry):
        self.store = store
        self.registry = registry

    async def build(self, root_table: str, root_id: str) -> ArchiveObject:
        """
        Traverse the record graph from ``(root_table, root_id)``.

        Returns:
            The ArchiveObject describing every record to archive and every
            pointer to patch

        Raises:
            ConfigurationError: If a traversed table is not registered
            RecordNotFoundError: If the root or a cascaded record is missing
            StoreError: If a fetch fails; the partial result is discarded
        """
        self.registry.describe(root_table)

        archive_object = ArchiveObject()
        queue: Deque[TraversalEntry] = deque([TraversalEntry(root_table, root_id)])
        archive_object.mark_archived(root_table, root_id)

        while queue:
            entry = queue.popleft()
            archive_object.visited.append(entry)

            record = await self.store.get(entry.table, entry.id)
            if record is None:
                raise RecordNotFoundError(entry.table, entry.id, operation="archive")

            logger.debug(f"Expanding {entry.table}/{entry.id}")
            for field_action in classify_record(record, self.registry.describe(entry.table)):
                for pointer in field_action.pointers:
                    # The surviving or archived neighbour points back at this record.
                    archive_object.add_patch(
                        field_action.related_table,
                        pointer.id,
                        field_action.inverse_field,
                        entry.id,
                    )

                    if field_action.action is not Action.ARCHIVE or not pointer.is_live:
                        continue
                    if archive_object.mark_archived(field_action.related_table, pointer.id):
                        logger.debug(
                            f"Cascading {entry.table}/{entry.id}.{field_action.field} "
                            f"into {field_action.related_table}/{pointer.id}"
                        )
                        queue.append(TraversalEntry(field_action.related_table, pointer.id))

        logger.info(
            f"Cascade from {root_table}/{root_id}: {archive_object.archive_count} records to archive, "
            f"{archive_object.patch_count} pointers to patch"
        )
        return archive_object
