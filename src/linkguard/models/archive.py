"""
Archive Models

Value types produced and consumed by one cascade archive run.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Set, Tuple


class TraversalEntry(NamedTuple):
    """A ``(table, id)`` work item of the cascade traversal."""

    table: str
    id: str


@dataclass
class ArchiveObject:
    """
    Accumulator of one cascade traversal.

    ``archive`` maps table -> ids of records to soft-delete. ``patch`` maps
    table -> id -> field -> ids whose pointers under that field must be marked
    archived. The object is built once, handed to the executor and discarded.
    """

    archive: Dict[str, Set[str]] = field(default_factory=dict)
    patch: Dict[str, Dict[str, Dict[str, Set[str]]]] = field(default_factory=dict)
    visited: List[TraversalEntry] = field(default_factory=list)

    def mark_archived(self, table: str, record_id: str) -> bool:
        """Add ``(table, record_id)`` to the archive set.

        Returns False if it was already present.
        """
        ids = self.archive.setdefault(table, set())
        if record_id in ids:
            return False
        ids.add(record_id)
        return True

    def is_archived(self, table: str, record_id: str) -> bool:
        return record_id in self.archive.get(table, ())

    def add_patch(self, table: str, record_id: str, field_name: str, target_id: str) -> None:
        """Record that ``table/record_id``'s pointer to *target_id* under *field_name* is archived."""
        (
            self.patch
            .setdefault(table, {})
            .setdefault(record_id, {})
            .setdefault(field_name, set())
            .add(target_id)
        )

    def iter_archive(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(table, id)`` pairs in a stable order."""
        for table in sorted(self.archive):
            for record_id in sorted(self.archive[table]):
                yield table, record_id

    def iter_patch(self) -> Iterator[Tuple[str, str, str, List[str]]]:
        """Yield ``(table, id, field, target_ids)`` in a stable order."""
        for table in sorted(self.patch):
            for record_id in sorted(self.patch[table]):
                fields = self.patch[table][record_id]
                for field_name in sorted(fields):
                    yield table, record_id, field_name, sorted(fields[field_name])

    @property
    def archive_count(self) -> int:
        return sum(len(ids) for ids in self.archive.values())

    @property
    def patch_count(self) -> int:
        return sum(
            len(targets)
            for records in self.patch.values()
            for fields in records.values()
            for targets in fields.values()
        )

    def to_dict(self) -> Dict[str, Dict]:
        return {
            "archive": {table: sorted(ids) for table, ids in sorted(self.archive.items())},
            "patch": {
                table: {
                    record_id: {name: sorted(targets) for name, targets in sorted(fields.items())}
                    for record_id, fields in sorted(records.items())
                }
                for table, records in sorted(self.patch.items())
            },
        }


@dataclass(frozen=True)
class ArchiveResult:
    """Outcome of archiving one root record."""

    deleted: bool
    id: str
    archived: int = 0
    patched: int = 0
