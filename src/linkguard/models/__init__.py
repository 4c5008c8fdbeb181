"""Data models shared by the registry, the engines and the stores."""

from linkguard.models.archive import ArchiveObject, ArchiveResult, TraversalEntry
from linkguard.models.pointer import (
    ResourcePointer,
    activate,
    archive_pointer,
    deactivate,
    to_pointer,
)
from linkguard.models.record import Record, RecordMeta
from linkguard.models.target import Id, Ids, Ref, Refs, Target, classify_target, normalize_target

__all__ = [
    "ArchiveObject",
    "ArchiveResult",
    "Id",
    "Ids",
    "Record",
    "RecordMeta",
    "Ref",
    "Refs",
    "ResourcePointer",
    "Target",
    "TraversalEntry",
    "activate",
    "archive_pointer",
    "classify_target",
    "deactivate",
    "normalize_target",
    "to_pointer",
]
