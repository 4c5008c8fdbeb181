"""Document store collaborators for the relationship engines."""

from linkguard.store.base import BaseDocumentStore
from linkguard.store.factory import StoreType, create_store
from linkguard.store.in_memory import InMemoryDocumentStore
from linkguard.store.policies import DEFAULT_OPERATION_POLICY, RetryPolicy, StoreOperationPolicy
from linkguard.store.sqlite import SQLiteDocumentStore
from linkguard.store.statements import (
    AppendPointers,
    ArchivePointer,
    ArchiveRecord,
    DeactivatePointers,
    InsertRecord,
    MergePatch,
    PutPointer,
    Statement,
    UpdateAttributes,
)

__all__ = [
    "AppendPointers",
    "ArchivePointer",
    "ArchiveRecord",
    "BaseDocumentStore",
    "DEFAULT_OPERATION_POLICY",
    "DeactivatePointers",
    "InMemoryDocumentStore",
    "InsertRecord",
    "MergePatch",
    "PutPointer",
    "RetryPolicy",
    "SQLiteDocumentStore",
    "Statement",
    "StoreOperationPolicy",
    "StoreType",
    "UpdateAttributes",
    "create_store",
]
