"""
LinkGuard

Relationship consistency for schema-less document stores: every edge is
stored as a resource pointer on both of its records, and LinkGuard keeps the
two copies in step under relationship edits and cascading archives.
"""

__version__ = "0.1.0"

from linkguard.context import LinkContext
from linkguard.exceptions import (
    ComplianceError,
    ConfigurationError,
    InvalidInputError,
    InvalidRelationError,
    LinkGuardError,
    RecordNotFoundError,
    StoreError,
)
from linkguard.node import Node
from linkguard.schema import DescriptorRegistry, Schema, belongs_to, has_many, has_one, load_schemas
from linkguard.store import create_store

__all__ = [
    "ComplianceError",
    "ConfigurationError",
    "DescriptorRegistry",
    "InvalidInputError",
    "InvalidRelationError",
    "LinkContext",
    "LinkGuardError",
    "Node",
    "RecordNotFoundError",
    "Schema",
    "StoreError",
    "__version__",
    "belongs_to",
    "create_store",
    "has_many",
    "has_one",
    "load_schemas",
]
