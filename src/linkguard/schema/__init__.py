"""Schema declarations and the relationship descriptor registry."""

from linkguard.schema.declarations import (
    Relation,
    RelationshipDeclaration,
    Schema,
    belongs_to,
    has_many,
    has_one,
    load_schemas,
)
from linkguard.schema.registry import (
    ALLOWED_PAIRS,
    DescriptorRegistry,
    InverseDescriptor,
    RelationshipDescriptor,
)

__all__ = [
    "ALLOWED_PAIRS",
    "DescriptorRegistry",
    "InverseDescriptor",
    "Relation",
    "RelationshipDeclaration",
    "RelationshipDescriptor",
    "Schema",
    "belongs_to",
    "has_many",
    "has_one",
    "load_schemas",
]
