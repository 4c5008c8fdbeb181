"""
Relationship Descriptor Registry

This module resolves declared schemas against each other into read-only
relationship descriptors. Every relationship field is paired with the inverse
field declared on its related table, and the pair is validated against the
allowed relation pairings. The registry is built once at startup; any invalid
declaration raises ConfigurationError immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Tuple, Union

from linkguard.exceptions import ConfigurationError, InvalidRelationError
from linkguard.schema.declarations import Relation, Schema, normalize_schemas

logger = logging.getLogger(__name__)


ALLOWED_PAIRS: FrozenSet[Tuple[Relation, Relation]] = frozenset({
    (Relation.HAS_MANY, Relation.BELONGS_TO),
    (Relation.HAS_MANY, Relation.HAS_MANY),
    (Relation.HAS_MANY, Relation.HAS_ONE),
    (Relation.HAS_ONE, Relation.BELONGS_TO),
    (Relation.HAS_ONE, Relation.HAS_ONE),
    (Relation.HAS_ONE, Relation.HAS_MANY),
    (Relation.BELONGS_TO, Relation.HAS_MANY),
    (Relation.BELONGS_TO, Relation.HAS_ONE),
})


@dataclass(frozen=True)
class InverseDescriptor:
    """The inverse side of a relationship, as declared on the related table."""

    field: str
    relation: Relation


@dataclass(frozen=True)
class RelationshipDescriptor:
    """Resolved description of one relationship field."""

    table: str
    field: str
    related_table: str
    relation: Relation
    inverse: InverseDescriptor

    @property
    def is_many(self) -> bool:
        return self.relation is Relation.HAS_MANY

    @property
    def inverse_is_many(self) -> bool:
        return self.inverse.relation is Relation.HAS_MANY

    def __str__(self) -> str:
        return (
            f"{self.table}.{self.field} {self.relation.value} -> "
            f"{self.related_table}.{self.inverse.field} {self.inverse.relation.value}"
        )


class DescriptorRegistry:
    """
    Static per-table map of relationship descriptors.

    Build it with :meth:`build`; the resulting registry is immutable.
    """

    def __init__(
        self,
        descriptors: Mapping[str, Mapping[str, RelationshipDescriptor]],
        attributes: Mapping[str, Iterable[str]],
    ):
        self._descriptors = MappingProxyType({
            table: MappingProxyType(dict(fields)) for table, fields in descriptors.items()
        })
        self._attributes = MappingProxyType({
            table: tuple(names) for table, names in attributes.items()
        })

    @classmethod
    def build(cls, schemas: Union[Mapping[str, Any], Iterable[Schema]]) -> "DescriptorRegistry":
        """
        Resolve every declared relationship against its inverse declaration.

        Args:
            schemas: Table -> Schema (or declaration mapping), or an iterable of Schema

        Returns:
            The immutable registry

        Raises:
            ConfigurationError: If a related table or inverse field is missing, the
                inverse does not point back, or the relation pair is not allowed
        """
        declared = normalize_schemas(schemas)
        descriptors: Dict[str, Dict[str, RelationshipDescriptor]] = {}

        for table, schema in declared.items():
            fields: Dict[str, RelationshipDescriptor] = {}
            for field_name, declaration in schema.relationships.items():
                related = declared.get(declaration.table)
                if related is None:
                    raise ConfigurationError(
                        f"Tried accessing a schema of type '{declaration.table}' for the "
                        f"'{field_name}' relationship on '{table}', but it is not registered.",
                        context={"table": table, "field": field_name},
                    )

                inverse = related.relationships.get(declaration.inverse)
                if inverse is None:
                    raise ConfigurationError(
                        f"The '{field_name}' relationship on '{table}' declares inverse "
                        f"'{declaration.inverse}', but '{declaration.table}' has no such relationship.",
                        context={"table": table, "field": field_name, "inverse": declaration.inverse},
                    )

                if inverse.table != table or inverse.inverse != field_name:
                    raise ConfigurationError(
                        f"The inverse of '{table}.{field_name}' is '{declaration.table}.{inverse.field}', "
                        f"which points at '{inverse.table}.{inverse.inverse}' instead of back.",
                        context={"table": table, "field": field_name},
                    )

                if (declaration.relation, inverse.relation) not in ALLOWED_PAIRS:
                    raise ConfigurationError(
                        f"'{table}.{field_name}' pairs '{declaration.relation.value}' with inverse "
                        f"'{inverse.relation.value}', which is not an allowed relation pair.",
                        context={"table": table, "field": field_name},
                    )

                fields[field_name] = RelationshipDescriptor(
                    table=table,
                    field=field_name,
                    related_table=declaration.table,
                    relation=declaration.relation,
                    inverse=InverseDescriptor(field=inverse.field, relation=inverse.relation),
                )
            descriptors[table] = fields

        registry = cls(descriptors, {table: schema.attributes for table, schema in declared.items()})
        logger.info(
            f"Built descriptor registry with {len(descriptors)} tables and "
            f"{sum(len(fields) for fields in descriptors.values())} relationships"
        )
        return registry

    def tables(self) -> List[str]:
        return list(self._descriptors)

    def has_table(self, table: str) -> bool:
        return table in self._descriptors

    def describe(self, table: str) -> Mapping[str, RelationshipDescriptor]:
        """Return the relationship descriptors of *table*, keyed by field."""
        try:
            return self._descriptors[table]
        except KeyError:
            raise ConfigurationError(
                f"Tried accessing a schema of type '{table}', but it is not registered.",
                context={"table": table},
            ) from None

    def descriptor(self, table: str, field: str, operation: str = "describe") -> RelationshipDescriptor:
        """Return the descriptor of *table*.*field*.

        Raises:
            InvalidRelationError: If *table* has no such relationship
        """
        descriptor = self.describe(table).get(field)
        if descriptor is None:
            raise InvalidRelationError(table, field, operation)
        return descriptor

    def inverse_of(self, table: str, field: str) -> RelationshipDescriptor:
        """Return the descriptor of the inverse field of *table*.*field*."""
        descriptor = self.descriptor(table, field)
        return self.descriptor(descriptor.related_table, descriptor.inverse.field)

    def attributes(self, table: str) -> Tuple[str, ...]:
        self.describe(table)
        return self._attributes.get(table, ())
