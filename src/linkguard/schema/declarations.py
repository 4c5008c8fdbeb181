"""
Schema Declarations

This module provides the declaration syntax for record types: their attributes
and their relationships to other types. A relationship entry is a mapping that
carries exactly one relation keyword (naming the related table) and the name of
the inverse field on that table:

    {"hasMany": "animal", "inverse": "owner"}

Entries flagged as ``embedded`` describe nested data that is not a relationship
and are kept aside. The ``has_many``/``has_one``/``belongs_to`` helpers build
entries in that exact form.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml

from linkguard.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Relation(str, Enum):
    """Relation kinds a relationship field may declare."""

    HAS_MANY = "hasMany"
    HAS_ONE = "hasOne"
    BELONGS_TO = "belongsTo"

    @property
    def is_many(self) -> bool:
        return self is Relation.HAS_MANY


INVERSE_KEY = "inverse"
EMBEDDED_KEY = "embedded"
RELATION_KEYWORDS = {relation.value: relation for relation in Relation}


def has_many(table: str, inverse: str) -> Dict[str, str]:
    """Declare a one-to-many (or many-to-many) relationship to *table*."""
    return {Relation.HAS_MANY.value: table, INVERSE_KEY: inverse}


def has_one(table: str, inverse: str) -> Dict[str, str]:
    """Declare a singular relationship to *table*."""
    return {Relation.HAS_ONE.value: table, INVERSE_KEY: inverse}


def belongs_to(table: str, inverse: str) -> Dict[str, str]:
    """Declare the owned side of a relationship to *table*."""
    return {Relation.BELONGS_TO.value: table, INVERSE_KEY: inverse}


@dataclass(frozen=True)
class RelationshipDeclaration:
    """A parsed relationship entry, before its inverse is resolved."""

    field: str
    relation: Relation
    table: str
    inverse: str


@dataclass
class Schema:
    """
    Declared shape of one record type.

    Attributes:
        type: Name of the table holding records of this type
        attributes: Names of the plain attributes
        relationships: Parsed relationship declarations keyed by field
        embedded: Fields holding embedded (non-relationship) data
    """

    type: str
    attributes: List[str] = field(default_factory=list)
    relationships: Dict[str, RelationshipDeclaration] = field(default_factory=dict)
    embedded: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.type or not isinstance(self.type, str):
            raise ConfigurationError("A valid type is required to instantiate a schema.")

    @classmethod
    def from_mapping(cls, table: str, mapping: Optional[Mapping[str, Any]] = None) -> "Schema":
        """
        Build a schema from its declaration mapping.

        Args:
            table: Table name
            mapping: ``{"attributes": ..., "relationships": {...}}``

        Raises:
            ConfigurationError: If any relationship entry is malformed
        """
        mapping = mapping or {}
        if not isinstance(mapping, Mapping):
            raise ConfigurationError(
                f"Schema '{table}' must be a mapping, got {type(mapping).__name__}",
                context={"type": table},
            )

        attributes = _parse_attributes(table, mapping.get("attributes"))
        relationships: Dict[str, RelationshipDeclaration] = {}
        embedded: List[str] = []

        for field_name, entry in (mapping.get("relationships") or {}).items():
            if isinstance(entry, Mapping) and entry.get(EMBEDDED_KEY):
                embedded.append(field_name)
                continue
            relationships[field_name] = parse_relationship(table, field_name, entry)

        return cls(type=table, attributes=attributes, relationships=relationships, embedded=embedded)

    def has_relationship(self, field_name: str) -> bool:
        return field_name in self.relationships


def parse_relationship(table: str, field_name: str, entry: Any) -> RelationshipDeclaration:
    """Parse one relationship entry into a declaration.

    The entry must carry exactly the pair ``{relationKeyword, inverse}``.
    """
    if not isinstance(entry, Mapping):
        raise ConfigurationError(
            f"Relationship '{field_name}' on schema '{table}' must be a mapping",
            context={"table": table, "field": field_name},
        )

    keywords = [key for key in entry if key in RELATION_KEYWORDS]
    unknown = [key for key in entry if key not in RELATION_KEYWORDS and key != INVERSE_KEY]

    if unknown:
        raise ConfigurationError(
            f"Relationship '{field_name}' on schema '{table}' has unknown keys {sorted(unknown)}; "
            f"expected one of {sorted(RELATION_KEYWORDS)} and '{INVERSE_KEY}'",
            context={"table": table, "field": field_name},
        )
    if len(keywords) != 1:
        raise ConfigurationError(
            f"Relationship '{field_name}' on schema '{table}' must declare exactly one relation "
            f"kind, got {len(keywords)}",
            context={"table": table, "field": field_name},
        )

    related_table = entry[keywords[0]]
    inverse = entry.get(INVERSE_KEY)
    if not related_table or not isinstance(related_table, str):
        raise ConfigurationError(
            f"Relationship '{field_name}' on schema '{table}' must name its related table",
            context={"table": table, "field": field_name},
        )
    if not inverse or not isinstance(inverse, str):
        raise ConfigurationError(
            f"Tried to resolve the inverse of the '{field_name}' relationship on schema "
            f"'{table}', but the inverse was not defined.",
            context={"table": table, "field": field_name},
        )

    return RelationshipDeclaration(
        field=field_name,
        relation=RELATION_KEYWORDS[keywords[0]],
        table=related_table,
        inverse=inverse,
    )


def _parse_attributes(table: str, attributes: Any) -> List[str]:
    if attributes is None:
        return []
    if isinstance(attributes, Mapping):
        return [name for name, enabled in attributes.items() if enabled]
    if isinstance(attributes, (list, tuple)):
        return [str(name) for name in attributes]
    raise ConfigurationError(
        f"Attributes of schema '{table}' must be a mapping or a list",
        context={"table": table},
    )


SchemaSource = Union[Schema, Mapping[str, Any], None]


def normalize_schemas(schemas: Union[Mapping[str, SchemaSource], Iterable[Schema]]) -> Dict[str, Schema]:
    """Return a table -> Schema mapping from declarations in either accepted form."""
    result: Dict[str, Schema] = {}

    if isinstance(schemas, Mapping):
        for table, declaration in schemas.items():
            if isinstance(declaration, Schema):
                result[table] = declaration
            else:
                result[table] = Schema.from_mapping(table, declaration)
        return result

    for schema in schemas:
        if not isinstance(schema, Schema):
            raise ConfigurationError(f"Expected a Schema, got {type(schema).__name__}")
        if schema.type in result:
            raise ConfigurationError(f"Schema '{schema.type}' is declared more than once")
        result[schema.type] = schema
    return result


def load_schemas(path: Union[str, os.PathLike]) -> Dict[str, Schema]:
    """
    Load schema declarations from a YAML file.

    The file maps each table name to its declaration mapping.

    Raises:
        ConfigurationError: If the file is missing, unparsable or malformed
    """
    file_path = os.fspath(path)
    try:
        with open(file_path, "r") as file:
            content = yaml.safe_load(file)
    except FileNotFoundError as e:
        logger.error(f"Schema file not found: {file_path}")
        raise ConfigurationError(f"Schema file not found: {file_path}") from e
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML in {file_path}: {str(e)}")
        raise ConfigurationError(f"Error parsing YAML in {file_path}: {str(e)}") from e

    if not isinstance(content, dict):
        raise ConfigurationError(f"Invalid schema format in {file_path}")

    logger.debug(f"Loaded {len(content)} schema declarations from {file_path}")
    return normalize_schemas(content)
