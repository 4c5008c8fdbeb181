"""
Action Classifier

Decides, per relationship field, whether archiving a record must cascade into
the records it references ("archive") or only update their pointer back to it
("patch"). Only an inverse ``belongsTo`` expresses ownership:

    hasOne    -> belongsTo   archive
    hasMany   -> belongsTo   archive
    hasOne    -> hasMany     patch
    hasOne    -> hasOne      patch
    hasMany   -> hasMany     patch
    hasMany   -> hasOne      patch
    belongsTo -> *           patch
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping

from linkguard.models.pointer import ResourcePointer
from linkguard.models.record import Record
from linkguard.schema.declarations import Relation
from linkguard.schema.registry import RelationshipDescriptor


class Action(str, Enum):
    """Downstream effect of archiving a record, per relationship field."""

    ARCHIVE = "archive"
    PATCH = "patch"


def classify(relation: Relation, inverse_relation: Relation) -> Action:
    """Return the action for a field given its relation and its inverse relation."""
    if inverse_relation is Relation.BELONGS_TO and relation in (Relation.HAS_ONE, Relation.HAS_MANY):
        return Action.ARCHIVE
    return Action.PATCH


def classify_descriptor(descriptor: RelationshipDescriptor) -> Action:
    return classify(descriptor.relation, descriptor.inverse.relation)


@dataclass(frozen=True)
class FieldAction:
    """Classification of one relationship field of a fetched record."""

    descriptor: RelationshipDescriptor
    action: Action
    pointers: List[ResourcePointer]

    @property
    def field(self) -> str:
        return self.descriptor.field

    @property
    def related_table(self) -> str:
        return self.descriptor.related_table

    @property
    def inverse_field(self) -> str:
        return self.descriptor.inverse.field


def classify_record(record: Record, descriptors: Mapping[str, RelationshipDescriptor]) -> List[FieldAction]:
    """
    Classify every relationship field present on *record*.

    Fields stored on the record but not declared for its table are ignored;
    declared fields missing from the record have nothing to cascade into.
    """
    actions = []
    for field_name in sorted(record.relationships):
        descriptor = descriptors.get(field_name)
        if descriptor is None:
            continue
        actions.append(
            FieldAction(
                descriptor=descriptor,
                action=classify_descriptor(descriptor),
                pointers=record.pointers(field_name),
            )
        )
    return actions
