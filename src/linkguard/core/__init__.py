"""Cascade archive and relationship mutation engines."""

from linkguard.core.cascade import CascadeGraphBuilder
from linkguard.core.classifier import Action, FieldAction, classify, classify_descriptor, classify_record
from linkguard.core.compliance import ComplianceChecker, slot_is_free
from linkguard.core.executor import ArchiveExecutor
from linkguard.core.mutations import RelationshipMutator

__all__ = [
    "Action",
    "ArchiveExecutor",
    "CascadeGraphBuilder",
    "ComplianceChecker",
    "FieldAction",
    "RelationshipMutator",
    "classify",
    "classify_descriptor",
    "classify_record",
    "slot_is_free",
]
