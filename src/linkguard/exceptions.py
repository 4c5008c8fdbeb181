"""
Exceptions for the LinkGuard relationship layer.

This module defines the error taxonomy shared by the descriptor registry, the
cascade archive engine, the relationship mutation engine and the document store
adapters.

The exceptions are organized into categories:
- Configuration Exceptions (invalid schemas, invalid settings)
- Relationship Exceptions (unsupported operations, integrity violations, bad input)
- Store Exceptions (I/O failures, missing records)

Each exception includes a descriptive message, an error code and context to aid
in troubleshooting.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class LinkGuardError(Exception):
    """Base exception class for all LinkGuard errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize a LinkGuard error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

        logger.debug(f"LinkGuardError: {message}", extra={
            "error_code": error_code,
            "context": context
        })


# Configuration Exceptions

class ConfigurationError(LinkGuardError):
    """Raised when a schema, descriptor or settings file is invalid.

    Detected while building the registry or loading settings; the process should
    not serve traffic when this is raised.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFIGURATION_ERROR", context=context)


# Relationship Exceptions

class RelationshipError(LinkGuardError):
    """Base exception for relationship operation errors."""
    pass


class InvalidRelationError(RelationshipError):
    """Raised when an operation is invoked on a field whose relation does not support it."""

    def __init__(
        self,
        table: str,
        field: str,
        operation: str,
        relation: Optional[str] = None,
        message: Optional[str] = None,
    ):
        """
        Initialize an invalid relation error.

        Args:
            table: Table owning the relationship field
            field: The relationship field
            operation: The operation that was attempted
            relation: The relation kind of the field, if the field exists
            message: Optional custom message
        """
        self.table = table
        self.field = field
        self.operation = operation
        self.relation = relation

        if relation is None:
            default_message = (
                f"Tried calling '{operation}' on the '{field}' relationship of table "
                f"'{table}', but the '{table}' schema does not have a '{field}' relationship."
            )
        else:
            default_message = (
                f"Tried calling '{operation}' on the '{field}' relationship of table "
                f"'{table}' whose relation is '{relation}'."
            )

        super().__init__(
            message or default_message,
            error_code="INVALID_RELATION",
            context={"table": table, "field": field, "operation": operation, "relation": relation}
        )


class ComplianceError(RelationshipError):
    """Raised when a proposed mutation violates referential-integrity rules.

    No write has happened when this is raised; the caller may retry with
    corrected input.
    """

    def __init__(
        self,
        table: str,
        field: str,
        operation: str,
        ids: Optional[list] = None,
        reason: Optional[str] = None,
    ):
        """
        Initialize a compliance error.

        Args:
            table: Table owning the relationship field
            field: The relationship field being mutated
            operation: The operation that was attempted
            ids: The proposed target ids
            reason: Why the proposal was rejected
        """
        self.table = table
        self.field = field
        self.operation = operation
        self.ids = list(ids or [])
        self.reason = reason

        message = (
            f"Tried calling '{operation}' on the '{field}' relationship of table '{table}' "
            f"with data that violated the update constraints"
        )
        if reason:
            message += f": {reason}"

        super().__init__(
            message,
            error_code="COMPLIANCE_ERROR",
            context={"table": table, "field": field, "operation": operation, "ids": self.ids}
        )


class InvalidInputError(RelationshipError, TypeError):
    """Raised when mutation input is neither id(s) nor record handle(s)."""

    def __init__(self, operation: str, value: Any, message: Optional[str] = None):
        self.operation = operation
        self.value = value
        default_message = (
            f"Tried calling '{operation}' with data that was neither a record, a sequence of "
            f"records, a list of string ids, nor a string id (got {type(value).__name__})."
        )
        super().__init__(
            message or default_message,
            error_code="INVALID_INPUT",
            context={"operation": operation, "type": type(value).__name__}
        )


# Store Exceptions

class StoreError(LinkGuardError):
    """Raised when the document store fails an operation."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        operation: Optional[str] = None,
        store_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.operation = operation
        self.store_type = store_type
        if message is None:
            details: list[str] = []
            if store_type:
                details.append(f"store={store_type}")
            if operation:
                details.append(f"operation={operation}")
            detail = f" ({', '.join(details)})" if details else ""
            message = f"Store operation failed{detail}"
        merged = {"operation": operation, "store_type": store_type}
        merged.update(context or {})
        super().__init__(message, error_code="STORE_ERROR", context=merged)


class RecordNotFoundError(StoreError):
    """Raised when a record required by an operation does not exist."""

    def __init__(self, table: str, record_id: str, operation: Optional[str] = None, message: Optional[str] = None):
        self.table = table
        self.record_id = record_id
        default_message = f"Record '{record_id}' of table '{table}' not found"
        super().__init__(
            message or default_message,
            operation=operation,
            context={"table": table, "id": record_id},
        )
        self.error_code = "RECORD_NOT_FOUND"
