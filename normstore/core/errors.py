"""Error Hierarchy — typed, categorized exceptions for normstore failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Expected conditions (no matches, empty input) never raise — only
      programmer and configuration mistakes reach this hierarchy
    - to_dict() produces a JSON-safe envelope for logging and callers

Design Decisions:
    - Single hierarchy with NormStoreError base: the shell catches one type
    - ErrorContext as dataclass: carries entity/relation without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity: str | None = None
    relation: str | None = None
    debug_info: dict[str, Any] | None = None


class NormStoreError(Exception):
    """Base exception for all normstore errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "entity": self.context.entity,
                    "relation": self.context.relation,
                    "debug_info": self.context.debug_info,
                },
            }
        }


# ─── Configuration Errors ───────────────────────────────────────

class UnknownEntityError(NormStoreError):
    """Entity reference does not resolve to a registered model."""
    def __init__(self, entity: object, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.entity = ctx.entity or str(entity)
        super().__init__(
            f"Entity '{entity}' is not registered in the database",
            "UNKNOWN_ENTITY", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.entity = entity


class InvalidRelationError(NormStoreError):
    """Relation declared with an unusable join path."""
    def __init__(self, message: str, relation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.relation = relation
        super().__init__(
            message, "INVALID_RELATION", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, ctx,
        )


# ─── Validation Errors ──────────────────────────────────────────

class UnknownRelationError(NormStoreError):
    """Eager load requested for a field that is not a relation."""
    def __init__(self, entity: str, relation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext(entity=entity, relation=relation)
        super().__init__(
            f"'{relation}' is not a relation of entity '{entity}'",
            "UNKNOWN_RELATION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.relation = relation


class InvalidSortDirectionError(NormStoreError):
    """Query ordered with a direction other than asc/desc."""
    def __init__(self, direction: object, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid sort direction '{direction}'. Use 'asc' or 'desc'.",
            "INVALID_SORT_DIRECTION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.direction = direction


class RecordNotFoundError(NormStoreError):
    """Requested record does not exist in its table."""
    def __init__(self, entity: str, record_id: object, context: ErrorContext | None = None):
        ctx = context or ErrorContext(entity=entity)
        super().__init__(
            f"{entity} '{record_id}' not found",
            "RECORD_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx,
        )
        self.record_id = record_id
