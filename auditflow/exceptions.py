"""
AuditFlow Exceptions

This module defines the exception hierarchy for the audit workflow and
scoring engine. Every business-rule violation is detected before any write
and raised as one of these types, so callers can map them to stable,
targeted feedback.

Exception Hierarchy:
    AuditFlowError (base)
    ├── NotFoundError (missing template/audit/standard/response/assignment)
    ├── InvalidStateTransitionError (operation forbidden in current state)
    │   ├── TemplateNotPublishedError
    │   ├── TemplateNotEditableError
    │   ├── AuditNotActiveError
    │   ├── NotClosedError
    │   └── NotCompletedError
    ├── ConstraintViolationError (uniqueness / structural violations)
    │   ├── DuplicateCodeError
    │   ├── DuplicateAssignmentError
    │   ├── HasChildrenError
    │   ├── CircularReferenceError
    │   ├── NoMembersAssignedError
    │   └── NoAuditableStandardsError
    ├── WeightError (numeric invariant failures)
    │   ├── WeightSumInvalidError
    │   ├── OutOfRangeError
    │   └── InvalidIndexError
    └── IncompleteEvaluationError (missing fields for a status change)

Design Principles:
- Messages identify the offending entity id and the violated rule
- Error codes are stable strings for programmatic handling
- Exceptions serialize to dicts for API responses and logging
"""

from typing import Any, Dict, List, Optional


class AuditFlowError(Exception):
    """
    Base exception for all audit workflow operations.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional context (entity ids, offending values)

    Usage:
        try:
            service.close_audit(audit_id)
        except AuditFlowError as e:
            logger.warning(f"Close rejected {e.error_code}: {e.message}")
    """

    default_error_code = "AUDITFLOW_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary representation safe for API responses.
        """
        return {
            "error": self.error_code,
            "message": self.message,
            "context": {key: _jsonable(value) for key, value in self.context.items()},
        }

    def __str__(self) -> str:
        """Format exception for logging."""
        if self.context:
            return f"[{self.error_code}] {self.message} (context: {self.context})"
        return f"[{self.error_code}] {self.message}"


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


# =============================================================================
# Lookup
# =============================================================================


class NotFoundError(AuditFlowError):
    """Raised when a referenced template, audit, standard or response does not exist."""

    default_error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            context={"entity": entity, "entity_id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


# =============================================================================
# State machine violations
# =============================================================================


class InvalidStateTransitionError(AuditFlowError):
    """
    Raised when an operation is attempted while the owning aggregate is in a
    state that forbids it (e.g. closing a draft audit).

    Attributes:
        current_state: State of the aggregate when the operation was attempted
        operation: Name of the rejected operation
    """

    default_error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        current_state: Any,
        operation: str,
        message: Optional[str] = None,
        entity_id: Any = None,
    ):
        state = getattr(current_state, "value", current_state)
        context: Dict[str, Any] = {"current_state": state, "operation": operation}
        if entity_id is not None:
            context["entity_id"] = entity_id
        super().__init__(
            message or f"Cannot {operation} while in state '{state}'",
            context=context,
        )
        self.current_state = current_state
        self.operation = operation


class TemplateNotPublishedError(InvalidStateTransitionError):
    """Raised when an audit is requested from a template that is not published."""

    default_error_code = "TEMPLATE_NOT_PUBLISHED"

    def __init__(self, template_id: Any, current_state: Any):
        state = getattr(current_state, "value", current_state)
        super().__init__(
            current_state,
            "create audit",
            message=f"Template {template_id} must be published to create audits (current status: {state})",
            entity_id=template_id,
        )


class TemplateNotEditableError(InvalidStateTransitionError):
    """Raised when a template's standard structure is modified outside draft."""

    default_error_code = "TEMPLATE_NOT_EDITABLE"

    def __init__(self, template_id: Any, current_state: Any, operation: str = "modify standards"):
        state = getattr(current_state, "value", current_state)
        super().__init__(
            current_state,
            operation,
            message=f"Template {template_id} is not editable (current status: {state})",
            entity_id=template_id,
        )


class AuditNotActiveError(InvalidStateTransitionError):
    """Raised when a response is mutated while its audit is not in progress."""

    default_error_code = "AUDIT_NOT_ACTIVE"

    def __init__(self, audit_id: Any, current_state: Any, operation: str = "update evaluations"):
        state = getattr(current_state, "value", current_state)
        super().__init__(
            current_state,
            operation,
            message=f"Audit {audit_id} must be in_progress to {operation} (current status: {state})",
            entity_id=audit_id,
        )


class NotClosedError(InvalidStateTransitionError):
    """Raised when a revision is requested from an audit that is not closed."""

    default_error_code = "AUDIT_NOT_CLOSED"

    def __init__(self, audit_id: Any, current_state: Any):
        state = getattr(current_state, "value", current_state)
        super().__init__(
            current_state,
            "create revision",
            message=f"Audit {audit_id} must be closed to create a revision (current status: {state})",
            entity_id=audit_id,
        )


class NotCompletedError(InvalidStateTransitionError):
    """Raised when a response that is not completed is marked as reviewed."""

    default_error_code = "RESPONSE_NOT_COMPLETED"

    def __init__(self, response_id: Any, current_state: Any):
        state = getattr(current_state, "value", current_state)
        super().__init__(
            current_state,
            "review",
            message=f"Response {response_id} must be completed before review (current status: {state})",
            entity_id=response_id,
        )


# =============================================================================
# Constraint violations
# =============================================================================


class ConstraintViolationError(AuditFlowError):
    """
    Raised for uniqueness or structural violations.

    Attributes:
        issues: Optional list of individual violations (bulk import reports all of them)
    """

    default_error_code = "CONSTRAINT_VIOLATION"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        issues: Optional[List[Dict[str, Any]]] = None,
    ):
        context = dict(context or {})
        if issues:
            context["issues"] = issues
        super().__init__(message, context=context)
        self.issues = issues or []


class DuplicateCodeError(ConstraintViolationError):
    """Raised when an audit code, or a standard code within a template, already exists."""

    default_error_code = "DUPLICATE_CODE"

    def __init__(self, entity: str, code: str, scope_id: Any = None):
        scope = f" in template {scope_id}" if scope_id is not None else ""
        super().__init__(
            f"{entity} with code '{code}' already exists{scope}",
            context={"entity": entity, "code": code, "scope_id": scope_id},
        )


class DuplicateAssignmentError(ConstraintViolationError):
    """Raised when the same (audit, user, role) assignment already exists."""

    default_error_code = "DUPLICATE_ASSIGNMENT"

    def __init__(self, audit_id: Any, user_id: Any, role: Any):
        role_value = getattr(role, "value", role)
        super().__init__(
            f"User {user_id} is already assigned to audit {audit_id} with role {role_value}",
            context={"audit_id": audit_id, "user_id": user_id, "role": role_value},
        )


class HasChildrenError(ConstraintViolationError):
    """Raised when a standard with children is deleted or made auditable."""

    default_error_code = "STANDARD_HAS_CHILDREN"

    def __init__(self, standard_id: Any, child_count: int, operation: str = "delete"):
        super().__init__(
            f"Cannot {operation} standard {standard_id}: it has {child_count} child standard(s)",
            context={"standard_id": standard_id, "child_count": child_count, "operation": operation},
        )


class CircularReferenceError(ConstraintViolationError):
    """Raised when a parent chain revisits a node."""

    default_error_code = "CIRCULAR_REFERENCE"

    def __init__(self, node: Any, chain: List[Any]):
        rendered = " -> ".join(str(c) for c in chain)
        super().__init__(
            f"Circular parent reference detected for {node}: {rendered}",
            context={"node": node, "chain": chain},
        )


class NoMembersAssignedError(ConstraintViolationError):
    """Raised when a draft audit is started without any active assignment."""

    default_error_code = "NO_MEMBERS_ASSIGNED"

    def __init__(self, audit_id: Any):
        super().__init__(
            f"Audit {audit_id} cannot be started without at least one active member",
            context={"audit_id": audit_id},
        )


class NoAuditableStandardsError(ConstraintViolationError):
    """Raised when a template yields no auditable, active standards."""

    default_error_code = "NO_AUDITABLE_STANDARDS"

    def __init__(self, template_id: Any):
        super().__init__(
            f"Template {template_id} has no auditable, active standards",
            context={"template_id": template_id},
        )


# =============================================================================
# Weight calculator
# =============================================================================


class WeightError(AuditFlowError):
    """Base exception for numeric weight invariant failures."""

    default_error_code = "WEIGHT_ERROR"


class WeightSumInvalidError(WeightError):
    """Raised when a weight set does not sum to 100 within tolerance."""

    default_error_code = "WEIGHT_SUM_INVALID"

    def __init__(self, total: float, tolerance: float = 0.01, scope: Optional[str] = None):
        where = f" for {scope}" if scope else ""
        super().__init__(
            f"Weights{where} must sum to 100 (actual: {total:.2f}, tolerance: {tolerance})",
            context={"total": total, "tolerance": tolerance, "scope": scope},
        )
        self.total = total


class OutOfRangeError(WeightError):
    """Raised when a numeric value is outside its allowed bounds."""

    default_error_code = "OUT_OF_RANGE"

    def __init__(self, field: str, value: Any, minimum: Any, maximum: Any = None):
        bounds = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        super().__init__(
            f"{field} must be {bounds} (got {value})",
            context={"field": field, "value": value, "minimum": minimum, "maximum": maximum},
        )


class InvalidIndexError(WeightError):
    """Raised when a weight index is out of bounds or an operation would empty the list."""

    default_error_code = "INVALID_INDEX"

    def __init__(self, index: int, length: int, reason: Optional[str] = None):
        super().__init__(
            reason or f"Index {index} is out of bounds for {length} weight(s)",
            context={"index": index, "length": length},
        )


# =============================================================================
# Evaluation completeness
# =============================================================================


class IncompleteEvaluationError(AuditFlowError):
    """
    Raised when a response lacks required fields for a status transition,
    or when the optional completeness check finds unfinished responses.

    Attributes:
        missing_fields: Names of the fields that are still null
    """

    default_error_code = "INCOMPLETE_EVALUATION"

    def __init__(
        self,
        entity_id: Any,
        missing_fields: List[str],
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        merged = {"entity_id": entity_id, "missing_fields": missing_fields}
        merged.update(context or {})
        super().__init__(
            message or f"Response {entity_id} cannot be completed; missing: {', '.join(missing_fields)}",
            context=merged,
        )
        self.missing_fields = missing_fields
