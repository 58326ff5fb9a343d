"""
Shared Enums

Closed status and classification types used by the ORM models, the state
machines and the scoring engine. Kept separate to avoid circular imports
between database, services and models.

Usage:
    from auditflow.models.enums import AuditStatus, ResponseStatus
"""

from enum import Enum


class TemplateStatus(str, Enum):
    """
    Publication state of a control template.

    Only published templates can seed audits; only draft templates can have
    their standard structure or weights changed.
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class AuditStatus(str, Enum):
    """Lifecycle of an audit: draft -> in_progress -> closed -> archived."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    ARCHIVED = "archived"


class ResponseStatus(str, Enum):
    """Lifecycle of a single control evaluation within an audit."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REVIEWED = "reviewed"


class ComplianceLevel(str, Enum):
    """Evaluator's verdict for one control."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"
    NOT_APPLICABLE = "not_applicable"


class AuditRole(str, Enum):
    """Role of a team member within an audit."""

    LEAD_AUDITOR = "lead_auditor"
    AUDITOR = "auditor"
    AUDITEE = "auditee"
    OBSERVER = "observer"


class AuditOperation(str, Enum):
    """Operations guarded by the audit state machine."""

    ASSIGN_MEMBER = "assign_member"
    START = "start"
    CLOSE = "close"
    ARCHIVE = "archive"
    CREATE_REVISION = "create_revision"
    EVALUATE = "evaluate"


class ResponseOperation(str, Enum):
    """Operations guarded by the response state machine."""

    START = "start"
    UPDATE = "update"
    COMPLETE = "complete"
    REVIEW = "review"
    RESET = "reset"


class RebalanceMode(str, Enum):
    """Strategies for restoring a template's weight sum."""

    EQUAL = "equal"
    NORMALIZE = "normalize"
