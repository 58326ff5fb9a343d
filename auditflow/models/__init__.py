"""
AuditFlow Models Package
Enums and Pydantic payload/result models (ORM models live in auditflow.database)
"""

from .audit_models import AssignmentCreate, AuditCreate, ResponseUpdate, RevisionCreate
from .enums import (
    AuditOperation,
    AuditRole,
    AuditStatus,
    ComplianceLevel,
    RebalanceMode,
    ResponseOperation,
    ResponseStatus,
    TemplateStatus,
)
from .scoring_models import (
    AuditStats,
    ComplianceMetrics,
    ProgressStats,
    ResponseSnapshot,
    ScoreStatistics,
    WeightStatistics,
)
from .standard_models import HierarchyIssue, ImportStandard, LevelMismatch, StandardCreate, StandardNode

__all__ = [
    # Enums
    "AuditOperation",
    "AuditRole",
    "AuditStatus",
    "ComplianceLevel",
    "RebalanceMode",
    "ResponseOperation",
    "ResponseStatus",
    "TemplateStatus",
    # Payloads
    "AssignmentCreate",
    "AuditCreate",
    "ResponseUpdate",
    "RevisionCreate",
    "StandardCreate",
    "ImportStandard",
    # Results
    "AuditStats",
    "ComplianceMetrics",
    "HierarchyIssue",
    "LevelMismatch",
    "ProgressStats",
    "ResponseSnapshot",
    "ScoreStatistics",
    "StandardNode",
    "WeightStatistics",
]
