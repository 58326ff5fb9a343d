"""
Repository Pattern for SQLAlchemy Operations
Centralized query logic for the audit workflow tables
"""

from .audit_repository import AuditAssignmentRepository, AuditRepository
from .base_repository import BaseRepository
from .response_repository import AuditResponseRepository
from .standard_repository import StandardRepository
from .template_repository import MaturityFrameworkRepository, TemplateRepository

__all__ = [
    "BaseRepository",
    "AuditRepository",
    "AuditAssignmentRepository",
    "AuditResponseRepository",
    "MaturityFrameworkRepository",
    "StandardRepository",
    "TemplateRepository",
]
