"""
AuditFlow Services

Business logic for the audit workflow and weighted compliance scoring:

- weights: pure weight arithmetic (sum, normalize, redistribute, drag edits)
- standards: standard tree maintenance, hierarchy validation, bulk import
- templates: publication gate for audit creation and structure edits
- audits: audit and response lifecycles and their state machines
- scoring: read-only score, maturity, compliance and progress aggregation
"""

from .audits import AuditLifecycleService, ResponseLifecycleService
from .scoring import AuditScoringService
from .standards import HierarchyValidator, StandardImportService, StandardTreeService
from .templates import TemplateGate
from .weights import WeightCalculator

__all__ = [
    "AuditLifecycleService",
    "AuditScoringService",
    "HierarchyValidator",
    "ResponseLifecycleService",
    "StandardImportService",
    "StandardTreeService",
    "TemplateGate",
    "WeightCalculator",
]
