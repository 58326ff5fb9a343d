"""
AuditFlow - Audit Workflow & Weighted Compliance Scoring Engine

Drives compliance audits against versioned control templates:
- Weighted, hierarchical standard trees (weights of auditable standards sum to 100)
- Audit lifecycle (draft -> in_progress -> closed -> archived) with revisions
- Response lifecycle (not_started -> in_progress -> completed -> reviewed)
- Deterministic weighted scoring and maturity aggregation

Usage:
    from auditflow.database import SessionLocal
    from auditflow.services.audits import AuditLifecycleService

    db = SessionLocal()
    audit = AuditLifecycleService(db).create_audit(payload)
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
