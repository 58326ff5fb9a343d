"""
Weighted compliance scoring over audit responses
"""

from .audit_scoring import AuditScoringService

__all__ = ["AuditScoringService"]
