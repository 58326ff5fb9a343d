"""
Audit and response lifecycles
"""

from .audit_lifecycle import AuditLifecycleService
from .response_lifecycle import ResponseLifecycleService
from .state_machine import (
    AUDIT_TRANSITIONS,
    RESPONSE_TRANSITIONS,
    can_transition_audit,
    can_transition_response,
    transition_audit,
    transition_response,
)

__all__ = [
    "AuditLifecycleService",
    "ResponseLifecycleService",
    "AUDIT_TRANSITIONS",
    "RESPONSE_TRANSITIONS",
    "can_transition_audit",
    "can_transition_response",
    "transition_audit",
    "transition_response",
]
