"""
AuditFlow Utility Functions
Shared utilities across services
"""

from auditflow.utils.logging_security import configure_logging, sanitize_for_log  # noqa: F401
