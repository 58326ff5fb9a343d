"""
Audit Repository

Provides audit-specific query methods (code lookup and generation, revision
numbering) and the assignment repository for audit team members.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..database import Audit, AuditAssignment
from ..models.enums import AuditRole, AuditStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository[Audit]):
    """
    Repository for Audit operations.

    Example:
        repo = AuditRepository(db)
        code = repo.generate_next_code()  # "AUD-2026-004"
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db, Audit)

    def find_by_code(self, code: str) -> Optional[Audit]:
        return self.find_one(code=code)

    def find_by_status(self, status: AuditStatus) -> List[Audit]:
        return self.find_many(order_by=[("created_at", "desc")], status=status)

    def find_revisions(self, parent_audit_id: Any) -> List[Audit]:
        """Revisions created from an audit, oldest first."""
        return self.find_many(order_by=[("revision_number", "asc")], parent_audit_id=parent_audit_id)

    def get_max_revision_number(self, parent_audit_id: Any) -> Optional[int]:
        """
        Highest revision number among audits created from ``parent_audit_id``.

        Returns:
            The maximum, or None if the audit has no revisions yet
        """
        start_time = time.time()
        stmt = select(func.max(Audit.revision_number)).where(Audit.parent_audit_id == parent_audit_id)
        try:
            result = self.db.execute(stmt).scalar()
        except Exception as e:
            self.logger.error(f"Error in get_max_revision_number for {parent_audit_id}: {e}")
            raise

        self._log_query_performance(
            operation="get_max_revision_number",
            filters={"parent_audit_id": parent_audit_id},
            duration=time.time() - start_time,
        )
        return None if result is None else int(result)

    def generate_next_code(self, prefix: str = "AUD", year: Optional[int] = None) -> str:
        """
        Generate the next sequential audit code for a year.

        Format: PREFIX-YYYY-NNN (e.g. AUD-2026-001). The sequence number is
        zero-padded to three digits and keeps growing past 999.

        Args:
            prefix: Code prefix
            year: Calendar year, defaults to the current UTC year
        """
        year = year or datetime.now(timezone.utc).year
        code_prefix = f"{prefix}-{year}-"

        start_time = time.time()
        stmt = select(Audit.code).where(Audit.code.like(f"{code_prefix}%"))
        try:
            codes = self.db.execute(stmt).scalars().all()
        except Exception as e:
            self.logger.error(f"Error generating audit code for {code_prefix}: {e}")
            raise

        self._log_query_performance(
            operation="generate_next_code",
            filters={"prefix": code_prefix},
            duration=time.time() - start_time,
            result_count=len(codes),
        )

        last_number = 0
        for code in codes:
            suffix = code[len(code_prefix) :]
            if suffix.isdigit():
                last_number = max(last_number, int(suffix))

        return f"{code_prefix}{last_number + 1:03d}"


class AuditAssignmentRepository(BaseRepository[AuditAssignment]):
    """Repository for audit team assignments."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, AuditAssignment)

    def find_by_audit(self, audit_id: Any, active_only: bool = False) -> List[AuditAssignment]:
        if active_only:
            return self.find_many(order_by=[("created_at", "asc")], audit_id=audit_id, is_active=True)
        return self.find_many(order_by=[("created_at", "asc")], audit_id=audit_id)

    def is_user_assigned(self, audit_id: Any, user_id: Any, role: AuditRole) -> bool:
        """Whether the (audit, user, role) triple exists, active or not."""
        return self.exists(audit_id=audit_id, user_id=user_id, role=role)

    def count_active_members(self, audit_id: Any) -> int:
        return self.count(audit_id=audit_id, is_active=True)
