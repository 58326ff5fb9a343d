"""
Audit Response Repository

Provides response lookups per audit, standard, status and assignee.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..database import AuditResponse
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AuditResponseRepository(BaseRepository[AuditResponse]):
    """
    Repository for AuditResponse operations.

    Example:
        repo = AuditResponseRepository(db)
        responses = repo.find_by_audit(audit_id)
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db, AuditResponse)

    def find_by_audit(self, audit_id: Any, **filters: Any) -> List[AuditResponse]:
        """
        Find the responses of an audit in creation order.

        Args:
            audit_id: Owning audit id
            **filters: Extra equality filters (status, assigned_user_id)
        """
        return self.find_many(order_by=[("created_at", "asc")], audit_id=audit_id, **filters)

    def find_by_audit_and_standard(self, audit_id: Any, standard_id: Any) -> Optional[AuditResponse]:
        return self.find_one(audit_id=audit_id, standard_id=standard_id)

    def count_by_audit(self, audit_id: Any) -> int:
        return self.count(audit_id=audit_id)
