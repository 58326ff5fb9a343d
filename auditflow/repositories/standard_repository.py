"""
Standard Repository

Provides standard-tree specific query methods: children counts, sibling
ordering, per-template code uniqueness and the auditable weight set.
"""

import logging
import time
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..database import Standard
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class StandardRepository(BaseRepository[Standard]):
    """
    Repository for Standard operations.

    Example:
        repo = StandardRepository(db)
        leaves = repo.find_auditable_active_by_template(template_id)
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db, Standard)

    def find_by_template(self, template_id: Any) -> List[Standard]:
        """
        Find every standard of a template in tree order.

        Args:
            template_id: Owning template id

        Returns:
            Standards sorted by level, then display order, then code
        """
        return self.find_many(
            order_by=[("level", "asc"), ("order", "asc"), ("code", "asc")],
            template_id=template_id,
        )

    def find_auditable_active_by_template(self, template_id: Any) -> List[Standard]:
        """
        Find the standards that receive responses and carry the weight budget.

        The order is stable (level, order, code) so that weight operations
        which treat the last element specially are reproducible.
        """
        return self.find_many(
            order_by=[("level", "asc"), ("order", "asc"), ("code", "asc")],
            template_id=template_id,
            is_auditable=True,
            is_active=True,
        )

    def find_by_code(self, template_id: Any, code: str) -> Optional[Standard]:
        return self.find_one(template_id=template_id, code=code)

    def find_children(self, parent_id: Any) -> List[Standard]:
        return self.find_many(order_by=[("order", "asc"), ("code", "asc")], parent_id=parent_id)

    def count_children(self, standard_id: Any) -> int:
        """Count direct children, active or not."""
        return self.count(parent_id=standard_id)

    def exists_by_code_in_template(self, template_id: Any, code: str) -> bool:
        return self.exists(template_id=template_id, code=code)

    def get_max_order_by_parent(self, template_id: Any, parent_id: Optional[Any]) -> int:
        """
        Highest display order among siblings, or -1 when there are none.

        Args:
            template_id: Owning template id
            parent_id: Parent standard id, None for roots
        """
        start_time = time.time()
        stmt = select(func.max(Standard.order)).where(Standard.template_id == template_id)
        if parent_id is None:
            stmt = stmt.where(Standard.parent_id.is_(None))
        else:
            stmt = stmt.where(Standard.parent_id == parent_id)

        try:
            result = self.db.execute(stmt).scalar()
        except Exception as e:
            self.logger.error(f"Error in get_max_order_by_parent for template {template_id}: {e}")
            raise

        self._log_query_performance(
            operation="get_max_order_by_parent",
            filters={"template_id": template_id, "parent_id": parent_id},
            duration=time.time() - start_time,
        )
        return -1 if result is None else int(result)
