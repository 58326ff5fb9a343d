"""
Template Repository

Provides lookups for Template and MaturityFramework records.
The core only reads templates; status changes go through the template gate.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..database import MaturityFramework, Template
from ..models.enums import TemplateStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TemplateRepository(BaseRepository[Template]):
    """
    Repository for Template operations.

    Example:
        repo = TemplateRepository(db)
        published = repo.find_by_status(TemplateStatus.PUBLISHED)
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db, Template)

    def find_by_status(self, status: TemplateStatus) -> List[Template]:
        """
        Find templates in a given lifecycle status.

        Args:
            status: Template status

        Returns:
            Templates ordered by name
        """
        return self.find_many(order_by=[("name", "asc")], status=status)

    def find_by_name_and_version(self, name: str, version: str) -> Optional[Template]:
        return self.find_one(name=name, version=version)


class MaturityFrameworkRepository(BaseRepository[MaturityFramework]):
    """Repository for maturity frameworks that bound achieved maturity levels."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, MaturityFramework)
