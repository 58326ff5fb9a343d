"""
Base Repository for SQLAlchemy Operations

Provides common CRUD operations and query patterns for all audit tables.
Implements consistent error handling, logging, and performance monitoring.

Repositories never commit: writes are flushed inside the caller's
``unit_of_work`` so multi-record operations stay atomic.
"""

import logging
import time
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config import get_settings

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations for ORM models.

    Features:
    - Generic type support for any declarative model
    - Consistent error handling and logging
    - Performance monitoring for slow queries
    - Equality filters and ordering helpers

    Example:
        class AuditRepository(BaseRepository[Audit]):
            def __init__(self, db: Session):
                super().__init__(db, Audit)
    """

    def __init__(self, db: Session, model: type):
        """
        Initialize repository with a session and a declarative model.

        Args:
            db: SQLAlchemy session (shared with the caller's unit of work)
            model: Declarative model class (e.g., Audit)
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")
        self._slow_query_threshold = get_settings().slow_query_threshold

    def find_by_id(self, entity_id: Any) -> Optional[T]:
        """
        Find a single row by primary key.

        Args:
            entity_id: Primary key value

        Returns:
            Row if found, None otherwise
        """
        start_time = time.time()
        try:
            result = self.db.get(self.model, entity_id)

            self._log_query_performance(
                operation="find_by_id", filters={"id": entity_id}, duration=time.time() - start_time
            )

            return result
        except Exception as e:
            self.logger.error(f"Error in find_by_id for {entity_id}: {e}")
            raise

    def find_one(self, **filters: Any) -> Optional[T]:
        """
        Find a single row matching equality filters.

        Example:
            audit = repo.find_one(code="AUD-2026-001")
        """
        start_time = time.time()
        try:
            stmt = select(self.model).filter_by(**filters).limit(1)
            result = self.db.execute(stmt).scalars().first()

            self._log_query_performance(operation="find_one", filters=filters, duration=time.time() - start_time)

            return result
        except Exception as e:
            self.logger.error(f"Error in find_one with filters {filters}: {e}")
            raise

    def find_many(
        self,
        order_by: Optional[Sequence[Tuple[str, str]]] = None,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> List[T]:
        """
        Find rows matching equality filters.

        Args:
            order_by: List of (column, "asc"|"desc") tuples
                      Example: [("level", "asc"), ("order", "asc")]
            limit: Maximum number of rows to return
            **filters: Column equality filters

        Returns:
            List of rows
        """
        start_time = time.time()
        try:
            stmt = select(self.model).filter_by(**filters)

            for column, direction in order_by or []:
                attr = getattr(self.model, column)
                stmt = stmt.order_by(attr.desc() if direction == "desc" else attr.asc())

            if limit is not None:
                stmt = stmt.limit(limit)

            result = list(self.db.execute(stmt).scalars().all())

            self._log_query_performance(
                operation="find_many",
                filters=filters,
                duration=time.time() - start_time,
                result_count=len(result),
            )

            return result
        except Exception as e:
            self.logger.error(f"Error in find_many with filters {filters}: {e}")
            raise

    def count(self, **filters: Any) -> int:
        """Count rows matching equality filters."""
        start_time = time.time()
        try:
            stmt = select(func.count()).select_from(self.model).filter_by(**filters)
            result = int(self.db.execute(stmt).scalar_one())

            self._log_query_performance(operation="count", filters=filters, duration=time.time() - start_time)

            return result
        except Exception as e:
            self.logger.error(f"Error in count with filters {filters}: {e}")
            raise

    def exists(self, **filters: Any) -> bool:
        """Check whether any row matches equality filters."""
        return self.count(**filters) > 0

    def save(self, entity: T) -> T:
        """
        Add or update a row and flush it so generated values are available.

        Args:
            entity: ORM instance

        Returns:
            The same instance, flushed
        """
        start_time = time.time()
        try:
            self.db.add(entity)
            self.db.flush()

            self._log_query_performance(
                operation="save", filters={"id": getattr(entity, "id", None)}, duration=time.time() - start_time
            )

            return entity
        except Exception as e:
            self.logger.error(f"Error saving {self.model.__name__}: {e}")
            raise

    def save_many(self, entities: Iterable[T]) -> List[T]:
        """Add several rows in one flush."""
        start_time = time.time()
        items = list(entities)
        try:
            self.db.add_all(items)
            self.db.flush()

            self._log_query_performance(
                operation="save_many", filters={}, duration=time.time() - start_time, result_count=len(items)
            )

            return items
        except Exception as e:
            self.logger.error(f"Error saving {len(items)} {self.model.__name__} rows: {e}")
            raise

    def delete(self, entity: T) -> None:
        """Delete a row (cascades follow the model's relationships)."""
        start_time = time.time()
        try:
            self.db.delete(entity)
            self.db.flush()

            self._log_query_performance(
                operation="delete", filters={"id": getattr(entity, "id", None)}, duration=time.time() - start_time
            )
        except Exception as e:
            self.logger.error(f"Error deleting {self.model.__name__}: {e}")
            raise

    def _log_query_performance(
        self,
        operation: str,
        filters: Dict[str, Any],
        duration: float,
        result_count: Optional[int] = None,
    ) -> None:
        """
        Log query performance and warn about slow queries.

        Args:
            operation: Operation name (find_one, find_many, etc.)
            filters: Filters applied
            duration: Query duration in seconds
            result_count: Number of results (if applicable)
        """
        log_msg = f"{operation} completed in {duration:.3f}s"

        if result_count is not None:
            log_msg += f" ({result_count} results)"

        if duration > self._slow_query_threshold:
            self.logger.warning(f"SLOW QUERY: {log_msg} - Filters: {filters}")
        else:
            self.logger.debug(log_msg)
