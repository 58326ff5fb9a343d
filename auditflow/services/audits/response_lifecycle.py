"""
Response Lifecycle Service

Drives each control evaluation through
NOT_STARTED -> IN_PROGRESS -> COMPLETED -> REVIEWED, with ``reset`` back to
NOT_STARTED. Every mutation requires the owning audit to be IN_PROGRESS.

Responses are created in bulk when an audit is created. Each one holds a
frozen copy of its standard's weight so later template edits never change
the math of an existing audit.
"""

import logging
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ...config import get_settings
from ...database import Audit, AuditResponse, unit_of_work, utcnow
from ...exceptions import IncompleteEvaluationError, NoAuditableStandardsError, NotFoundError, OutOfRangeError
from ...models.audit_models import ResponseUpdate
from ...models.enums import AuditOperation, ResponseOperation, ResponseStatus
from ...repositories import (
    AuditRepository,
    AuditResponseRepository,
    MaturityFrameworkRepository,
    StandardRepository,
)
from .state_machine import transition_audit, transition_response

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auditflow.audit")

# Fields cleared by reset; the assignee is kept
EVALUATION_FIELDS = (
    "score",
    "compliance_level",
    "achieved_maturity_level",
    "findings",
    "recommendations",
    "notes",
    "reviewed_by",
    "reviewed_at",
)


class ResponseLifecycleService:
    """
    Operations on audit responses.

    Example:
        service = ResponseLifecycleService(db)
        service.update_evaluation(response_id, ResponseUpdate(score=80, compliance_level="partial"))
        service.mark_completed(response_id)
    """

    def __init__(self, db: Session):
        self.db = db
        self.audits = AuditRepository(db)
        self.responses = AuditResponseRepository(db)
        self.standards = StandardRepository(db)
        self.frameworks = MaturityFrameworkRepository(db)
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize_responses(self, audit_id: Any) -> List[AuditResponse]:
        """
        Create one NOT_STARTED response per auditable, active standard of the audit's template.

        Idempotent: when the audit already has responses they are returned
        unchanged. The existence check and the inserts share one unit of work.

        Raises:
            NotFoundError: Audit does not exist
            NoAuditableStandardsError: Template has no auditable, active standards
        """
        with unit_of_work(self.db):
            audit = self.audits.find_by_id(audit_id)
            if audit is None:
                raise NotFoundError("Audit", audit_id)

            existing = self.responses.find_by_audit(audit.id)
            if existing:
                logger.debug(f"Audit {audit.id} already has {len(existing)} response(s); skipping initialization")
                return existing

            standards = self.standards.find_auditable_active_by_template(audit.template_id)
            if not standards:
                raise NoAuditableStandardsError(audit.template_id)

            created = self.responses.save_many(
                AuditResponse(
                    audit_id=audit.id,
                    standard_id=standard.id,
                    weight=standard.weight,
                    status=ResponseStatus.NOT_STARTED,
                )
                for standard in standards
            )

        audit_logger.info(
            f"Initialized {len(created)} response(s) for audit {audit.id}",
            extra={"event_type": "RESPONSES_INITIALIZED", "audit_id": str(audit.id), "count": len(created)},
        )
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_response(self, response_id: Any) -> AuditResponse:
        response = self.responses.find_by_id(response_id)
        if response is None:
            raise NotFoundError("AuditResponse", response_id)
        return response

    def list_responses(
        self,
        audit_id: Any,
        status: Optional[ResponseStatus] = None,
        assigned_user_id: Optional[UUID] = None,
    ) -> List[AuditResponse]:
        filters = {}
        if status is not None:
            filters["status"] = ResponseStatus(status)
        if assigned_user_id is not None:
            filters["assigned_user_id"] = assigned_user_id
        return self.responses.find_by_audit(audit_id, **filters)

    def validate_all_complete(self, audit_id: Any) -> None:
        """
        Optional completeness check a caller may run before closing an audit.

        Raises:
            IncompleteEvaluationError: At least one response is neither completed nor reviewed
        """
        pending = [r for r in self.responses.find_by_audit(audit_id) if not r.is_complete]
        if pending:
            raise IncompleteEvaluationError(
                audit_id,
                ["status"],
                message=f"Audit {audit_id} has {len(pending)} response(s) not completed",
                context={"incomplete_response_ids": [r.id for r in pending]},
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_response(self, response_id: Any, user_id: Optional[UUID] = None) -> AuditResponse:
        """Mark a response as being worked on, optionally claiming it for ``user_id``."""
        with unit_of_work(self.db):
            response, _ = self._load_active(response_id, ResponseOperation.START)
            response.status = transition_response(response.status, ResponseOperation.START, response.id)
            if user_id is not None:
                response.assigned_user_id = user_id
            self.responses.save(response)
        return response

    def update_evaluation(self, response_id: Any, data: ResponseUpdate) -> AuditResponse:
        """
        Apply the fields explicitly set on ``data``.

        Updating a NOT_STARTED or COMPLETED response moves it to IN_PROGRESS.
        A REVIEWED response must be reset before it can change.

        Raises:
            AuditNotActiveError: Owning audit is not IN_PROGRESS
            OutOfRangeError: Score outside 0-100 or maturity outside the framework bounds
            InvalidStateTransitionError: Response is REVIEWED
        """
        changes = data.model_dump(exclude_unset=True)

        with unit_of_work(self.db):
            response, audit = self._load_active(response_id, ResponseOperation.UPDATE)
            new_status = transition_response(response.status, ResponseOperation.UPDATE, response.id)

            score = changes.get("score")
            if score is not None and not 0 <= score <= 100:
                raise OutOfRangeError("score", score, 0, 100)

            level = changes.get("achieved_maturity_level")
            if level is not None:
                minimum, maximum = self._maturity_bounds(audit)
                if not minimum <= level <= maximum:
                    raise OutOfRangeError("achieved_maturity_level", level, minimum, maximum)

            for field, value in changes.items():
                setattr(response, field, value)
            response.status = new_status
            self.responses.save(response)

        logger.info(f"Response {response.id} updated: {', '.join(sorted(changes)) or 'no fields'}")
        return response

    def mark_completed(self, response_id: Any) -> AuditResponse:
        """
        Raises:
            IncompleteEvaluationError: ``score`` or ``compliance_level`` is missing
        """
        with unit_of_work(self.db):
            response, _ = self._load_active(response_id, ResponseOperation.COMPLETE)
            new_status = transition_response(response.status, ResponseOperation.COMPLETE, response.id)

            missing = [f for f in ("score", "compliance_level") if getattr(response, f) is None]
            if missing:
                logger.warning(f"Response {response.id} cannot be completed; missing {missing}")
                raise IncompleteEvaluationError(response.id, missing)

            response.status = new_status
            self.responses.save(response)

        audit_logger.info(
            f"Response {response.id} completed",
            extra={"event_type": "RESPONSE_COMPLETED", "audit_id": str(response.audit_id)},
        )
        return response

    def mark_reviewed(self, response_id: Any, reviewer_id: UUID) -> AuditResponse:
        """
        Record a review of a completed response.

        Raises:
            NotCompletedError: Response is not COMPLETED
        """
        with unit_of_work(self.db):
            response, _ = self._load_active(response_id, ResponseOperation.REVIEW)
            response.status = transition_response(response.status, ResponseOperation.REVIEW, response.id)
            response.reviewed_by = reviewer_id
            response.reviewed_at = utcnow()
            self.responses.save(response)

        audit_logger.info(
            f"Response {response.id} reviewed by {reviewer_id}",
            extra={"event_type": "RESPONSE_REVIEWED", "audit_id": str(response.audit_id)},
        )
        return response

    def reset(self, response_id: Any) -> AuditResponse:
        """
        Return a started response to NOT_STARTED and clear its evaluation.

        Raises:
            InvalidStateTransitionError: Response is already NOT_STARTED
        """
        with unit_of_work(self.db):
            response, _ = self._load_active(response_id, ResponseOperation.RESET)
            response.status = transition_response(response.status, ResponseOperation.RESET, response.id)
            for field in EVALUATION_FIELDS:
                setattr(response, field, None)
            self.responses.save(response)

        audit_logger.info(
            f"Response {response.id} reset",
            extra={"event_type": "RESPONSE_RESET", "audit_id": str(response.audit_id)},
        )
        return response

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_active(self, response_id: Any, operation: ResponseOperation) -> Tuple[AuditResponse, Audit]:
        response = self.get_response(response_id)
        audit = self.audits.find_by_id(response.audit_id)
        if audit is None:
            raise NotFoundError("Audit", response.audit_id)
        try:
            transition_audit(audit.status, AuditOperation.EVALUATE, audit.id)
        except Exception:
            logger.warning(
                f"Rejected {operation.value} on response {response.id}: audit {audit.id} is {audit.status.value}"
            )
            raise
        return response, audit

    def _maturity_bounds(self, audit: Audit) -> Tuple[int, int]:
        if audit.framework_id is not None:
            framework = self.frameworks.find_by_id(audit.framework_id)
            if framework is not None:
                return framework.min_level, framework.max_level
        return self.settings.default_min_maturity_level, self.settings.default_max_maturity_level
