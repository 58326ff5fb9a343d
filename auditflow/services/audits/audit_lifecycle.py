"""
Audit Lifecycle Service

Drives an audit through DRAFT -> IN_PROGRESS -> CLOSED -> ARCHIVED and
manages its revision chain and team assignments.

Multi-record operations run inside a single unit of work:
- create_audit: audit row + one response per auditable standard
- close_audit: score freeze + status change
- create_revision: revision row + fresh responses (prior answers are not copied)

All business-rule checks happen before the first write, so a rejected
operation never leaves a partially initialized or closed-but-unscored audit.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...config import get_settings
from ...database import Audit, AuditAssignment, unit_of_work, utcnow
from ...exceptions import (
    ConstraintViolationError,
    DuplicateAssignmentError,
    DuplicateCodeError,
    NoAuditableStandardsError,
    NoMembersAssignedError,
    NotFoundError,
)
from ...models.audit_models import AssignmentCreate, AuditCreate, RevisionCreate
from ...models.enums import AuditOperation, AuditStatus
from ...models.scoring_models import AuditStats
from ...repositories import (
    AuditAssignmentRepository,
    AuditRepository,
    AuditResponseRepository,
    MaturityFrameworkRepository,
    StandardRepository,
)
from ...utils.logging_security import sanitize_for_log
from ..scoring import AuditScoringService
from ..templates import TemplateGate
from ..weights import WeightCalculator
from .response_lifecycle import ResponseLifecycleService
from .state_machine import transition_audit

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auditflow.audit")


class AuditLifecycleService:
    """
    Operations on the audit aggregate.

    Example:
        service = AuditLifecycleService(db)
        audit = service.create_audit(AuditCreate(name="ISO 27001 2026", template_id=tid, organization_id=oid))
        service.assign_member(audit.id, AssignmentCreate(user_id=uid, role=AuditRole.LEAD_AUDITOR))
        service.start_audit(audit.id)
        ...
        service.close_audit(audit.id)
    """

    def __init__(
        self,
        db: Session,
        calculator: Optional[WeightCalculator] = None,
        scoring: Optional[AuditScoringService] = None,
    ):
        self.db = db
        self.settings = get_settings()
        self.calculator = calculator or WeightCalculator()
        self.scoring = scoring or AuditScoringService()
        self.gate = TemplateGate(db, calculator=self.calculator)
        self.audits = AuditRepository(db)
        self.assignments = AuditAssignmentRepository(db)
        self.responses = AuditResponseRepository(db)
        self.standards = StandardRepository(db)
        self.frameworks = MaturityFrameworkRepository(db)
        self.response_service = ResponseLifecycleService(db)

    def get_audit(self, audit_id: Any) -> Audit:
        audit = self.audits.find_by_id(audit_id)
        if audit is None:
            raise NotFoundError("Audit", audit_id)
        return audit

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_audit(self, data: AuditCreate) -> Audit:
        """
        Create a DRAFT audit from a published template and seed its responses.

        Raises:
            TemplateNotPublishedError: Template is draft or archived
            NoAuditableStandardsError: Template has no auditable, active standards
            WeightSumInvalidError: Template weights are not conservative
            DuplicateCodeError: Supplied code is already used
            ConstraintViolationError: start_date is after end_date
            NotFoundError: Template or framework does not exist
        """
        with unit_of_work(self.db):
            self.gate.require_published(data.template_id)
            self._check_dates(data.start_date, data.end_date)
            self._check_template_weights(data.template_id)
            self._check_framework(data.framework_id)
            code = self._resolve_code(data.code)

            audit = Audit(
                code=code,
                name=data.name,
                description=data.description,
                template_id=data.template_id,
                organization_id=data.organization_id,
                framework_id=data.framework_id,
                parent_audit_id=None,
                revision_number=0,
                status=AuditStatus.DRAFT,
                start_date=data.start_date,
                end_date=data.end_date,
            )
            self.audits.save(audit)
            responses = self.response_service.initialize_responses(audit.id)

        audit_logger.info(
            f"Audit {audit.code} created from template {data.template_id} with {len(responses)} response(s)",
            extra={"event_type": "AUDIT_CREATED", "audit_id": str(audit.id), "audit_code": audit.code},
        )
        return audit

    def create_revision(self, audit_id: Any, data: Optional[RevisionCreate] = None) -> Audit:
        """
        Create a follow-up audit of a CLOSED audit.

        The revision references the same template and organization, may
        override the framework, starts in DRAFT and gets fresh responses.
        Its number is one above the highest of the source's own number and
        every revision already created from the source.

        Raises:
            NotClosedError: Source audit is not CLOSED
        """
        data = data or RevisionCreate()

        with unit_of_work(self.db):
            source = self.get_audit(audit_id)
            transition_audit(source.status, AuditOperation.CREATE_REVISION, source.id)

            framework_id = data.framework_id if data.framework_id is not None else source.framework_id
            self._check_dates(data.start_date, data.end_date)
            self._check_template_weights(source.template_id)
            self._check_framework(framework_id)

            latest = self.audits.get_max_revision_number(source.id)
            revision_number = max(source.revision_number, latest or 0) + 1

            revision = Audit(
                code=self._resolve_code(data.code),
                name=data.name or f"{source.name} (Revision {revision_number})",
                description=data.description if data.description is not None else source.description,
                template_id=source.template_id,
                organization_id=source.organization_id,
                framework_id=framework_id,
                parent_audit_id=source.id,
                revision_number=revision_number,
                status=AuditStatus.DRAFT,
                start_date=data.start_date,
                end_date=data.end_date,
            )
            self.audits.save(revision)
            self.response_service.initialize_responses(revision.id)

        audit_logger.info(
            f"Revision {revision_number} ({revision.code}) created from audit {source.code}",
            extra={"event_type": "REVISION_CREATED", "audit_id": str(revision.id), "parent_audit_id": str(source.id)},
        )
        return revision

    # ------------------------------------------------------------------
    # Team
    # ------------------------------------------------------------------

    def assign_member(self, audit_id: Any, data: AssignmentCreate) -> AuditAssignment:
        """
        Assign a user to a DRAFT audit.

        Raises:
            InvalidStateTransitionError: Audit is not DRAFT
            DuplicateAssignmentError: Same (audit, user, role) already exists
            NotFoundError: A scoped standard is not part of this audit
        """
        with unit_of_work(self.db):
            audit = self.get_audit(audit_id)
            transition_audit(audit.status, AuditOperation.ASSIGN_MEMBER, audit.id)

            if self.assignments.is_user_assigned(audit.id, data.user_id, data.role):
                raise DuplicateAssignmentError(audit.id, data.user_id, data.role)

            scoped_ids = None
            if data.assigned_standard_ids is not None:
                audit_standards = {r.standard_id for r in self.responses.find_by_audit(audit.id)}
                for standard_id in data.assigned_standard_ids:
                    if standard_id not in audit_standards:
                        raise NotFoundError("Standard", standard_id)
                scoped_ids = [str(s) for s in data.assigned_standard_ids]

            assignment = AuditAssignment(
                audit_id=audit.id,
                user_id=data.user_id,
                role=data.role,
                assigned_standard_ids=scoped_ids,
                notes=data.notes,
                is_active=True,
            )
            self.assignments.save(assignment)

        audit_logger.info(
            f"User {data.user_id} assigned to audit {audit.code} as {data.role.value}",
            extra={"event_type": "MEMBER_ASSIGNED", "audit_id": str(audit.id)},
        )
        return assignment

    def deactivate_member(self, assignment_id: Any) -> AuditAssignment:
        """Deactivate an assignment while the audit is still DRAFT."""
        with unit_of_work(self.db):
            assignment = self.assignments.find_by_id(assignment_id)
            if assignment is None:
                raise NotFoundError("AuditAssignment", assignment_id)
            audit = self.get_audit(assignment.audit_id)
            transition_audit(audit.status, AuditOperation.ASSIGN_MEMBER, audit.id)

            assignment.is_active = False
            self.assignments.save(assignment)

        logger.info(f"Assignment {assignment_id} deactivated on audit {audit.id}")
        return assignment

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_audit(self, audit_id: Any) -> Audit:
        """
        DRAFT -> IN_PROGRESS.

        Raises:
            NoMembersAssignedError: No active assignment exists
        """
        with unit_of_work(self.db):
            audit = self.get_audit(audit_id)
            new_status = transition_audit(audit.status, AuditOperation.START, audit.id)

            if self.assignments.count_active_members(audit.id) == 0:
                logger.warning(f"Audit {audit.id} cannot start: no active members")
                raise NoMembersAssignedError(audit.id)

            audit.status = new_status
            audit.actual_start_date = utcnow()
            self.audits.save(audit)

        audit_logger.info(
            f"Audit {audit.code} started",
            extra={"event_type": "AUDIT_STARTED", "audit_id": str(audit.id)},
        )
        return audit

    def close_audit(self, audit_id: Any, require_complete: bool = False) -> Audit:
        """
        IN_PROGRESS -> CLOSED, freezing overall_score and maturity_level.

        Response completeness is not required unless ``require_complete`` is set.

        Raises:
            InvalidStateTransitionError: Audit is not IN_PROGRESS
            IncompleteEvaluationError: ``require_complete`` and some response is unfinished
            WeightSumInvalidError: Response weights do not sum to 100
        """
        with unit_of_work(self.db):
            audit = self.get_audit(audit_id)
            new_status = transition_audit(audit.status, AuditOperation.CLOSE, audit.id)

            if require_complete:
                self.response_service.validate_all_complete(audit.id)

            responses = self.responses.find_by_audit(audit.id)
            self.calculator.validate_sum([r.weight for r in responses], scope=f"audit {audit.id}")

            audit.overall_score = self.scoring.overall_score(responses)
            audit.maturity_level = self.scoring.average_maturity_level(responses)
            audit.closed_at = utcnow()
            audit.status = new_status
            self.audits.save(audit)

        audit_logger.info(
            f"Audit {audit.code} closed: score={audit.overall_score}, maturity={audit.maturity_level}",
            extra={"event_type": "AUDIT_CLOSED", "audit_id": str(audit.id), "overall_score": audit.overall_score},
        )
        return audit

    def archive_audit(self, audit_id: Any) -> Audit:
        """CLOSED -> ARCHIVED; no computation."""
        with unit_of_work(self.db):
            audit = self.get_audit(audit_id)
            audit.status = transition_audit(audit.status, AuditOperation.ARCHIVE, audit.id)
            self.audits.save(audit)

        audit_logger.info(
            f"Audit {audit.code} archived",
            extra={"event_type": "AUDIT_ARCHIVED", "audit_id": str(audit.id)},
        )
        return audit

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_audit_stats(self, audit_id: Any) -> AuditStats:
        """Live score, maturity, progress and compliance figures; nothing is written."""
        audit = self.get_audit(audit_id)
        return self.scoring.build_stats(audit.id, self.responses.find_by_audit(audit.id))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_code(self, code: Optional[str]) -> str:
        if code is None:
            return self.audits.generate_next_code(prefix=self.settings.audit_code_prefix)
        code = code.strip()
        if self.audits.find_by_code(code) is not None:
            logger.warning(f"Audit code {sanitize_for_log(code)} already exists")
            raise DuplicateCodeError("Audit", code)
        return code

    def _check_template_weights(self, template_id: Any) -> None:
        standards = self.standards.find_auditable_active_by_template(template_id)
        if not standards:
            raise NoAuditableStandardsError(template_id)
        self.calculator.validate_sum([s.weight for s in standards], scope=f"template {template_id}")

    def _check_framework(self, framework_id: Any) -> None:
        if framework_id is not None and self.frameworks.find_by_id(framework_id) is None:
            raise NotFoundError("MaturityFramework", framework_id)

    @staticmethod
    def _check_dates(start_date: Any, end_date: Any) -> None:
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ConstraintViolationError(
                "Planned start date must not be after the end date",
                context={"start_date": start_date, "end_date": end_date},
            )
