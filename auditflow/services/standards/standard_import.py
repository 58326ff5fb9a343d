"""
Standard Import Service

Inserts a flat, already-parsed list of standards (parents referenced by
code) into a draft template as one atomic unit:

1. Validate the batch structure (HierarchyValidator)
2. Reject codes that already exist in the template
3. Insert in ascending hierarchy level so parents exist before children
4. Validate the auditable weight sum over the template before committing
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ...database import Standard, unit_of_work
from ...exceptions import ConstraintViolationError, DuplicateCodeError
from ...models.standard_models import ImportStandard
from ...repositories import StandardRepository
from ..templates import TemplateGate
from ..weights import WeightCalculator
from .hierarchy_validator import HierarchyValidator

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auditflow.audit")


class StandardImportService:
    """
    Bulk insert of standards into a draft template.

    Example:
        service = StandardImportService(db)
        created = service.import_standards(template_id, [
            ImportStandard(code="A", title="Group"),
            ImportStandard(code="A.1", title="Control", parent_code="A", is_auditable=True, weight=100),
        ])
    """

    def __init__(self, db: Session, calculator: Optional[WeightCalculator] = None):
        self.db = db
        self.standards = StandardRepository(db)
        self.calculator = calculator or WeightCalculator()
        self.gate = TemplateGate(db, calculator=self.calculator)

    def import_standards(self, template_id: Any, items: Sequence[ImportStandard]) -> List[Standard]:
        """
        Import a batch of standards.

        Args:
            template_id: Draft template receiving the standards
            items: Flat list with parent references by code

        Returns:
            Created standards in insertion order

        Raises:
            TemplateNotEditableError: Template is not a draft
            ConstraintViolationError: Batch has structural issues (all issues in ``.issues``)
            DuplicateCodeError: A code already exists in the template
            WeightSumInvalidError: Resulting auditable weights do not sum to 100
        """
        issues = HierarchyValidator.validate(items)
        if issues:
            logger.warning(f"Import into template {template_id} rejected: {len(issues)} hierarchy issue(s)")
            raise ConstraintViolationError(
                f"Import contains {len(issues)} hierarchy issue(s)",
                context={"template_id": template_id},
                issues=[issue.model_dump() for issue in issues],
            )

        with unit_of_work(self.db):
            self.gate.require_editable(template_id, operation="import standards")

            for item in items:
                if self.standards.exists_by_code_in_template(template_id, item.code):
                    raise DuplicateCodeError("Standard", item.code, scope_id=template_id)

            levels = HierarchyValidator.compute_levels(items)
            ids_by_code: Dict[str, Any] = {}
            created: List[Standard] = []

            for item in HierarchyValidator.insertion_order(items):
                standard = Standard(
                    template_id=template_id,
                    parent_id=ids_by_code[item.parent_code] if item.parent_code is not None else None,
                    code=item.code,
                    title=item.title,
                    description=item.description,
                    order=item.order,
                    level=levels[item.code],
                    is_auditable=item.is_auditable,
                    is_active=item.is_active,
                    weight=item.weight,
                    auditor_guidance=item.auditor_guidance,
                )
                self.standards.save(standard)
                ids_by_code[item.code] = standard.id
                created.append(standard)

            weights = [s.weight for s in self.standards.find_auditable_active_by_template(template_id)]
            self.calculator.validate_sum(weights, scope=f"template {template_id}")

        audit_logger.info(
            f"Imported {len(created)} standard(s) into template {template_id}",
            extra={"event_type": "STANDARDS_IMPORTED", "template_id": str(template_id), "count": len(created)},
        )
        return created
