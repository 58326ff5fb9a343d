"""
Template Gate

Read-only checks of a template's publication state. Audits may only be
created from published templates, and a template's standard structure may
only change while it is a draft.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...database import Template, unit_of_work
from ...exceptions import NotFoundError, TemplateNotEditableError, TemplateNotPublishedError
from ...models.enums import TemplateStatus
from ...repositories import StandardRepository, TemplateRepository
from ..weights import WeightCalculator

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auditflow.audit")


class TemplateGate:
    """
    Gatekeeper for template state.

    Example:
        gate = TemplateGate(db)
        template = gate.require_published(template_id)
    """

    def __init__(self, db: Session, calculator: Optional[WeightCalculator] = None):
        self.db = db
        self.templates = TemplateRepository(db)
        self.standards = StandardRepository(db)
        self.calculator = calculator or WeightCalculator()

    def get_template(self, template_id: Any) -> Template:
        template = self.templates.find_by_id(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def require_published(self, template_id: Any) -> Template:
        """
        Raises:
            NotFoundError: Template does not exist
            TemplateNotPublishedError: Template is draft or archived
        """
        template = self.get_template(template_id)
        if template.status != TemplateStatus.PUBLISHED:
            logger.warning(f"Template {template_id} rejected for audit creation: status={template.status.value}")
            raise TemplateNotPublishedError(template_id, template.status)
        return template

    def require_editable(self, template_id: Any, operation: str = "modify standards") -> Template:
        """
        Raises:
            NotFoundError: Template does not exist
            TemplateNotEditableError: Template is published or archived
        """
        template = self.get_template(template_id)
        if not template.is_editable:
            logger.warning(f"Template {template_id} is not editable: status={template.status.value}")
            raise TemplateNotEditableError(template_id, template.status, operation=operation)
        return template

    def publish(self, template_id: Any) -> Template:
        """
        Publish a draft template after confirming its auditable weights sum to 100.

        Raises:
            TemplateNotEditableError: Template is not a draft
            WeightSumInvalidError: Auditable, active weights are not conservative
        """
        with unit_of_work(self.db):
            template = self.require_editable(template_id, operation="publish")
            weights = [s.weight for s in self.standards.find_auditable_active_by_template(template_id)]
            self.calculator.validate_sum(weights, scope=f"template {template_id}")

            template.status = TemplateStatus.PUBLISHED
            self.templates.save(template)

        audit_logger.info(
            f"Template {template_id} published",
            extra={"event_type": "TEMPLATE_PUBLISHED", "template_id": str(template_id)},
        )
        return template
