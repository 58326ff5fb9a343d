"""
Integration tests for bulk standard import and template publication.
"""

from uuid import uuid4

import pytest

from auditflow.database import Template
from auditflow.exceptions import (
    ConstraintViolationError,
    DuplicateCodeError,
    NotFoundError,
    TemplateNotEditableError,
    TemplateNotPublishedError,
    WeightSumInvalidError,
)
from auditflow.models.enums import TemplateStatus
from auditflow.models.standard_models import ImportStandard
from auditflow.repositories import StandardRepository
from auditflow.services.standards import StandardImportService
from auditflow.services.templates import TemplateGate


@pytest.fixture
def draft_template(db_session) -> Template:
    template = Template(name="NIST CSF", version="2.0", status=TemplateStatus.DRAFT)
    db_session.add(template)
    db_session.commit()
    return template


def row(code, parent=None, auditable=False, weight=0.0, **kwargs) -> ImportStandard:
    return ImportStandard(
        code=code, title=f"Standard {code}", parent_code=parent, is_auditable=auditable, weight=weight, **kwargs
    )


@pytest.mark.integration
class TestImportStandards:
    """Test the atomic bulk import."""

    def test_children_listed_before_parents(self, db_session, draft_template) -> None:
        items = [
            row("GV.OC-01", parent="GV.OC", auditable=True, weight=60),
            row("GV.OC-02", parent="GV.OC", auditable=True, weight=40, order=1),
            row("GV.OC", parent="GV"),
            row("GV"),
        ]

        created = StandardImportService(db_session).import_standards(draft_template.id, items)

        assert [s.code for s in created] == ["GV", "GV.OC", "GV.OC-01", "GV.OC-02"]
        by_code = {s.code: s for s in created}
        assert by_code["GV.OC-01"].parent_id == by_code["GV.OC"].id
        assert by_code["GV.OC-01"].level == 3
        assert StandardRepository(db_session).count(template_id=draft_template.id) == 4

    def test_structural_issues_reported_together(self, db_session, draft_template) -> None:
        items = [row("A"), row("A"), row("B", parent="MISSING")]

        with pytest.raises(ConstraintViolationError) as exc_info:
            StandardImportService(db_session).import_standards(draft_template.id, items)

        fields = sorted(issue["field"] for issue in exc_info.value.issues)
        assert fields == ["code", "parent_code"]
        assert StandardRepository(db_session).count(template_id=draft_template.id) == 0

    def test_code_already_in_template(self, db_session, draft_template) -> None:
        service = StandardImportService(db_session)
        service.import_standards(draft_template.id, [row("A", auditable=True, weight=100)])

        with pytest.raises(DuplicateCodeError):
            service.import_standards(draft_template.id, [row("A")])

    def test_weight_failure_rolls_back(self, db_session, draft_template) -> None:
        items = [row("A", auditable=True, weight=50), row("B", auditable=True, weight=40)]

        with pytest.raises(WeightSumInvalidError) as exc_info:
            StandardImportService(db_session).import_standards(draft_template.id, items)

        assert exc_info.value.total == 90.0
        assert StandardRepository(db_session).count(template_id=draft_template.id) == 0

    def test_published_template_rejected(self, db_session, make_template) -> None:
        template = make_template()
        with pytest.raises(TemplateNotEditableError):
            StandardImportService(db_session).import_standards(template.id, [row("NEW")])


@pytest.mark.integration
class TestTemplateGate:
    """Test publication state checks."""

    def test_require_published(self, db_session, make_template, draft_template) -> None:
        gate = TemplateGate(db_session)
        published = make_template()

        assert gate.require_published(published.id).id == published.id
        with pytest.raises(TemplateNotPublishedError):
            gate.require_published(draft_template.id)

    def test_archived_is_neither_published_nor_editable(self, db_session, make_template) -> None:
        gate = TemplateGate(db_session)
        archived = make_template(status=TemplateStatus.ARCHIVED)

        with pytest.raises(TemplateNotPublishedError):
            gate.require_published(archived.id)
        with pytest.raises(TemplateNotEditableError):
            gate.require_editable(archived.id)

    def test_missing_template(self, db_session) -> None:
        with pytest.raises(NotFoundError):
            TemplateGate(db_session).get_template(uuid4())

    def test_publish_validates_weights(self, db_session, make_template) -> None:
        gate = TemplateGate(db_session)
        unbalanced = make_template(weights=(("A", 50), ("B", 30)), status=TemplateStatus.DRAFT)

        with pytest.raises(WeightSumInvalidError):
            gate.publish(unbalanced.id)
        assert gate.get_template(unbalanced.id).status == TemplateStatus.DRAFT

    def test_publish(self, db_session, make_template) -> None:
        gate = TemplateGate(db_session)
        template = make_template(status=TemplateStatus.DRAFT)

        assert gate.publish(template.id).status == TemplateStatus.PUBLISHED
        with pytest.raises(TemplateNotEditableError):
            gate.publish(template.id)
