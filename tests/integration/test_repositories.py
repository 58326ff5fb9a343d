"""
Integration tests for repository query helpers.
"""

from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from auditflow import database
from auditflow.database import Audit, Standard
from auditflow.models.enums import AuditStatus, TemplateStatus
from auditflow.repositories import (
    AuditRepository,
    AuditResponseRepository,
    MaturityFrameworkRepository,
    StandardRepository,
    TemplateRepository,
)


def audit_row(code: str, template_id, parent=None, revision_number: int = 0) -> Audit:
    return Audit(
        code=code,
        name=code,
        template_id=template_id,
        organization_id=uuid4(),
        parent_audit_id=parent.id if parent is not None else None,
        revision_number=revision_number,
        status=AuditStatus.DRAFT,
    )


@pytest.mark.integration
class TestBaseRepository:
    """Test generic CRUD helpers through TemplateRepository."""

    def test_find_count_exists(self, db_session, make_template) -> None:
        repo = TemplateRepository(db_session)
        published = make_template(name="ISO 27001")
        make_template(name="NIST", status=TemplateStatus.DRAFT)

        assert repo.find_by_id(published.id).name == "ISO 27001"
        assert repo.find_by_id(uuid4()) is None
        assert repo.count() == 2
        assert repo.count(status=TemplateStatus.DRAFT) == 1
        assert repo.exists(name="NIST")
        assert not repo.exists(name="COBIT")
        assert [t.name for t in repo.find_by_status(TemplateStatus.PUBLISHED)] == ["ISO 27001"]
        assert repo.find_by_name_and_version("ISO 27001", "2022").id == published.id

    def test_find_many_ordering_and_limit(self, db_session, make_template) -> None:
        template = make_template(weights=(("B", 50), ("A", 25), ("C", 25)))
        repo = StandardRepository(db_session)

        by_code = repo.find_many(order_by=[("code", "desc")], template_id=template.id)
        assert [s.code for s in by_code] == ["C", "B", "A"]

        limited = repo.find_many(order_by=[("code", "asc")], limit=2, template_id=template.id)
        assert [s.code for s in limited] == ["A", "B"]

    def test_delete(self, db_session, make_template) -> None:
        template = make_template(weights=(("A", 100),))
        repo = StandardRepository(db_session)
        standard = repo.find_by_code(template.id, "A")

        repo.delete(standard)
        db_session.commit()

        assert repo.find_by_code(template.id, "A") is None


@pytest.mark.integration
class TestStandardRepository:
    """Test standard hierarchy queries."""

    def test_sibling_order_and_children(self, db_session, make_template) -> None:
        template = make_template(grouped=True)
        repo = StandardRepository(db_session)
        root = repo.find_by_code(template.id, "ROOT")

        assert repo.get_max_order_by_parent(template.id, root.id) == 2
        assert repo.get_max_order_by_parent(template.id, None) == 0
        assert repo.get_max_order_by_parent(template.id, uuid4()) == -1
        assert repo.count_children(root.id) == 3
        assert [s.code for s in repo.find_children(root.id)] == ["C1", "C2", "C3"]

    def test_auditable_active_filter(self, db_session, make_template) -> None:
        template = make_template()
        db_session.add(
            Standard(template_id=template.id, code="OFF", title="Retired", is_auditable=True, is_active=False)
        )
        db_session.commit()

        codes = [s.code for s in StandardRepository(db_session).find_auditable_active_by_template(template.id)]
        assert codes == ["C1", "C2", "C3"]


@pytest.mark.integration
class TestAuditRepository:
    """Test audit code generation and revision numbering."""

    def test_generate_next_code(self, db_session, make_template) -> None:
        template = make_template()
        repo = AuditRepository(db_session)

        assert repo.generate_next_code(year=2026) == "AUD-2026-001"

        db_session.add_all(
            [
                audit_row("AUD-2026-001", template.id),
                audit_row("AUD-2026-009", template.id),
                audit_row("AUD-2025-050", template.id),
                audit_row("AUD-2026-custom", template.id),
            ]
        )
        db_session.commit()

        assert repo.generate_next_code(year=2026) == "AUD-2026-010"
        assert repo.generate_next_code(year=2025) == "AUD-2025-051"
        assert repo.generate_next_code(prefix="ISO", year=2026) == "ISO-2026-001"

    def test_code_sequence_grows_past_999(self, db_session, make_template) -> None:
        template = make_template()
        db_session.add(audit_row("AUD-2026-999", template.id))
        db_session.commit()

        assert AuditRepository(db_session).generate_next_code(year=2026) == "AUD-2026-1000"

    def test_max_revision_number(self, db_session, make_template) -> None:
        template = make_template()
        repo = AuditRepository(db_session)
        source = audit_row("AUD-2026-001", template.id)
        db_session.add(source)
        db_session.commit()

        assert repo.get_max_revision_number(source.id) is None

        db_session.add_all(
            [
                audit_row("AUD-2026-002", template.id, parent=source, revision_number=1),
                audit_row("AUD-2026-003", template.id, parent=source, revision_number=3),
            ]
        )
        db_session.commit()

        assert repo.get_max_revision_number(source.id) == 3
        assert [a.revision_number for a in repo.find_revisions(source.id)] == [1, 3]


@pytest.mark.integration
class TestResponseRepository:
    """Test response lookups."""

    def test_find_by_audit_and_standard(self, db_session, make_audit) -> None:
        audit = make_audit()
        repo = AuditResponseRepository(db_session)
        responses = repo.find_by_audit(audit.id)

        assert repo.count_by_audit(audit.id) == 3
        first = responses[0]
        assert repo.find_by_audit_and_standard(audit.id, first.standard_id).id == first.id
        assert repo.find_by_audit_and_standard(audit.id, uuid4()) is None


@pytest.mark.integration
class TestMaturityFrameworkRepository:
    """Test framework lookups used for maturity bounds."""

    def test_find_by_id(self, db_session, make_framework) -> None:
        framework = make_framework(code="COBIT5", min_level=0, max_level=5)
        repo = MaturityFrameworkRepository(db_session)

        assert repo.find_by_id(framework.id).code == "COBIT5"
        assert repo.find_by_id(uuid4()) is None


@pytest.mark.integration
class TestSessionDependency:
    """Test the get_db session generator."""

    def test_get_db_yields_and_closes(self, test_engine, monkeypatch: pytest.MonkeyPatch) -> None:
        sessions = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
        monkeypatch.setattr(database, "SessionLocal", sessions)

        dependency = database.get_db()
        session = next(dependency)
        assert TemplateRepository(session).count() == 0

        with pytest.raises(StopIteration):
            next(dependency)
        assert not session.in_transaction()
