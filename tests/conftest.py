"""
Pytest configuration and fixtures for AuditFlow tests.

Database tests run against an in-memory SQLite database that is created
fresh for every test function.
"""

from typing import Callable, Iterable, Optional, Tuple
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from auditflow.database import Audit, Base, MaturityFramework, Standard, Template
from auditflow.models.audit_models import AssignmentCreate, AuditCreate
from auditflow.models.enums import AuditRole, AuditStatus, TemplateStatus
from auditflow.services.audits import AuditLifecycleService


@pytest.fixture(scope="function")
def test_engine():
    """Create an isolated in-memory database engine"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Session:
    """Provide database session for tests"""
    TestSession = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
    session = TestSession()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def make_template(db_session: Session) -> Callable[..., Template]:
    """
    Factory for a template with a flat list of auditable standards.

    Each standard is given as (code, weight). A group root "ROOT" holds
    them when ``grouped`` is set, otherwise they are roots themselves.
    """

    def _make(
        weights: Iterable[Tuple[str, float]] = (("C1", 30), ("C2", 30), ("C3", 40)),
        status: TemplateStatus = TemplateStatus.PUBLISHED,
        grouped: bool = False,
        name: str = "ISO 27001",
    ) -> Template:
        template = Template(name=name, version="2022", status=status)
        db_session.add(template)
        db_session.flush()

        parent_id = None
        level = 1
        if grouped:
            group = Standard(template_id=template.id, code="ROOT", title="Group", level=1, order=0)
            db_session.add(group)
            db_session.flush()
            parent_id = group.id
            level = 2

        for order, (code, weight) in enumerate(weights):
            db_session.add(
                Standard(
                    template_id=template.id,
                    parent_id=parent_id,
                    code=code,
                    title=f"Control {code}",
                    level=level,
                    order=order,
                    is_auditable=True,
                    is_active=True,
                    weight=weight,
                )
            )
        db_session.commit()
        return template

    return _make


@pytest.fixture
def make_framework(db_session: Session) -> Callable[..., MaturityFramework]:
    def _make(code: str = "CMMI", min_level: int = 0, max_level: int = 5) -> MaturityFramework:
        framework = MaturityFramework(name=code, code=code, min_level=min_level, max_level=max_level)
        db_session.add(framework)
        db_session.commit()
        return framework

    return _make


@pytest.fixture
def make_audit(db_session: Session, make_template) -> Callable[..., Audit]:
    """
    Factory for an audit created through the lifecycle service.

    ``status`` drives the audit forward (assigning a lead auditor before
    starting) so tests get a realistic aggregate in the requested state.
    """

    def _make(
        status: AuditStatus = AuditStatus.DRAFT,
        template: Optional[Template] = None,
        framework_id=None,
    ) -> Audit:
        service = AuditLifecycleService(db_session)
        template = template or make_template()
        audit = service.create_audit(
            AuditCreate(
                name="Annual audit",
                template_id=template.id,
                organization_id=uuid4(),
                framework_id=framework_id,
            )
        )
        if status == AuditStatus.DRAFT:
            return audit

        service.assign_member(audit.id, AssignmentCreate(user_id=uuid4(), role=AuditRole.LEAD_AUDITOR))
        service.start_audit(audit.id)
        if status == AuditStatus.IN_PROGRESS:
            return audit

        service.close_audit(audit.id)
        if status == AuditStatus.CLOSED:
            return audit

        return service.archive_audit(audit.id)

    return _make

