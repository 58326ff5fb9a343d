"""
AuditFlow database configuration and ORM models
SQLAlchemy engine, session factory, unit-of-work boundary and audit schema
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterator
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from .config import get_settings
from .models.enums import AuditRole, AuditStatus, ComplianceLevel, ResponseStatus, TemplateStatus

logger = logging.getLogger(__name__)
settings = get_settings()


def _engine_options() -> Dict[str, Any]:
    """Pool options; SQLite file databases use the default single-file pool."""
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,  # Recycle connections every hour
    }


engine = create_engine(settings.database_url, echo=settings.database_echo, **_engine_options())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: Any, name: str) -> Enum:
    # Persist enum values ("in_progress"), not member names
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


# Database Models
class Template(Base):  # type: ignore[valid-type, misc]
    """Versioned container of standards; gates audit creation by status"""

    __tablename__ = "templates"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    version = Column(String(50), nullable=False, default="1.0")
    description = Column(Text, nullable=True)
    status = Column(_enum(TemplateStatus, "template_status"), default=TemplateStatus.DRAFT, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    standards = relationship("Standard", back_populates="template", cascade="all, delete-orphan")

    @property
    def is_editable(self) -> bool:
        return self.status == TemplateStatus.DRAFT


class MaturityFramework(Base):  # type: ignore[valid-type, misc]
    """Scoring framework that bounds achieved maturity levels (e.g. CMMI 0-5)"""

    __tablename__ = "maturity_frameworks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    code = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    min_level = Column(Integer, default=0, nullable=False)
    max_level = Column(Integer, default=5, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Standard(Base):  # type: ignore[valid-type, misc]
    """Control/clause node of a template hierarchy"""

    __tablename__ = "standards"

    id = Column(Uuid, primary_key=True, default=uuid4)
    template_id = Column(Uuid, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Uuid, ForeignKey("standards.id", ondelete="CASCADE"), nullable=True, index=True)
    code = Column(String(50), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)
    is_auditable = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    weight = Column(Float, default=0.0, nullable=False)
    auditor_guidance = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    template = relationship("Template", back_populates="standards")

    __table_args__ = (UniqueConstraint("template_id", "code", name="uq_standard_template_code"),)


class Audit(Base):  # type: ignore[valid-type, misc]
    """One execution of a template against an organization"""

    __tablename__ = "audits"

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    template_id = Column(Uuid, ForeignKey("templates.id"), nullable=False, index=True)
    organization_id = Column(Uuid, nullable=False, index=True)
    framework_id = Column(Uuid, ForeignKey("maturity_frameworks.id"), nullable=True)
    parent_audit_id = Column(Uuid, ForeignKey("audits.id"), nullable=True, index=True)
    revision_number = Column(Integer, default=0, nullable=False)
    status = Column(_enum(AuditStatus, "audit_status"), default=AuditStatus.DRAFT, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    actual_start_date = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    overall_score = Column(Float, nullable=True)
    maturity_level = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    responses = relationship("AuditResponse", back_populates="audit", cascade="all, delete-orphan")
    assignments = relationship("AuditAssignment", back_populates="audit", cascade="all, delete-orphan")


class AuditAssignment(Base):  # type: ignore[valid-type, misc]
    """Team member assigned to an audit with a role"""

    __tablename__ = "audit_assignments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    audit_id = Column(Uuid, ForeignKey("audits.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    role = Column(_enum(AuditRole, "audit_role"), default=AuditRole.AUDITOR, nullable=False)
    assigned_standard_ids = Column(JSON, nullable=True)  # None = access to all standards
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    audit = relationship("Audit", back_populates="assignments")

    __table_args__ = (UniqueConstraint("audit_id", "user_id", "role", name="uq_assignment_audit_user_role"),)


class AuditResponse(Base):  # type: ignore[valid-type, misc]
    """Evaluation of one standard within one audit; weight is a frozen copy"""

    __tablename__ = "audit_responses"

    id = Column(Uuid, primary_key=True, default=uuid4)
    audit_id = Column(Uuid, ForeignKey("audits.id", ondelete="CASCADE"), nullable=False, index=True)
    standard_id = Column(Uuid, ForeignKey("standards.id"), nullable=False)
    weight = Column(Float, nullable=False)
    status = Column(_enum(ResponseStatus, "response_status"), default=ResponseStatus.NOT_STARTED, nullable=False)
    score = Column(Float, nullable=True)  # 0-100
    compliance_level = Column(_enum(ComplianceLevel, "compliance_level"), nullable=True)
    achieved_maturity_level = Column(Integer, nullable=True)
    findings = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    assigned_user_id = Column(Uuid, nullable=True)
    reviewed_by = Column(Uuid, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    audit = relationship("Audit", back_populates="responses")

    __table_args__ = (UniqueConstraint("audit_id", "standard_id", name="uq_response_audit_standard"),)

    @property
    def weighted_score(self) -> float:
        """score * weight / 100, or 0 while unscored"""
        if self.score is None:
            return 0.0
        return self.score * self.weight / 100

    @property
    def is_complete(self) -> bool:
        return self.status in (ResponseStatus.COMPLETED, ResponseStatus.REVIEWED)


# Session helpers
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields:
        SQLAlchemy Session instance.

    Note:
        Session is closed when the caller is done with it.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Execute a block of reads and writes atomically.

    Nested blocks join the outermost one: only the outermost block commits,
    and any exception rolls back everything written since it began. This is
    the consistency boundary for multi-record operations such as audit
    creation with response initialization.

    Example:
        with unit_of_work(db):
            db.add(audit)
            db.add_all(responses)
    """
    depth = db.info.get("uow_depth", 0)
    db.info["uow_depth"] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info["uow_depth"] = depth


def create_tables() -> None:
    """Create database tables if they don't exist."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        raise
