"""
Audit Workflow Data Models

Pydantic payloads for audit creation, revisions, team assignments and
partial response updates.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .enums import AuditRole, ComplianceLevel


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    """Naive planned dates are taken to be UTC."""
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class AuditCreate(BaseModel):
    """Payload for creating an audit from a published template."""

    name: str = Field(..., min_length=1, max_length=200)
    template_id: UUID
    organization_id: UUID
    framework_id: Optional[UUID] = None
    code: Optional[str] = Field(None, max_length=50, description="Generated as AUD-YYYY-NNN when omitted")
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class RevisionCreate(BaseModel):
    """Payload for a follow-up audit of a closed audit."""

    name: Optional[str] = Field(None, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    framework_id: Optional[UUID] = Field(None, description="Overrides the source audit's framework")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class AssignmentCreate(BaseModel):
    """Payload for assigning a team member to a draft audit."""

    user_id: UUID
    role: AuditRole = AuditRole.AUDITOR
    assigned_standard_ids: Optional[List[UUID]] = None
    notes: Optional[str] = None


class ResponseUpdate(BaseModel):
    """
    Partial evaluation update.

    Only fields explicitly provided are applied; passing ``None`` clears a
    field, omitting it leaves the stored value alone. Ranges are checked by
    the response service, which knows the audit's maturity framework bounds.
    """

    score: Optional[float] = Field(None, description="0-100")
    compliance_level: Optional[ComplianceLevel] = None
    achieved_maturity_level: Optional[int] = None
    findings: Optional[str] = None
    recommendations: Optional[str] = None
    notes: Optional[str] = None
    assigned_user_id: Optional[UUID] = None
