"""
Scoring Data Models

Type-safe Pydantic models for scoring engine inputs and results.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import ComplianceLevel, ResponseStatus


class ResponseSnapshot(BaseModel):
    """
    Read-only view of one response as consumed by the scoring engine.

    ORM ``AuditResponse`` rows carry the same attributes and can be scored
    directly; this model exists for callers (reports, previews, tests) that
    score data which is not persisted.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: Optional[UUID] = None
    weight: float = Field(..., ge=0, le=100)
    status: ResponseStatus = ResponseStatus.NOT_STARTED
    score: Optional[float] = Field(None, ge=0, le=100)
    compliance_level: Optional[ComplianceLevel] = None
    achieved_maturity_level: Optional[int] = None


class ComplianceMetrics(BaseModel):
    """Counts and percentages per compliance level, plus not-evaluated."""

    total: int = Field(0, ge=0)
    compliant: int = Field(0, ge=0)
    partial: int = Field(0, ge=0)
    non_compliant: int = Field(0, ge=0)
    not_applicable: int = Field(0, ge=0)
    not_evaluated: int = Field(0, ge=0)

    compliant_percent: float = Field(0.0, ge=0, le=100)
    partial_percent: float = Field(0.0, ge=0, le=100)
    non_compliant_percent: float = Field(0.0, ge=0, le=100)
    not_applicable_percent: float = Field(0.0, ge=0, le=100)
    not_evaluated_percent: float = Field(0.0, ge=0, le=100)


class ProgressStats(BaseModel):
    """Counts per response lifecycle status."""

    total: int = Field(0, ge=0)
    not_started: int = Field(0, ge=0)
    in_progress: int = Field(0, ge=0)
    completed: int = Field(0, ge=0)
    reviewed: int = Field(0, ge=0)
    percentage_complete: float = Field(0.0, ge=0, le=100, description="(completed + reviewed) / total * 100")


class ScoreStatistics(BaseModel):
    """Min, max and mean of raw scores over scored responses."""

    min: float
    max: float
    average: float
    scored: int = Field(0, ge=0)


class WeightStatistics(BaseModel):
    """Summary of a weight list."""

    min: float = 0.0
    max: float = 0.0
    average: float = 0.0
    total: float = 0.0


class AuditStats(BaseModel):
    """Live aggregate view of an audit, used by dashboards and before closing."""

    audit_id: UUID
    overall_score: float = Field(0.0, ge=0, le=100)
    average_maturity_level: Optional[float] = None
    progress: ProgressStats
    compliance: ComplianceMetrics
    evaluation_progress: float = Field(0.0, ge=0, le=100, description="Share of responses with a score")
