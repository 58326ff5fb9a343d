"""
Standard Tree Data Models

Pydantic input and view models for standard creation, bulk import and the
nested tree view.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StandardCreate(BaseModel):
    """Payload for creating a single standard inside a draft template."""

    template_id: UUID
    code: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    parent_id: Optional[UUID] = None
    order: Optional[int] = Field(None, ge=0, description="Defaults to after the last sibling")
    is_auditable: bool = False
    is_active: bool = True
    weight: float = Field(0.0, ge=0, le=100)
    auditor_guidance: Optional[str] = None

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Standard code cannot be blank")
        return v


class ImportStandard(BaseModel):
    """
    One row of a flat import list, as produced by the import collaborator.

    Parents are referenced by code within the same batch. ``level`` is optional;
    when present it must agree with the parent chain.
    """

    code: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    parent_code: Optional[str] = None
    level: Optional[int] = Field(None, ge=1)
    order: int = Field(0, ge=0)
    is_auditable: bool = False
    is_active: bool = True
    weight: float = Field(0.0, ge=0, le=100)
    auditor_guidance: Optional[str] = None

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Standard code cannot be blank")
        return v

    @field_validator("parent_code")
    @classmethod
    def normalize_parent_code(cls, v: Optional[str]) -> Optional[str]:
        """Empty strings mean "no parent"."""
        if v is None or not v.strip():
            return None
        return v.strip()


class HierarchyIssue(BaseModel):
    """Single structural problem found while validating an import batch."""

    row: int = Field(..., description="1-based position in the import list")
    field: str
    code: str
    value: Optional[str] = None
    message: str


class StandardNode(BaseModel):
    """Nested read-only view of a standard and its descendants."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    title: str
    level: int
    order: int
    is_auditable: bool
    is_active: bool
    weight: float
    children: List["StandardNode"] = Field(default_factory=list)


class LevelMismatch(BaseModel):
    """
    A standard whose stored level disagrees with its parent chain.

    ``expected_level`` is None when the chain itself is broken (a cycle or a
    parent that does not exist in the template); ``reason`` says which.
    """

    standard_id: UUID
    code: str
    stored_level: int
    expected_level: Optional[int] = None
    reason: Optional[str] = None


StandardNode.model_rebuild()
