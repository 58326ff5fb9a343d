"""
Unit tests for the AuditFlow exception hierarchy.
"""

from uuid import UUID

import pytest

from auditflow.exceptions import (
    AuditFlowError,
    AuditNotActiveError,
    CircularReferenceError,
    ConstraintViolationError,
    DuplicateAssignmentError,
    DuplicateCodeError,
    HasChildrenError,
    IncompleteEvaluationError,
    InvalidIndexError,
    InvalidStateTransitionError,
    NoAuditableStandardsError,
    NoMembersAssignedError,
    NotClosedError,
    NotCompletedError,
    NotFoundError,
    OutOfRangeError,
    TemplateNotEditableError,
    TemplateNotPublishedError,
    WeightError,
    WeightSumInvalidError,
)
from auditflow.models.enums import AuditRole, AuditStatus, TemplateStatus

AUDIT_ID = UUID("11111111-2222-3333-4444-555555555555")


@pytest.mark.unit
class TestHierarchy:
    """Each error kind sits under its family."""

    @pytest.mark.parametrize(
        "error",
        [
            TemplateNotPublishedError("t1", TemplateStatus.DRAFT),
            TemplateNotEditableError("t1", TemplateStatus.PUBLISHED),
            AuditNotActiveError("a1", AuditStatus.DRAFT),
            NotClosedError("a1", AuditStatus.IN_PROGRESS),
            NotCompletedError("r1", "in_progress"),
        ],
    )
    def test_state_errors(self, error: AuditFlowError) -> None:
        assert isinstance(error, InvalidStateTransitionError)

    @pytest.mark.parametrize(
        "error",
        [
            DuplicateCodeError("Audit", "AUD-2026-001"),
            DuplicateAssignmentError("a1", "u1", AuditRole.AUDITOR),
            HasChildrenError("s1", 2),
            CircularReferenceError("A", ["A", "B", "A"]),
            NoMembersAssignedError("a1"),
            NoAuditableStandardsError("t1"),
        ],
    )
    def test_constraint_errors(self, error: AuditFlowError) -> None:
        assert isinstance(error, ConstraintViolationError)

    @pytest.mark.parametrize(
        "error",
        [WeightSumInvalidError(99.5), OutOfRangeError("weight", 101, 0, 100), InvalidIndexError(3, 2)],
    )
    def test_weight_errors(self, error: AuditFlowError) -> None:
        assert isinstance(error, WeightError)


@pytest.mark.unit
class TestMessages:
    """Messages name the entity and the violated rule."""

    def test_not_found(self) -> None:
        error = NotFoundError("Audit", AUDIT_ID)
        assert error.error_code == "NOT_FOUND"
        assert str(AUDIT_ID) in error.message

    def test_template_not_published(self) -> None:
        error = TemplateNotPublishedError("t1", TemplateStatus.DRAFT)
        assert error.error_code == "TEMPLATE_NOT_PUBLISHED"
        assert "must be published" in error.message
        assert "draft" in error.message

    def test_invalid_transition_carries_state_and_operation(self) -> None:
        error = InvalidStateTransitionError(AuditStatus.DRAFT, "close")
        assert error.current_state == AuditStatus.DRAFT
        assert error.operation == "close"
        assert error.context["current_state"] == "draft"

    def test_has_children_operation(self) -> None:
        error = HasChildrenError("s1", 3, operation="make auditable")
        assert "Cannot make auditable standard s1" in error.message

    def test_incomplete_evaluation_lists_missing_fields(self) -> None:
        error = IncompleteEvaluationError("r1", ["score", "compliance_level"])
        assert error.missing_fields == ["score", "compliance_level"]
        assert "score, compliance_level" in error.message

    def test_str_includes_code_and_context(self) -> None:
        error = NoMembersAssignedError("a1")
        assert str(error).startswith("[NO_MEMBERS_ASSIGNED]")
        assert "context" in str(error)

    def test_str_without_context(self) -> None:
        assert str(AuditFlowError("boom")) == "[AUDITFLOW_ERROR] boom"


@pytest.mark.unit
class TestSerialization:
    """to_dict produces JSON-safe payloads."""

    def test_to_dict_stringifies_uuids(self) -> None:
        payload = NotFoundError("Audit", AUDIT_ID).to_dict()
        assert payload == {
            "error": "NOT_FOUND",
            "message": f"Audit {AUDIT_ID} not found",
            "context": {"entity": "Audit", "entity_id": str(AUDIT_ID)},
        }

    def test_to_dict_includes_issues(self) -> None:
        issues = [{"row": 1, "field": "code", "code": "A", "value": "A", "message": "dup"}]
        payload = ConstraintViolationError("bad import", issues=issues).to_dict()
        assert payload["context"]["issues"] == issues

    def test_custom_error_code(self) -> None:
        assert AuditFlowError("x", error_code="CUSTOM").to_dict()["error"] == "CUSTOM"
