"""
Unit tests for import batch hierarchy validation.
"""

import pytest
from pydantic import ValidationError

from auditflow.models.standard_models import ImportStandard
from auditflow.services.standards import HierarchyValidator


def row(code, parent=None, level=None, auditable=False, order=0, weight=0.0) -> ImportStandard:
    return ImportStandard(
        code=code,
        title=f"Standard {code}",
        parent_code=parent,
        level=level,
        is_auditable=auditable,
        order=order,
        weight=weight,
    )


@pytest.mark.unit
class TestHierarchyValidation:
    """Test structural checks on import batches."""

    def test_valid_batch_has_no_issues(self) -> None:
        items = [
            row("A", level=1),
            row("A.1", parent="A", level=2),
            row("A.1.1", parent="A.1", level=3, auditable=True, weight=100),
        ]
        assert HierarchyValidator.validate(items) == []

    def test_duplicate_code_reported_on_second_row(self) -> None:
        issues = HierarchyValidator.validate([row("A"), row("B"), row("A")])
        assert len(issues) == 1
        assert issues[0].field == "code"
        assert issues[0].row == 3
        assert "1, 3" in issues[0].message

    def test_unresolved_parent_code(self) -> None:
        issues = HierarchyValidator.validate([row("A"), row("B.1", parent="B")])
        assert [(i.row, i.field, i.value) for i in issues] == [(2, "parent_code", "B")]

    def test_circular_reference_detected(self) -> None:
        issues = HierarchyValidator.validate([row("A.1", parent="A.2"), row("A.2", parent="A.1")])
        circular = [i for i in issues if "Circular" in i.message]
        assert len(circular) == 2
        assert "A.1 -> A.2 -> A.1" in circular[0].message

    def test_self_reference_is_circular(self) -> None:
        issues = HierarchyValidator.validate([row("A", parent="A")])
        assert len(issues) == 1
        assert "A -> A" in issues[0].message

    def test_root_level_must_be_one(self) -> None:
        issues = HierarchyValidator.validate([row("A", level=2)])
        assert len(issues) == 1
        assert issues[0].field == "level"
        assert "must have level 1" in issues[0].message

    def test_child_level_must_follow_parent(self) -> None:
        issues = HierarchyValidator.validate([row("A"), row("A.1", parent="A", level=3)])
        assert len(issues) == 1
        assert issues[0].field == "level"
        assert issues[0].code == "A.1"

    def test_group_with_children_cannot_be_auditable(self) -> None:
        issues = HierarchyValidator.validate([row("A", auditable=True), row("A.1", parent="A", auditable=True)])
        assert [(i.code, i.field) for i in issues] == [("A", "is_auditable")]

    def test_collects_every_issue(self) -> None:
        issues = HierarchyValidator.validate([row("A"), row("A"), row("X.1", parent="X")])
        assert {i.field for i in issues} == {"code", "parent_code"}

    def test_blank_parent_code_means_root(self) -> None:
        assert row("A", parent="  ").parent_code is None

    @pytest.mark.parametrize("code", ["   ", "\t"])
    def test_blank_code_rejected(self, code: str) -> None:
        with pytest.raises(ValidationError, match="Standard code cannot be blank"):
            row(code)

    def test_code_is_stripped(self) -> None:
        assert row("  A.1 ").code == "A.1"


@pytest.mark.unit
class TestLevelResolution:
    """Test level computation and insertion order."""

    def test_compute_levels_deep_tree(self) -> None:
        items = [row("D", parent="C"), row("C", parent="B"), row("B", parent="A"), row("A")]
        assert HierarchyValidator.compute_levels(items) == {"A": 1, "B": 2, "C": 3, "D": 4}

    def test_insertion_order_puts_parents_first(self) -> None:
        items = [
            row("A.2", parent="A", order=2),
            row("A.1.1", parent="A.1"),
            row("B"),
            row("A.1", parent="A", order=1),
            row("A"),
        ]
        ordered = [i.code for i in HierarchyValidator.insertion_order(items)]
        assert ordered == ["B", "A", "A.1", "A.2", "A.1.1"]
