"""
Standard Tree Service

Maintains parent/child relationships, hierarchy levels and per-template
weight conservation for a template's standards.

Nodes reference their parent by identifier only. Traversals build an
id -> row lookup and walk it with a visited set, so a corrupted parent chain
is reported instead of looping forever.

Structural changes (create, delete, move, weight edits) require the owning
template to be a draft.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ...database import Standard, unit_of_work
from ...exceptions import (
    CircularReferenceError,
    ConstraintViolationError,
    DuplicateCodeError,
    HasChildrenError,
    NoAuditableStandardsError,
    NotFoundError,
)
from ...models.enums import RebalanceMode
from ...models.standard_models import LevelMismatch, StandardCreate, StandardNode
from ...repositories import StandardRepository
from ...utils.logging_security import sanitize_for_log
from ..templates import TemplateGate
from ..weights import WeightCalculator

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auditflow.audit")


class StandardTreeService:
    """
    Operations on a template's standard hierarchy.

    Example:
        service = StandardTreeService(db)
        root = service.create_standard(StandardCreate(template_id=tid, code="A.5", title="Policies"))
        service.create_standard(StandardCreate(template_id=tid, code="A.5.1", title="...",
                                               parent_id=root.id, is_auditable=True, weight=100))
    """

    def __init__(self, db: Session, calculator: Optional[WeightCalculator] = None):
        self.db = db
        self.standards = StandardRepository(db)
        self.calculator = calculator or WeightCalculator()
        self.gate = TemplateGate(db, calculator=self.calculator)

    def get_standard(self, standard_id: Any) -> Standard:
        standard = self.standards.find_by_id(standard_id)
        if standard is None:
            raise NotFoundError("Standard", standard_id)
        return standard

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def create_standard(self, data: StandardCreate) -> Standard:
        """
        Insert a standard into a draft template.

        The level is 1 for roots and parent.level + 1 otherwise. When no
        order is given the node is placed after its last sibling.

        Raises:
            TemplateNotEditableError: Template is not a draft
            DuplicateCodeError: Code already used in this template
            NotFoundError: Parent does not exist in this template
            ConstraintViolationError: Parent is auditable (auditable standards are leaves)
        """
        with unit_of_work(self.db):
            self.gate.require_editable(data.template_id)

            if self.standards.exists_by_code_in_template(data.template_id, data.code):
                raise DuplicateCodeError("Standard", data.code, scope_id=data.template_id)

            level = 1
            if data.parent_id is not None:
                parent = self.standards.find_by_id(data.parent_id)
                if parent is None or parent.template_id != data.template_id:
                    raise NotFoundError("Parent standard", data.parent_id)
                if parent.is_auditable:
                    raise ConstraintViolationError(
                        f"Parent standard {parent.id} is auditable and cannot have children",
                        context={"parent_id": parent.id, "code": data.code},
                    )
                level = parent.level + 1

            order = data.order
            if order is None:
                order = self.standards.get_max_order_by_parent(data.template_id, data.parent_id) + 1

            standard = Standard(
                template_id=data.template_id,
                parent_id=data.parent_id,
                code=data.code,
                title=data.title,
                description=data.description,
                order=order,
                level=level,
                is_auditable=data.is_auditable,
                is_active=data.is_active,
                weight=data.weight,
                auditor_guidance=data.auditor_guidance,
            )
            self.standards.save(standard)

        logger.info(f"Created standard {sanitize_for_log(data.code)} (level {level}) in template {data.template_id}")
        return standard

    def delete_standard(self, standard_id: Any, redistribute_weight: bool = False) -> None:
        """
        Delete a standard that has no children.

        Args:
            standard_id: Standard to delete
            redistribute_weight: Spread an auditable standard's weight over the
                remaining auditable, active standards in proportion to their share

        Raises:
            HasChildrenError: The standard has at least one child, active or not
        """
        with unit_of_work(self.db):
            standard = self.get_standard(standard_id)
            self.gate.require_editable(standard.template_id, operation="delete standards")

            child_count = self.standards.count_children(standard_id)
            if child_count > 0:
                logger.warning(f"Refusing to delete standard {standard_id}: {child_count} child(ren)")
                raise HasChildrenError(standard_id, child_count)

            if redistribute_weight and standard.is_auditable and standard.is_active:
                pool = self.standards.find_auditable_active_by_template(standard.template_id)
                if len(pool) > 1:
                    index = next(i for i, s in enumerate(pool) if s.id == standard.id)
                    new_weights = self.calculator.redistribute([s.weight for s in pool], index)
                    remaining = pool[:index] + pool[index + 1 :]
                    for s, weight in zip(remaining, new_weights):
                        s.weight = weight
                    self.standards.save_many(remaining)

            template_id = standard.template_id
            code = standard.code
            self.standards.delete(standard)

        audit_logger.info(
            f"Standard {sanitize_for_log(code)} deleted from template {template_id}",
            extra={"event_type": "STANDARD_DELETED", "template_id": str(template_id)},
        )

    def move_standard(self, standard_id: Any, new_parent_id: Optional[Any]) -> Standard:
        """
        Re-parent a standard and recompute levels for its whole subtree.

        Raises:
            CircularReferenceError: The new parent is the node itself or one of its descendants
            NotFoundError: New parent does not exist in the same template
        """
        with unit_of_work(self.db):
            standard = self.get_standard(standard_id)
            self.gate.require_editable(standard.template_id, operation="move standards")

            by_id = {s.id: s for s in self.standards.find_by_template(standard.template_id)}

            new_level = 1
            if new_parent_id is not None:
                parent = by_id.get(new_parent_id)
                if parent is None:
                    raise NotFoundError("Parent standard", new_parent_id)
                if parent.is_auditable:
                    raise ConstraintViolationError(
                        f"Parent standard {parent.id} is auditable and cannot have children",
                        context={"parent_id": parent.id, "code": standard.code},
                    )
                self._assert_not_descendant(standard, parent, by_id)
                new_level = parent.level + 1

            standard.parent_id = new_parent_id
            standard.order = self.standards.get_max_order_by_parent(standard.template_id, new_parent_id) + 1
            standard.level = new_level
            moved = self._relevel_subtree(standard, by_id)
            self.standards.save_many(moved)

        audit_logger.info(
            f"Standard {sanitize_for_log(standard.code)} moved under {new_parent_id or 'root'}",
            extra={"event_type": "STANDARD_MOVED", "template_id": str(standard.template_id)},
        )
        return standard

    def set_auditable(self, standard_id: Any, is_auditable: bool) -> Standard:
        """
        Toggle whether a standard receives responses.

        Raises:
            HasChildrenError: Grouping standards (with children) cannot be auditable
        """
        with unit_of_work(self.db):
            standard = self.get_standard(standard_id)
            self.gate.require_editable(standard.template_id)

            if is_auditable:
                child_count = self.standards.count_children(standard_id)
                if child_count > 0:
                    raise HasChildrenError(standard_id, child_count, operation="make auditable")

            standard.is_auditable = is_auditable
            self.standards.save(standard)
        return standard

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def set_weight(self, standard_id: Any, new_weight: float) -> List[Standard]:
        """
        Change one auditable standard's weight; the others compensate evenly.

        Returns:
            The template's auditable, active standards with their new weights
        """
        with unit_of_work(self.db):
            standard = self.get_standard(standard_id)
            self.gate.require_editable(standard.template_id, operation="change weights")

            pool = self.standards.find_auditable_active_by_template(standard.template_id)
            index = next((i for i, s in enumerate(pool) if s.id == standard.id), None)
            if index is None:
                raise ConstraintViolationError(
                    f"Standard {standard_id} is not auditable and active; it carries no weight",
                    context={"standard_id": standard_id},
                )

            new_weights = self.calculator.apply_weight_change([s.weight for s in pool], index, new_weight)
            for s, weight in zip(pool, new_weights):
                s.weight = weight
            self.standards.save_many(pool)

        logger.info(f"Weight of standard {standard_id} set to {new_weight}; {len(pool)} weight(s) adjusted")
        return pool

    def rebalance_weights(self, template_id: Any, mode: RebalanceMode = RebalanceMode.EQUAL) -> List[Standard]:
        """
        Rewrite a template's auditable weights so they sum to 100.

        Args:
            mode: EQUAL gives every auditable standard the same share,
                  NORMALIZE keeps the current proportions

        Raises:
            NoAuditableStandardsError: Template has no auditable, active standards
            ConstraintViolationError: Unknown rebalance mode
        """
        try:
            mode = RebalanceMode(mode)
        except ValueError as e:
            raise ConstraintViolationError(f"Unknown rebalance mode {mode!r}", context={"mode": str(mode)}) from e

        with unit_of_work(self.db):
            self.gate.require_editable(template_id, operation="change weights")

            pool = self.standards.find_auditable_active_by_template(template_id)
            if not pool:
                raise NoAuditableStandardsError(template_id)

            if mode == RebalanceMode.EQUAL:
                new_weights = self.calculator.equal_distribution(len(pool))
            else:
                new_weights = self.calculator.normalize([s.weight for s in pool])

            for s, weight in zip(pool, new_weights):
                s.weight = weight
            self.standards.save_many(pool)

        audit_logger.info(
            f"Weights of template {template_id} rebalanced ({mode.value})",
            extra={"event_type": "WEIGHTS_REBALANCED", "template_id": str(template_id)},
        )
        return pool

    def validate_template_weights(self, template_id: Any) -> None:
        """
        Raises:
            WeightSumInvalidError: Auditable, active weights do not sum to 100
        """
        weights = [s.weight for s in self.standards.find_auditable_active_by_template(template_id)]
        self.calculator.validate_sum(weights, scope=f"template {template_id}")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_tree(self, template_id: Any) -> List[StandardNode]:
        """
        Build the nested tree view of a template.

        Returns:
            Root nodes; children sorted by order then code
        """
        rows = self.standards.find_by_template(template_id)
        nodes: Dict[Any, StandardNode] = {
            s.id: StandardNode(
                id=s.id,
                code=s.code,
                title=s.title,
                level=s.level,
                order=s.order,
                is_auditable=s.is_auditable,
                is_active=s.is_active,
                weight=s.weight,
            )
            for s in rows
        }

        roots: List[StandardNode] = []
        for s in sorted(rows, key=lambda r: (r.order, r.code)):
            parent = nodes.get(s.parent_id) if s.parent_id is not None else None
            if parent is None:
                roots.append(nodes[s.id])
            else:
                parent.children.append(nodes[s.id])
        return roots

    def verify_levels(self, template_id: Any) -> List[LevelMismatch]:
        """
        Compare every stored level with the one implied by its parent chain.

        Broken chains (cycles, parents missing from the template) are reported
        as mismatches with no expected level.

        Returns:
            Standards whose stored level is wrong (empty when consistent)
        """
        by_id = {s.id: s for s in self.standards.find_by_template(template_id)}
        mismatches = []
        for s in by_id.values():
            expected, reason = self._expected_level(s, by_id)
            if s.level != expected:
                mismatches.append(
                    LevelMismatch(
                        standard_id=s.id, code=s.code, stored_level=s.level, expected_level=expected, reason=reason
                    )
                )
        if mismatches:
            logger.warning(f"Template {template_id} has {len(mismatches)} standard(s) with inconsistent levels")
        return mismatches

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _expected_level(standard: Standard, by_id: Dict[Any, Standard]) -> Tuple[Optional[int], Optional[str]]:
        visited = [standard.code]
        depth = 1
        current = standard
        while current.parent_id is not None:
            parent = by_id.get(current.parent_id)
            if parent is None:
                return None, f"Parent {current.parent_id} of '{current.code}' not found in template"
            if parent.code in visited:
                return None, f"Circular reference detected: {' -> '.join(visited + [parent.code])}"
            visited.append(parent.code)
            depth += 1
            current = parent
        return depth, None

    @staticmethod
    def _assert_not_descendant(standard: Standard, new_parent: Standard, by_id: Dict[Any, Standard]) -> None:
        # Walk up from the new parent; reaching the moved node means a cycle
        chain = [standard.code]
        visited = set()
        current: Optional[Standard] = new_parent
        while current is not None:
            chain.append(current.code)
            if current.id == standard.id or current.id in visited:
                raise CircularReferenceError(standard.code, chain)
            visited.add(current.id)
            current = by_id.get(current.parent_id) if current.parent_id is not None else None

    @staticmethod
    def _relevel_subtree(root: Standard, by_id: Dict[Any, Standard]) -> List[Standard]:
        children: Dict[Any, List[Standard]] = {}
        for s in by_id.values():
            if s.parent_id is not None:
                children.setdefault(s.parent_id, []).append(s)

        updated = [root]
        queue = [root]
        while queue:
            node = queue.pop(0)
            for child in children.get(node.id, []):
                child.level = node.level + 1
                updated.append(child)
                queue.append(child)
        return updated
