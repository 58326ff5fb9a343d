"""
Hierarchy Validator for Standard Imports

Validates the structure of a flat list of proposed standards whose parents
are referenced by code within the same batch:

- Codes are unique within the batch
- Every parent code resolves to a code in the batch
- No parent chain revisits a node (circular references)
- Supplied levels agree with the parent chain (root = 1, child = parent + 1)
- Nodes that have children are not auditable

All issues are collected so the caller can report them together. Rows are
1-based positions in the input list.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ...models.standard_models import HierarchyIssue, ImportStandard

logger = logging.getLogger(__name__)


class HierarchyValidator:
    """Stateless validator and level resolver for import batches."""

    @classmethod
    def validate(cls, items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        """
        Validate an import batch.

        Args:
            items: Proposed standards in input order

        Returns:
            List of issues (empty if the batch is structurally valid)
        """
        issues: List[HierarchyIssue] = []
        issues.extend(cls._check_unique_codes(items))
        issues.extend(cls._check_parent_references(items))
        issues.extend(cls._check_circular_references(items))

        # Levels are only meaningful once every chain terminates at a root
        if not any(i.field == "parent_code" for i in issues):
            issues.extend(cls._check_level_consistency(items))

        issues.extend(cls._check_auditable_groups(items))

        if issues:
            logger.info(f"Hierarchy validation found {len(issues)} issue(s) in {len(items)} row(s)")
        return issues

    @classmethod
    def compute_levels(cls, items: Sequence[ImportStandard]) -> Dict[str, int]:
        """
        Resolve the hierarchy level of every code by walking parent chains.

        Must only be called on a batch that passed ``validate``.
        """
        parents = {item.code: item.parent_code for item in items}
        levels: Dict[str, int] = {}

        for code in parents:
            chain = []
            current: Optional[str] = code
            while current is not None and current not in levels:
                chain.append(current)
                current = parents[current]
            base = 0 if current is None else levels[current]
            for depth, node in enumerate(reversed(chain), start=1):
                levels[node] = base + depth

        return levels

    @classmethod
    def insertion_order(cls, items: Sequence[ImportStandard]) -> List[ImportStandard]:
        """
        Sort a valid batch so that parents always precede their children.

        Ascending level, then display order, then input position.
        """
        levels = cls.compute_levels(items)
        indexed = list(enumerate(items))
        indexed.sort(key=lambda pair: (levels[pair[1].code], pair[1].order, pair[0]))
        return [item for _, item in indexed]

    @staticmethod
    def _check_unique_codes(items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        rows_by_code: Dict[str, List[int]] = {}
        for row, item in enumerate(items, start=1):
            rows_by_code.setdefault(item.code, []).append(row)

        issues = []
        for code, rows in rows_by_code.items():
            if len(rows) > 1:
                issues.append(
                    HierarchyIssue(
                        row=rows[1],
                        field="code",
                        code=code,
                        value=code,
                        message=f"Duplicate code '{code}' found in rows: {', '.join(str(r) for r in rows)}",
                    )
                )
        return issues

    @staticmethod
    def _check_parent_references(items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        known = {item.code for item in items}
        issues = []
        for row, item in enumerate(items, start=1):
            if item.parent_code is not None and item.parent_code not in known:
                issues.append(
                    HierarchyIssue(
                        row=row,
                        field="parent_code",
                        code=item.code,
                        value=item.parent_code,
                        message=f"Parent code '{item.parent_code}' not found in the import batch",
                    )
                )
        return issues

    @staticmethod
    def _check_circular_references(items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        """
        Walk each node's parent chain with a visited set.

        Example of a circular reference:
            A.1 -> parent A.2
            A.2 -> parent A.1
        """
        parents = {item.code: item.parent_code for item in items}
        issues = []

        for row, item in enumerate(items, start=1):
            visited: List[str] = []
            current: Optional[str] = item.code
            while current is not None:
                if current in visited:
                    chain = " -> ".join(visited + [current])
                    issues.append(
                        HierarchyIssue(
                            row=row,
                            field="parent_code",
                            code=item.code,
                            value=item.parent_code,
                            message=f"Circular reference detected: {chain}",
                        )
                    )
                    break
                visited.append(current)
                current = parents.get(current)

        return issues

    @classmethod
    def _check_level_consistency(cls, items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        levels = cls.compute_levels(items)
        issues = []
        for row, item in enumerate(items, start=1):
            if item.level is None:
                continue
            expected = levels[item.code]
            if item.level != expected:
                if item.parent_code is None:
                    message = f"Root standard '{item.code}' must have level 1, got {item.level}"
                else:
                    message = (
                        f"Inconsistent level: '{item.code}' has level {item.level} but should be "
                        f"{expected} (parent '{item.parent_code}' has level {expected - 1})"
                    )
                issues.append(
                    HierarchyIssue(row=row, field="level", code=item.code, value=str(item.level), message=message)
                )
        return issues

    @staticmethod
    def _check_auditable_groups(items: Sequence[ImportStandard]) -> List[HierarchyIssue]:
        parent_codes = {item.parent_code for item in items if item.parent_code is not None}
        issues = []
        for row, item in enumerate(items, start=1):
            if item.is_auditable and item.code in parent_codes:
                issues.append(
                    HierarchyIssue(
                        row=row,
                        field="is_auditable",
                        code=item.code,
                        value="true",
                        message=f"Standard '{item.code}' has children and cannot be auditable",
                    )
                )
        return issues
