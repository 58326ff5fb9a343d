"""
Audit Scoring Engine

Read-only aggregation of an audit's responses into an overall compliance
score, an average maturity level and progress/compliance breakdowns.

Formulas:
    weighted_score(r)  = score * weight / 100   (0 while unscored)
    overall_score      = sum of weighted_score over scored responses
                         (weighted sum: unscored responses contribute 0 and
                         do not shrink the denominator, so a fully scored
                         conservative set ranges 0-100)
    average_maturity   = sum(level * weight) / sum(weight) over responses
                         that have a maturity level

Inputs are any objects exposing ``weight``, ``score``, ``status``,
``compliance_level`` and ``achieved_maturity_level``: ORM ``AuditResponse``
rows or ``ResponseSnapshot`` models. Inputs are never mutated. Arithmetic is
exact (Decimal) so results do not depend on input order.

Example:
    >>> engine = AuditScoringService()
    >>> engine.overall_score([
    ...     ResponseSnapshot(weight=30, score=80),
    ...     ResponseSnapshot(weight=30, score=90),
    ...     ResponseSnapshot(weight=40),
    ... ])
    51.0
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from ...models.enums import ComplianceLevel, ResponseStatus
from ...models.scoring_models import AuditStats, ComplianceMetrics, ProgressStats, ScoreStatistics
from ..weights.weight_calculator import HUNDRED, ZERO, round2, to_decimal

logger = logging.getLogger(__name__)


def _percent(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return float(round2(Decimal(part) * HUNDRED / Decimal(total)))


class AuditScoringService:
    """
    Stateless scoring engine.

    Invoked by audit closure to freeze ``overall_score`` and
    ``maturity_level``, and by live progress views through ``build_stats``.
    """

    def weighted_score(self, response: Any) -> float:
        """score * weight / 100, or 0 when the response has no score."""
        if response.score is None:
            return 0.0
        return float(round2(self._weighted(response)))

    def overall_score(self, responses: Sequence[Any]) -> float:
        """
        Weighted sum of scores; 0.0 for an empty or entirely unscored set.

        Example:
            weights [30, 30, 40], scores [80, 90, None] -> 24 + 27 + 0 = 51.0
        """
        total = sum((self._weighted(r) for r in responses if r.score is not None), ZERO)
        return float(round2(total))

    def average_maturity_level(self, responses: Sequence[Any]) -> Optional[float]:
        """
        Weight-averaged maturity level over responses that have one.

        Returns:
            Average rounded to 2 decimals, or None if no response has a level.
            When every leveled response has weight 0 the plain mean is used.
        """
        leveled = [r for r in responses if r.achieved_maturity_level is not None]
        if not leveled:
            return None

        total_weight = sum((to_decimal(r.weight) for r in leveled), ZERO)
        if total_weight == ZERO:
            plain = sum((Decimal(r.achieved_maturity_level) for r in leveled), ZERO)
            return float(round2(plain / len(leveled)))

        weighted = sum((Decimal(r.achieved_maturity_level) * to_decimal(r.weight) for r in leveled), ZERO)
        return float(round2(weighted / total_weight))

    def compliance_metrics(self, responses: Sequence[Any]) -> ComplianceMetrics:
        """Counts per compliance level plus not-evaluated; percentages of the total count."""
        total = len(responses)
        counts = {level: 0 for level in ComplianceLevel}
        not_evaluated = 0
        for r in responses:
            if r.compliance_level is None:
                not_evaluated += 1
            else:
                counts[ComplianceLevel(r.compliance_level)] += 1

        return ComplianceMetrics(
            total=total,
            compliant=counts[ComplianceLevel.COMPLIANT],
            partial=counts[ComplianceLevel.PARTIAL],
            non_compliant=counts[ComplianceLevel.NON_COMPLIANT],
            not_applicable=counts[ComplianceLevel.NOT_APPLICABLE],
            not_evaluated=not_evaluated,
            compliant_percent=_percent(counts[ComplianceLevel.COMPLIANT], total),
            partial_percent=_percent(counts[ComplianceLevel.PARTIAL], total),
            non_compliant_percent=_percent(counts[ComplianceLevel.NON_COMPLIANT], total),
            not_applicable_percent=_percent(counts[ComplianceLevel.NOT_APPLICABLE], total),
            not_evaluated_percent=_percent(not_evaluated, total),
        )

    def progress_stats(self, responses: Sequence[Any]) -> ProgressStats:
        """Counts per lifecycle status; percentage_complete counts completed and reviewed."""
        total = len(responses)
        counts = {status: 0 for status in ResponseStatus}
        for r in responses:
            counts[ResponseStatus(r.status)] += 1

        done = counts[ResponseStatus.COMPLETED] + counts[ResponseStatus.REVIEWED]
        return ProgressStats(
            total=total,
            not_started=counts[ResponseStatus.NOT_STARTED],
            in_progress=counts[ResponseStatus.IN_PROGRESS],
            completed=counts[ResponseStatus.COMPLETED],
            reviewed=counts[ResponseStatus.REVIEWED],
            percentage_complete=_percent(done, total),
        )

    def evaluation_progress(self, responses: Sequence[Any]) -> float:
        """Share of responses that have a score, as a percentage."""
        return _percent(sum(1 for r in responses if r.score is not None), len(responses))

    def all_evaluated(self, responses: Sequence[Any]) -> bool:
        return all(r.score is not None for r in responses)

    def score_statistics(self, responses: Sequence[Any]) -> Optional[ScoreStatistics]:
        """Min, max and mean raw score over scored responses; None if nothing is scored."""
        scores = [to_decimal(r.score) for r in responses if r.score is not None]
        if not scores:
            return None
        return ScoreStatistics(
            min=float(min(scores)),
            max=float(max(scores)),
            average=float(round2(sum(scores, ZERO) / len(scores))),
            scored=len(scores),
        )

    def lowest_scoring(self, responses: Sequence[Any], limit: int = 5) -> List[Any]:
        """Scored responses, lowest score first (heavier weight first on ties)."""
        scored = [r for r in responses if r.score is not None]
        return sorted(scored, key=lambda r: (to_decimal(r.score), -to_decimal(r.weight)))[:limit]

    def highest_scoring(self, responses: Sequence[Any], limit: int = 5) -> List[Any]:
        """Scored responses, highest score first (heavier weight first on ties)."""
        scored = [r for r in responses if r.score is not None]
        return sorted(scored, key=lambda r: (-to_decimal(r.score), -to_decimal(r.weight)))[:limit]

    def build_stats(self, audit_id: Any, responses: Sequence[Any]) -> AuditStats:
        """Live aggregate view of an audit; nothing is persisted."""
        return AuditStats(
            audit_id=audit_id,
            overall_score=self.overall_score(responses),
            average_maturity_level=self.average_maturity_level(responses),
            progress=self.progress_stats(responses),
            compliance=self.compliance_metrics(responses),
            evaluation_progress=self.evaluation_progress(responses),
        )

    @staticmethod
    def _weighted(response: Any) -> Decimal:
        return to_decimal(response.score) * to_decimal(response.weight) / HUNDRED
