"""
Unit tests for the audit scoring engine.

Uses ResponseSnapshot inputs; ORM rows expose the same attributes.
"""

import random

import pytest

from auditflow.models.enums import ComplianceLevel, ResponseStatus
from auditflow.models.scoring_models import ResponseSnapshot
from auditflow.services.scoring import AuditScoringService


def snap(weight, score=None, level=None, compliance=None, status=ResponseStatus.NOT_STARTED) -> ResponseSnapshot:
    return ResponseSnapshot(
        weight=weight,
        score=score,
        achieved_maturity_level=level,
        compliance_level=compliance,
        status=status,
    )


@pytest.fixture
def engine() -> AuditScoringService:
    return AuditScoringService()


@pytest.mark.unit
class TestOverallScore:
    """Test the weighted-sum overall score."""

    def test_partially_scored_audit(self, engine: AuditScoringService) -> None:
        responses = [snap(30, 80), snap(30, 90), snap(40)]
        assert engine.overall_score(responses) == 51.0

    def test_empty_set(self, engine: AuditScoringService) -> None:
        assert engine.overall_score([]) == 0.0

    def test_unscored_set(self, engine: AuditScoringService) -> None:
        assert engine.overall_score([snap(50), snap(50)]) == 0.0

    def test_fully_scored_range(self, engine: AuditScoringService) -> None:
        assert engine.overall_score([snap(33.33, 100), snap(33.33, 100), snap(33.34, 100)]) == 100.0
        assert engine.overall_score([snap(50, 0), snap(50, 0)]) == 0.0

    def test_weighted_score(self, engine: AuditScoringService) -> None:
        assert engine.weighted_score(snap(30, 80)) == 24.0
        assert engine.weighted_score(snap(30)) == 0.0

    def test_order_independent(self, engine: AuditScoringService) -> None:
        responses = [snap(w, s, lvl) for w, s, lvl in [(12.5, 77.7, 1), (37.5, 33.3, 4), (20, 91.1, 2), (30, 10, 5)]]
        expected_score = engine.overall_score(responses)
        expected_level = engine.average_maturity_level(responses)

        shuffled = list(responses)
        for seed in range(5):
            random.Random(seed).shuffle(shuffled)
            assert engine.overall_score(shuffled) == expected_score
            assert engine.average_maturity_level(shuffled) == expected_level


@pytest.mark.unit
class TestAverageMaturity:
    """Test the weight-averaged maturity level."""

    def test_weighted_average(self, engine: AuditScoringService) -> None:
        # (3*30 + 5*10) / 40 = 3.5
        assert engine.average_maturity_level([snap(30, level=3), snap(10, level=5), snap(60)]) == 3.5

    def test_none_without_levels(self, engine: AuditScoringService) -> None:
        assert engine.average_maturity_level([snap(50, 90), snap(50)]) is None

    def test_zero_weights_use_plain_mean(self, engine: AuditScoringService) -> None:
        assert engine.average_maturity_level([snap(0, level=2), snap(0, level=3)]) == 2.5

    def test_rounded_to_two_decimals(self, engine: AuditScoringService) -> None:
        assert engine.average_maturity_level([snap(1, level=1), snap(1, level=1), snap(1, level=2)]) == 1.33


@pytest.mark.unit
class TestComplianceAndProgress:
    """Test compliance metrics and progress statistics."""

    def test_compliance_metrics(self, engine: AuditScoringService) -> None:
        responses = [
            snap(25, compliance=ComplianceLevel.COMPLIANT),
            snap(25, compliance=ComplianceLevel.PARTIAL),
            snap(25, compliance=ComplianceLevel.COMPLIANT),
            snap(25),
        ]
        metrics = engine.compliance_metrics(responses)
        assert metrics.total == 4
        assert metrics.compliant == 2
        assert metrics.partial == 1
        assert metrics.not_evaluated == 1
        assert metrics.compliant_percent == 50.0
        assert metrics.not_evaluated_percent == 25.0
        assert metrics.non_compliant_percent == 0.0

    def test_compliance_percent_rounding(self, engine: AuditScoringService) -> None:
        metrics = engine.compliance_metrics(
            [snap(33.33, compliance=ComplianceLevel.NOT_APPLICABLE), snap(33.33), snap(33.34)]
        )
        assert metrics.not_applicable_percent == 33.33
        assert metrics.not_evaluated_percent == 66.67

    def test_empty_metrics(self, engine: AuditScoringService) -> None:
        metrics = engine.compliance_metrics([])
        assert metrics.total == 0
        assert metrics.compliant_percent == 0.0

    def test_progress_stats(self, engine: AuditScoringService) -> None:
        responses = [
            snap(25, status=ResponseStatus.NOT_STARTED),
            snap(25, status=ResponseStatus.IN_PROGRESS),
            snap(25, status=ResponseStatus.COMPLETED),
            snap(25, status=ResponseStatus.REVIEWED),
        ]
        stats = engine.progress_stats(responses)
        assert (stats.not_started, stats.in_progress, stats.completed, stats.reviewed) == (1, 1, 1, 1)
        assert stats.percentage_complete == 50.0

    def test_evaluation_progress(self, engine: AuditScoringService) -> None:
        responses = [snap(30, 80), snap(30), snap(40)]
        assert engine.evaluation_progress(responses) == 33.33
        assert not engine.all_evaluated(responses)
        assert engine.all_evaluated([snap(100, 0)])


@pytest.mark.unit
class TestScoreRanking:
    """Test score statistics and ranking helpers."""

    def test_score_statistics(self, engine: AuditScoringService) -> None:
        stats = engine.score_statistics([snap(30, 80), snap(30, 90), snap(40, 40), snap(0)])
        assert stats.min == 40
        assert stats.max == 90
        assert stats.average == 70
        assert stats.scored == 3

    def test_score_statistics_none_when_unscored(self, engine: AuditScoringService) -> None:
        assert engine.score_statistics([snap(100)]) is None

    def test_lowest_and_highest(self, engine: AuditScoringService) -> None:
        low, mid, high = snap(20, 10), snap(30, 50), snap(50, 95)
        responses = [mid, snap(0), high, low]
        assert engine.lowest_scoring(responses, limit=2) == [low, mid]
        assert engine.highest_scoring(responses, limit=1) == [high]

    def test_inputs_not_mutated(self, engine: AuditScoringService) -> None:
        responses = [snap(50, 10), snap(50, 90)]
        before = [r.model_dump() for r in responses]
        engine.highest_scoring(responses)
        engine.lowest_scoring(responses)
        engine.overall_score(responses)
        assert [r.model_dump() for r in responses] == before
