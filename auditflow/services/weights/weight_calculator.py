"""
Weight Calculator Service

Pure, side-effect-free arithmetic over lists of standard/response weights.

Business rule:
    The weights of all auditable, active standards of a template (and the
    frozen weights of an audit's responses) must sum to 100 within a small
    tolerance (0.01 by default) to absorb decimal rounding.

Rounding:
    Every result is rounded to 2 decimal places with ROUND_HALF_UP, except
    ``equal_distribution`` which truncates. The LAST position of a list always
    absorbs the residual rounding error so that results are reproducible
    (a negative residual skips trailing weights pinned at 0).

Example:
    >>> calc = WeightCalculator()
    >>> calc.equal_distribution(3)
    [33.33, 33.33, 33.34]
    >>> calc.redistribute([20, 30, 50], 0)
    [37.5, 62.5]
"""

import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence, Union

from ...config import get_settings
from ...exceptions import InvalidIndexError, OutOfRangeError, WeightSumInvalidError
from ...models.scoring_models import WeightStatistics

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]

HUNDRED = Decimal("100")
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Number) -> Decimal:
    """Convert through ``str`` so 0.1 stays 0.1 instead of its binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class WeightCalculator:
    """
    Weight arithmetic for the standard tree editor and audit validation.

    Provides:
    - Sum and conservation checks (``sum``, ``validate_sum``, ``is_valid_sum``)
    - Generation of conservative sets (``equal_distribution``, ``normalize``)
    - Editing operations that keep the set conservative
      (``redistribute`` on removal, ``apply_weight_change`` on drag)
    """

    def __init__(self, tolerance: Optional[float] = None):
        """
        Args:
            tolerance: Allowed |sum - 100|; defaults to settings.weight_tolerance
        """
        if tolerance is None:
            tolerance = get_settings().weight_tolerance
        self.tolerance = tolerance
        self._tolerance = to_decimal(tolerance)

    # ------------------------------------------------------------------
    # Sums and validation
    # ------------------------------------------------------------------

    def sum(self, weights: Sequence[Number]) -> float:
        """Arithmetic sum rounded to 2 decimal places."""
        return float(self._sum(self._to_decimals(weights)))

    def is_valid_sum(self, weights: Sequence[Number]) -> bool:
        total = self._sum(self._to_decimals(weights))
        return abs(total - HUNDRED) <= self._tolerance

    def validate_sum(self, weights: Sequence[Number], scope: Optional[str] = None) -> None:
        """
        Check that weights sum to 100 within tolerance.

        Args:
            weights: Weights to check
            scope: Optional description for the error message ("template <id>")

        Raises:
            WeightSumInvalidError: If |sum - 100| exceeds the tolerance
        """
        total = self._sum(self._to_decimals(weights))
        if abs(total - HUNDRED) > self._tolerance:
            logger.warning(f"Weight sum check failed for {scope or 'weights'}: total={total}")
            raise WeightSumInvalidError(float(total), tolerance=self.tolerance, scope=scope)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def equal_distribution(self, count: int) -> List[float]:
        """
        Split 100 into ``count`` equal weights.

        Each weight is 100/count truncated to 2 decimals; the last element
        takes the remainder so the set sums to exactly 100.00.

        Example:
            equal_distribution(3) -> [33.33, 33.33, 33.34]
            equal_distribution(4) -> [25.0, 25.0, 25.0, 25.0]

        Raises:
            OutOfRangeError: If count < 1
        """
        if count < 1:
            raise OutOfRangeError("count", count, 1)

        base = (HUNDRED / count).quantize(CENT, rounding=ROUND_DOWN)
        weights = [base] * count
        weights[-1] = HUNDRED - base * (count - 1)
        return self._to_floats(weights)

    def normalize(self, weights: Sequence[Number]) -> List[float]:
        """
        Rescale weights by 100/sum so they sum to exactly 100.00.

        Example:
            normalize([30.5, 40.3, 29.3]) -> [30.47, 40.26, 29.27]

        Raises:
            InvalidIndexError: If the list is empty
            WeightSumInvalidError: If the weights sum to 0
        """
        return self._to_floats(self._normalize(self._to_decimals(weights)))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def redistribute(self, weights: Sequence[Number], index_to_remove: int) -> List[float]:
        """
        Remove one weight and spread it over the rest proportionally.

        Each remaining weight w_i receives removed * (w_i / remaining_total);
        the result is then normalized to guarantee exact conservation. When
        every remaining weight is 0 the removed weight is spread equally.

        Example:
            redistribute([20, 30, 50], 0) -> [37.5, 62.5]

        Raises:
            InvalidIndexError: If the index is out of bounds or nothing would remain
        """
        values = self._to_decimals(weights)
        self._check_index(index_to_remove, len(values))

        removed = values[index_to_remove]
        remaining = values[:index_to_remove] + values[index_to_remove + 1 :]
        if not remaining:
            raise InvalidIndexError(
                index_to_remove,
                len(values),
                reason="Cannot remove the only weight: the result would be empty",
            )

        remaining_total = sum(remaining, ZERO)
        if remaining_total == ZERO:
            return self.equal_distribution(len(remaining))

        redistributed = [round2(w + removed * w / remaining_total) for w in remaining]
        return self._to_floats(self._normalize(redistributed))

    def apply_weight_change(self, weights: Sequence[Number], index: int, new_weight: Number) -> List[float]:
        """
        Set one weight and let the others compensate.

        The signed delta (old - new) is spread evenly over every other
        element. An element that would drop below 0 is pinned at 0 and the
        part it could not absorb is spread again over the elements still
        above 0. The set is then normalized.

        Example:
            apply_weight_change([25, 25, 25, 25], 0, 40) -> [40.0, 20.0, 20.0, 20.0]

        Raises:
            InvalidIndexError: If the index is out of bounds
            OutOfRangeError: Unless 0 <= new_weight <= 100
        """
        values = self._to_decimals(weights)
        self._check_index(index, len(values))

        target = to_decimal(new_weight)
        if target < ZERO or target > HUNDRED:
            raise OutOfRangeError("weight", new_weight, 0, 100)

        adjusted = list(values)
        pending = adjusted[index] - target
        adjusted[index] = target

        pool = [i for i in range(len(adjusted)) if i != index]
        while pending != ZERO and pool:
            share = pending / len(pool)
            still_open = []
            for i in pool:
                candidate = adjusted[i] + share
                if candidate < ZERO:
                    pending += adjusted[i]
                    adjusted[i] = ZERO
                else:
                    pending -= share
                    adjusted[i] = candidate
                    if candidate > ZERO:
                        still_open.append(i)
            if len(still_open) == len(pool):
                break
            pool = still_open

        return self._to_floats(self._normalize([round2(w) for w in adjusted]))

    def statistics(self, weights: Sequence[Number]) -> WeightStatistics:
        """Min, max, average and total of a weight list (zeros for an empty list)."""
        values = self._to_decimals(weights)
        if not values:
            return WeightStatistics()
        total = sum(values, ZERO)
        return WeightStatistics(
            min=float(min(values)),
            max=float(max(values)),
            average=float(round2(total / len(values))),
            total=float(round2(total)),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _normalize(self, values: List[Decimal]) -> List[Decimal]:
        if not values:
            raise InvalidIndexError(0, 0, reason="Cannot normalize an empty weight list")

        total = sum(values, ZERO)
        if total == ZERO:
            raise WeightSumInvalidError(0.0, tolerance=self.tolerance, scope="normalization (sum is 0)")

        normalized = [round2(w * HUNDRED / total) for w in values]
        residual = HUNDRED - sum(normalized, ZERO)

        # Last position absorbs the residual unless that would make it negative
        # (a weight pinned at 0); then the closest position from the end that can.
        target = len(normalized) - 1
        while target > 0 and normalized[target] + residual < ZERO:
            target -= 1
        normalized[target] = round2(normalized[target] + residual)
        return normalized

    @staticmethod
    def _sum(values: List[Decimal]) -> Decimal:
        return round2(sum(values, ZERO))

    @staticmethod
    def _check_index(index: int, length: int) -> None:
        if index < 0 or index >= length:
            raise InvalidIndexError(index, length)

    @staticmethod
    def _to_decimals(weights: Sequence[Number]) -> List[Decimal]:
        values = [to_decimal(w) for w in weights]
        for w in values:
            if w < ZERO:
                raise OutOfRangeError("weight", float(w), 0, 100)
        return values

    @staticmethod
    def _to_floats(values: List[Decimal]) -> List[float]:
        return [float(v) for v in values]
