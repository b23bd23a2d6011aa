"""
Category weight lookup and period configuration validation.

Lookups fail fast: a missing weight row raises ConfigurationMissingError
instead of defaulting to zero.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import ConfigurationMissingError, InconsistentWeightError
from app.schemas.scoring import CategoryWeight, PeriodCategory, ReviewPeriodInfo

logger = logging.getLogger(__name__)

HUNDRED = 100.0


class CategoryWeightResolver:
    """Pure lookup of (category, review type) -> weight row for one review period."""

    def __init__(self, review_period_id: int, weights: Iterable[CategoryWeight]):
        self.review_period_id = review_period_id
        self._weights: Dict[Tuple[int, Optional[int]], CategoryWeight] = {}
        for weight in weights:
            if weight.review_period_id != review_period_id:
                continue
            self._weights[(weight.category_id, weight.review_type_id)] = weight

    def resolve(self, category_id: int, review_type_id: Optional[int] = None) -> CategoryWeight:
        weight = self._weights.get((category_id, review_type_id))
        if weight is None:
            raise ConfigurationMissingError(
                f"No weight configured for category {category_id}, review type {review_type_id} "
                f"in review period {self.review_period_id}",
                details={
                    "review_period_id": self.review_period_id,
                    "category_id": category_id,
                    "review_type_id": review_type_id,
                },
            )
        return weight

    def weights_for_category(self, category_id: int) -> List[CategoryWeight]:
        rows = [w for (cat_id, _), w in self._weights.items() if cat_id == category_id]
        # Category-wide row (no review type) first, then by review type id
        return sorted(rows, key=lambda w: (w.review_type_id is not None, w.review_type_id or 0))


def _off_by_more_than(actual: float, expected: float, tolerance: float) -> bool:
    return abs(actual - expected) > tolerance


def validate_period_configuration(
    period: ReviewPeriodInfo,
    categories: Sequence[PeriodCategory],
    resolver: CategoryWeightResolver,
    tolerance: float,
) -> None:
    """
    Reject a review period whose configuration does not add up.

    Checks, in order:
    - every period category has at least one weight row (ConfigurationMissingError)
    - review-type weights of each category sum to 100
    - shares of the scoring (non-deduction) categories sum to 100
    - max points of the scoring categories sum to the period max points
    """
    if period.max_points <= 0:
        raise InconsistentWeightError(
            f"Review period {period.review_period_id} has non-positive max points",
            expected_total=HUNDRED,
            actual_total=period.max_points,
            review_period_id=period.review_period_id,
        )

    for category in categories:
        rows = resolver.weights_for_category(category.category_id)
        if not rows:
            logger.error(
                "Missing weight configuration",
                extra={"review_period_id": period.review_period_id, "category_id": category.category_id},
            )
            raise ConfigurationMissingError(
                f"Category {category.category_id} has no weight configuration "
                f"in review period {period.review_period_id}",
                details={"review_period_id": period.review_period_id, "category_id": category.category_id},
            )
        total = sum(row.weight_percent for row in rows)
        if _off_by_more_than(total, HUNDRED, tolerance):
            raise InconsistentWeightError(
                f"Review type weights of category {category.category_id} sum to {total:.2f}%, expected 100%",
                expected_total=HUNDRED,
                actual_total=total,
                review_period_id=period.review_period_id,
                category_id=category.category_id,
            )

    scoring = [c for c in categories if not c.is_deduction]
    share_total = sum(c.share_percent for c in scoring)
    if _off_by_more_than(share_total, HUNDRED, tolerance):
        raise InconsistentWeightError(
            f"Category weights sum to {share_total:.2f}%, expected 100%",
            expected_total=HUNDRED,
            actual_total=share_total,
            review_period_id=period.review_period_id,
        )

    points_total = sum(c.max_points for c in scoring)
    if _off_by_more_than(points_total, period.max_points, tolerance):
        raise InconsistentWeightError(
            f"Category max points sum to {points_total:.2f}, expected period maximum {period.max_points:.2f}",
            expected_total=period.max_points,
            actual_total=points_total,
            review_period_id=period.review_period_id,
        )
