"""
Competency gap analysis.

The realized rating of a competency is the weighted sum of the per-review-type
average ratings. A review type with no ratings at all is left out of the sum
and the remaining weights are not renormalized, so a missing review type
lowers the realized rating.

gap = expected - realized, signed: a negative gap means the staff member
exceeds the expectation.
"""
import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Sequence

from app.schemas.scoring import (
    CompetencyCategorySummary,
    CompetencyDefinition,
    CompetencyGapRecord,
    CompetencyRating,
)
from app.services.weight_resolver import CategoryWeightResolver

logger = logging.getLogger(__name__)


def most_frequent_rating(values: Sequence[float]) -> float:
    """Mode of the values; ties resolve to the lowest tied value."""
    if not values:
        return 0.0
    counts = Counter(values)
    highest = max(counts.values())
    return min(value for value, count in counts.items() if count == highest)


class GapAnalyzer:

    def __init__(self, resolver: CategoryWeightResolver, decimal_places: int = 2):
        self.resolver = resolver
        self.decimal_places = decimal_places

    def average_actual_rating(self, category_id: int, ratings: Iterable[CompetencyRating]) -> float:
        by_review_type: Dict[int, List[float]] = defaultdict(list)
        for rating in ratings:
            if rating.is_eligible:
                by_review_type[rating.review_type_id].append(rating.rating_value)

        total = 0.0
        for review_type_id in sorted(by_review_type):
            values = by_review_type[review_type_id]
            weight = self.resolver.resolve(category_id, review_type_id)
            total += (sum(values) / len(values)) * weight.weight_percent / 100.0
        return total

    def analyze(
        self,
        staff_id: int,
        review_period_id: int,
        competency: CompetencyDefinition,
        expected_rating_value: float,
        ratings: Iterable[CompetencyRating],
    ) -> CompetencyGapRecord:
        relevant = [
            r for r in ratings
            if r.staff_id == staff_id and r.competency_id == competency.competency_id
        ]
        actual = round(self.average_actual_rating(competency.category_id, relevant), self.decimal_places)
        gap = round(expected_rating_value - actual, self.decimal_places)
        return CompetencyGapRecord(
            staff_id=staff_id,
            competency_id=competency.competency_id,
            review_period_id=review_period_id,
            category_id=competency.category_id,
            expected_rating_value=expected_rating_value,
            average_actual_rating_value=actual,
            gap=gap,
            have_gap=gap > 0,
        )

    def summarize_category(
        self, category_id: int, records: Iterable[CompetencyGapRecord]
    ) -> CompetencyCategorySummary:
        """Matrix statistics over the gap records of one competency category."""
        in_category = [r for r in records if r.category_id == category_id]
        actuals = [r.average_actual_rating_value for r in in_category]
        expected = [r.expected_rating_value for r in in_category]
        count = len(in_category)
        return CompetencyCategorySummary(
            category_id=category_id,
            competency_count=count,
            average_actual_rating=round(sum(actuals) / count, self.decimal_places) if count else 0.0,
            average_expected_rating=round(sum(expected) / count, self.decimal_places) if count else 0.0,
            highest_rating=max(actuals) if actuals else 0.0,
            lowest_rating=min(actuals) if actuals else 0.0,
            most_frequent_rating=most_frequent_rating(actuals),
            gap_count=sum(1 for r in in_category if r.have_gap),
        )
