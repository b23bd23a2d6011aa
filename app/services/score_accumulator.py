"""
Score Accumulator

Turns one staff member's contribution records for a review period into a
single period score.

Per category:
    1. group eligible records by review type and keep at most ``max_count``
       records per review type (lowest record id first)
    2. sum earned points and cap them at the review type's ``max_points``
    3. combine review types by their weight percentage (absent review types
       contribute nothing, the remaining weights are not renormalized)
    4. cap at the category's ``max_points`` and scale to the category's share
       of the period maximum

Deduction categories are applied after every scoring category and the final
score never drops below zero.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from app.core.exceptions import ConfigurationMissingError
from app.schemas.scoring import (
    CategoryScore,
    ContributionRecord,
    PeriodCategory,
    ReviewPeriodInfo,
    StaffPeriodScore,
)
from app.services.grade_classifier import GradeClassifier
from app.services.weight_resolver import CategoryWeightResolver

logger = logging.getLogger(__name__)


class ScoreAccumulator:

    def __init__(
        self,
        period: ReviewPeriodInfo,
        categories: Sequence[PeriodCategory],
        resolver: CategoryWeightResolver,
        classifier: GradeClassifier,
        decimal_places: int = 2,
        under_performance_cutoff: float = 50.0,
    ):
        self.period = period
        self.resolver = resolver
        self.classifier = classifier
        self.decimal_places = decimal_places
        self.under_performance_cutoff = under_performance_cutoff
        self._categories: Dict[int, PeriodCategory] = {c.category_id: c for c in categories}

    def _round(self, value: float) -> float:
        return round(value, self.decimal_places)

    def _group_records(
        self, staff_id: int, contributions: Iterable[ContributionRecord]
    ) -> Dict[int, List[ContributionRecord]]:
        grouped: Dict[int, List[ContributionRecord]] = defaultdict(list)
        for record in contributions:
            if not record.is_eligible:
                continue
            if record.staff_id != staff_id or record.review_period_id != self.period.review_period_id:
                continue
            if record.category_id not in self._categories:
                raise ConfigurationMissingError(
                    f"Contribution {record.record_id} references category {record.category_id} "
                    f"which is not configured for review period {self.period.review_period_id}",
                    details={
                        "staff_id": staff_id,
                        "record_id": record.record_id,
                        "category_id": record.category_id,
                    },
                )
            # Fail fast on a review type without a weight row
            self.resolver.resolve(record.category_id, record.review_type_id)
            grouped[record.category_id].append(record)
        return grouped

    def category_points(
        self, category: PeriodCategory, records: Sequence[ContributionRecord]
    ) -> Tuple[float, float, int]:
        """Returns (raw points, capped weighted points, counted records) for one category."""
        by_review_type: Dict[object, List[ContributionRecord]] = defaultdict(list)
        for record in records:
            by_review_type[record.review_type_id].append(record)

        raw_total = 0.0
        combined = 0.0
        counted = 0
        for row in self.resolver.weights_for_category(category.category_id):
            selected = sorted(by_review_type.get(row.review_type_id, []), key=lambda r: r.record_id)
            if row.max_count is not None:
                selected = selected[: row.max_count]
            points = sum(r.earned_points() for r in selected)
            raw_total += points
            counted += len(selected)
            combined += min(points, row.max_points) * row.weight_percent / 100.0

        combined = max(combined, 0.0)
        if category.max_points > 0:
            combined = min(combined, category.max_points)
        return raw_total, combined, counted

    def accumulate(self, staff_id: int, contributions: Iterable[ContributionRecord]) -> StaffPeriodScore:
        grouped = self._group_records(staff_id, contributions)
        period_max = self.period.max_points

        category_scores: List[CategoryScore] = []
        positive_total = 0.0
        deduction_total = 0.0

        ordered = sorted(self._categories.values(), key=lambda c: (c.is_deduction, c.category_id))
        for category in ordered:
            raw, capped, counted = self.category_points(category, grouped.get(category.category_id, []))
            if category.is_deduction:
                weighted = -capped
                deduction_total += capped
            else:
                if category.max_points > 0:
                    allotted = category.share_percent / 100.0 * period_max
                    weighted = capped / category.max_points * allotted
                else:
                    weighted = 0.0
                positive_total += weighted
            category_scores.append(
                CategoryScore(
                    category_id=category.category_id,
                    name=category.name,
                    kind=category.kind,
                    record_count=counted,
                    raw_points=self._round(raw),
                    capped_points=self._round(capped),
                    weighted_score=self._round(weighted),
                    share_percent=category.share_percent,
                    max_points=category.max_points,
                )
            )

        final_score = min(max(positive_total - deduction_total, 0.0), period_max)
        exact_percentage = min(max(100.0 * final_score / period_max, 0.0), 100.0)
        percentage = self._round(exact_percentage)
        grade = self.classifier.classify(exact_percentage)

        logger.debug(
            "Accumulated staff score",
            extra={"staff_id": staff_id, "final_score": final_score, "percentage": percentage},
        )
        return StaffPeriodScore(
            staff_id=staff_id,
            review_period_id=self.period.review_period_id,
            category_scores=tuple(category_scores),
            deduction_points=self._round(deduction_total),
            final_score=self._round(final_score),
            max_points=period_max,
            percentage=percentage,
            grade=grade,
            is_under_performing=exact_percentage < self.under_performance_cutoff,
        )
