import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional

from app.core.exceptions import ConfigurationMissingError
from app.schemas.scoring import FeedbackCycle, FeedbackResult

logger = logging.getLogger(__name__)


class FeedbackAggregator:
    """
    Averages the reviewer ratings of a 360 degree cycle into a final score.

    Ratings are averaged per competency, the competency averages are combined
    weighted by each competency's point value, and the resulting rating is
    scaled from the rating scale onto the cycle's max points.
    """

    def __init__(
        self,
        point_values: Mapping[int, float],
        default_rating_scale_max: float = 5,
        decimal_places: int = 2,
    ):
        self.point_values = dict(point_values)
        self.default_rating_scale_max = default_rating_scale_max
        self.decimal_places = decimal_places

    def _point_value(self, cycle: FeedbackCycle, competency_id: int) -> float:
        value = self.point_values.get(competency_id)
        if value is None:
            raise ConfigurationMissingError(
                f"No feedback point value configured for competency {competency_id} "
                f"in review period {cycle.review_period_id}",
                details={"cycle_id": cycle.cycle_id, "competency_id": competency_id},
            )
        return value

    def aggregate(self, cycle: FeedbackCycle) -> FeedbackResult:
        by_competency: Dict[int, List[float]] = defaultdict(list)
        for rating in cycle.ratings:
            by_competency[rating.competency_id].append(rating.rating)

        averages: Dict[int, float] = {}
        weighted_sum = 0.0
        weight_total = 0.0
        for competency_id in sorted(by_competency):
            values = by_competency[competency_id]
            point_value = self._point_value(cycle, competency_id)
            average = sum(values) / len(values)
            averages[competency_id] = round(average, self.decimal_places)
            weighted_sum += average * point_value
            weight_total += point_value

        if by_competency and weight_total <= 0:
            raise ConfigurationMissingError(
                f"Feedback point values for cycle {cycle.cycle_id} sum to zero",
                details={"cycle_id": cycle.cycle_id},
            )

        average_rating = weighted_sum / weight_total if weight_total else 0.0
        scale_max: Optional[float] = cycle.rating_scale_max or self.default_rating_scale_max
        final_score = min(average_rating / scale_max * cycle.max_points, cycle.max_points)

        invited = set(cycle.invited_reviewer_ids)
        responded = set(cycle.responded_reviewer_ids)
        is_complete = bool(invited) and invited <= responded
        if not is_complete:
            logger.info(
                "Feedback cycle is partial",
                extra={"cycle_id": cycle.cycle_id, "pending": len(invited - responded)},
            )

        return FeedbackResult(
            cycle_id=cycle.cycle_id,
            staff_id=cycle.staff_id,
            review_period_id=cycle.review_period_id,
            competency_averages=averages,
            average_rating=round(average_rating, self.decimal_places),
            final_score=round(final_score, self.decimal_places),
            max_points=cycle.max_points,
            invited_count=len(invited),
            responded_count=len(responded & invited) if invited else len(responded),
            is_complete=is_complete,
        )
