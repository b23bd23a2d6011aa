"""
Organizational roll-up.

Offices summarize their scored staff; every higher level summarizes its
direct children. Averages are staff-count weighted: the summaries carry the
unrounded score and percentage sums so a parent's average is exactly
sum(child sums) / sum(child staff), independent of how children round.

The hierarchy is processed level by level (OFFICE first). All units of one
level are summarized concurrently and the next level starts only after the
whole level is done. A unit whose summary fails is recorded and excluded
from its parent, which then reports partial coverage.
"""
import logging
from collections import Counter, defaultdict
from concurrent.futures import CancelledError, ThreadPoolExecutor, wait
from contextvars import copy_context
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.exceptions import AppException, InvalidHierarchyError, PartialAggregationError
from app.models.enums import PerformanceGrade, RecordStatus, UnitLevel
from app.schemas.scoring import (
    FeedbackCycle,
    GapClosure,
    OrganizationalUnit,
    OrganizationalUnitSummary,
    StaffActivity,
    StaffPeriodScore,
    WorkProductActivity,
)
from app.services.grade_classifier import GradeClassifier

logger = logging.getLogger(__name__)

COMPLETED_WORK_PRODUCT_STATUSES = {
    RecordStatus.COMPLETED.value,
    RecordStatus.AWAITING_EVALUATION.value,
    RecordStatus.CLOSED.value,
}

# StaffActivity field -> OrganizationalUnitSummary field
ACTIVITY_COUNTERS = {
    "work_products_total": "total_work_products",
    "work_products_on_schedule": "work_products_on_schedule",
    "work_products_behind_schedule": "work_products_behind_schedule",
    "work_products_closed": "work_products_closed",
    "feedbacks_total": "total_feedbacks",
    "feedback_reviews_completed": "completed_feedback_reviews",
    "feedback_reviews_pending": "pending_feedback_reviews",
    "gaps_total": "total_competency_gaps",
    "gaps_closed": "closed_competency_gaps",
}


def build_staff_activity(
    staff_id: int,
    as_of: date,
    work_products: Iterable[WorkProductActivity] = (),
    feedback_cycles: Iterable[FeedbackCycle] = (),
    gap_closures: Iterable[GapClosure] = (),
) -> StaffActivity:
    """Counts one staff member's work products, feedback reviews and gap closures."""
    total = on_schedule = behind = closed = 0
    for product in work_products:
        total += 1
        is_done = product.record_status in COMPLETED_WORK_PRODUCT_STATUSES
        if is_done:
            closed += 1
            if product.completion_date is not None and product.completion_date > product.end_date:
                behind += 1
            else:
                on_schedule += 1
        elif product.record_status == RecordStatus.ACTIVE.value and product.end_date < as_of:
            behind += 1

    feedbacks = completed_reviews = pending_reviews = 0
    for cycle in feedback_cycles:
        feedbacks += 1
        invited = set(cycle.invited_reviewer_ids)
        responded = set(cycle.responded_reviewer_ids)
        completed_reviews += len(responded)
        pending_reviews += len(invited - responded)

    closures = list(gap_closures)
    return StaffActivity(
        staff_id=staff_id,
        work_products_total=total,
        work_products_on_schedule=on_schedule,
        work_products_behind_schedule=behind,
        work_products_closed=closed,
        feedbacks_total=feedbacks,
        feedback_reviews_completed=completed_reviews,
        feedback_reviews_pending=pending_reviews,
        gaps_total=len(closures),
        gaps_closed=sum(1 for c in closures if c.final_score > 0),
    )


def _percent(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0


class RollupAggregator:

    def __init__(self, classifier: GradeClassifier, decimal_places: int = 2):
        self.classifier = classifier
        self.decimal_places = decimal_places

    def summarize_office(
        self,
        unit: OrganizationalUnit,
        review_period_id: int,
        scores: Sequence[StaffPeriodScore],
        activities: Optional[Mapping[int, StaffActivity]] = None,
        excluded_staff: Sequence[int] = (),
    ) -> OrganizationalUnitSummary:
        """Summary of an office from its staff scores. Excluded staff are those whose score failed."""
        if unit.level != UnitLevel.OFFICE:
            raise InvalidHierarchyError(
                f"Unit {unit.unit_id} is a {unit.level.value}, not an office",
                details={"unit_id": unit.unit_id, "level": unit.level.value},
            )
        excluded = tuple(sorted(excluded_staff))
        if excluded and not scores:
            raise PartialAggregationError(unit.unit_id, unit.level.value, list(excluded))

        counters: Counter = Counter()
        activities = activities or {}
        for score in scores:
            activity = activities.get(score.staff_id)
            if activity is None:
                continue
            for source, target in ACTIVITY_COUNTERS.items():
                counters[target] += getattr(activity, source)

        return self._build(
            unit,
            review_period_id,
            total_staff=len(scores),
            score_sum=sum(s.final_score for s in scores),
            percentage_sum=sum(s.percentage for s in scores),
            distribution=Counter(s.grade for s in scores),
            counters=counters,
            expected=len(scores) + len(excluded),
            excluded=excluded,
            is_partial=bool(excluded),
        )

    def summarize_parent(
        self,
        unit: OrganizationalUnit,
        review_period_id: int,
        children: Sequence[OrganizationalUnitSummary],
        failed_children: Sequence[int] = (),
    ) -> OrganizationalUnitSummary:
        expected_level = unit.level.child_level()
        for child in children:
            if child.level != expected_level:
                raise InvalidHierarchyError(
                    f"{unit.level.value} unit {unit.unit_id} cannot contain "
                    f"{child.level.value} unit {child.unit_id}",
                    details={"unit_id": unit.unit_id, "child_id": child.unit_id},
                )
        excluded = tuple(sorted(failed_children))
        if excluded and not children:
            raise PartialAggregationError(unit.unit_id, unit.level.value, list(excluded))

        distribution: Counter = Counter()
        counters: Counter = Counter()
        for child in children:
            distribution.update(child.grade_distribution)
            for target in ACTIVITY_COUNTERS.values():
                counters[target] += getattr(child, target)

        return self._build(
            unit,
            review_period_id,
            total_staff=sum(c.total_staff for c in children),
            score_sum=sum(c.score_sum for c in children),
            percentage_sum=sum(c.percentage_sum for c in children),
            distribution=distribution,
            counters=counters,
            expected=len(children) + len(excluded),
            excluded=excluded,
            is_partial=bool(excluded) or any(c.is_partial for c in children),
        )

    def _build(
        self,
        unit: OrganizationalUnit,
        review_period_id: int,
        total_staff: int,
        score_sum: float,
        percentage_sum: float,
        distribution: Counter,
        counters: Counter,
        expected: int,
        excluded: Tuple[int, ...],
        is_partial: bool,
    ) -> OrganizationalUnitSummary:
        places = self.decimal_places
        if total_staff:
            average_score = round(score_sum / total_staff, places)
            exact_percentage = min(max(percentage_sum / total_staff, 0.0), 100.0)
            average_percentage = round(exact_percentage, places)
            grade = self.classifier.classify(exact_percentage)
        else:
            average_score = 0.0
            average_percentage = 0.0
            grade = None

        wp_total = counters["total_work_products"]
        wp_closed = counters["work_products_closed"]
        closed_pct = round(_percent(wp_closed, wp_total), places)
        return OrganizationalUnitSummary(
            unit_id=unit.unit_id,
            level=unit.level,
            review_period_id=review_period_id,
            total_staff=total_staff,
            score_sum=score_sum,
            percentage_sum=percentage_sum,
            average_score=average_score,
            average_percentage=average_percentage,
            grade=grade,
            grade_distribution={g: distribution.get(g, 0) for g in PerformanceGrade},
            total_work_products=wp_total,
            work_products_on_schedule=counters["work_products_on_schedule"],
            work_products_behind_schedule=counters["work_products_behind_schedule"],
            work_products_closed=wp_closed,
            percentage_work_products_closed=closed_pct,
            percentage_work_products_pending=round(100.0 - closed_pct, places) if wp_total else 0.0,
            total_feedbacks=counters["total_feedbacks"],
            completed_feedback_reviews=counters["completed_feedback_reviews"],
            pending_feedback_reviews=counters["pending_feedback_reviews"],
            total_competency_gaps=counters["total_competency_gaps"],
            closed_competency_gaps=counters["closed_competency_gaps"],
            percentage_gaps_closure=round(
                _percent(counters["closed_competency_gaps"], counters["total_competency_gaps"]), places
            ),
            expected_units=expected,
            covered_units=expected - len(excluded),
            excluded_units=excluded,
            is_partial=is_partial,
        )


def validate_hierarchy(units: Sequence[OrganizationalUnit]) -> Dict[int, List[int]]:
    """Returns parent id -> child ids, rejecting duplicates and level skips."""
    by_id: Dict[int, OrganizationalUnit] = {}
    for unit in units:
        if unit.unit_id in by_id:
            raise InvalidHierarchyError(
                f"Unit {unit.unit_id} appears more than once", details={"unit_id": unit.unit_id}
            )
        by_id[unit.unit_id] = unit

    children: Dict[int, List[int]] = defaultdict(list)
    for unit in units:
        if unit.parent_id is None or unit.parent_id not in by_id:
            continue
        parent = by_id[unit.parent_id]
        if parent.level.child_level() != unit.level:
            raise InvalidHierarchyError(
                f"{unit.level.value} unit {unit.unit_id} cannot sit under "
                f"{parent.level.value} unit {parent.unit_id}",
                details={"unit_id": unit.unit_id, "parent_id": parent.unit_id},
            )
        children[parent.unit_id].append(unit.unit_id)
    return children


class HierarchyRollup:
    """Runs the level-by-level roll-up over a set of units."""

    def __init__(self, aggregator: RollupAggregator, max_workers: int = 4):
        self.aggregator = aggregator
        self.max_workers = max(1, max_workers)

    def run(
        self,
        review_period_id: int,
        units: Sequence[OrganizationalUnit],
        summarize_office: Callable[[OrganizationalUnit], OrganizationalUnitSummary],
    ) -> Tuple[Dict[int, OrganizationalUnitSummary], Dict[int, AppException]]:
        """
        Returns (summaries by unit id, errors by unit id).

        ``summarize_office`` produces the summary of one office. Domain errors
        (AppException) and cancellations are recorded per unit; anything else
        propagates.
        """
        children = validate_hierarchy(units)
        summaries: Dict[int, OrganizationalUnitSummary] = {}
        errors: Dict[int, AppException] = {}

        def summarize_parent(unit: OrganizationalUnit) -> OrganizationalUnitSummary:
            child_ids = children.get(unit.unit_id, [])
            return self.aggregator.summarize_parent(
                unit,
                review_period_id,
                [summaries[c] for c in child_ids if c in summaries],
                [c for c in child_ids if c in errors],
            )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for level in UnitLevel.bottom_up():
                level_units = sorted((u for u in units if u.level == level), key=lambda u: u.unit_id)
                if not level_units:
                    continue
                task = summarize_office if level == UnitLevel.OFFICE else summarize_parent
                futures = {executor.submit(copy_context().run, task, unit): unit for unit in level_units}
                wait(futures)

                for future, unit in futures.items():
                    try:
                        summaries[unit.unit_id] = future.result()
                    except CancelledError:
                        errors[unit.unit_id] = AppException(
                            f"Summary of unit {unit.unit_id} was cancelled", error_code="CANCELLED"
                        )
                    except AppException as exc:
                        logger.warning(
                            "Unit excluded from roll-up",
                            extra={"unit_id": unit.unit_id, "unit_level": level.value, "error_code": exc.error_code},
                        )
                        errors[unit.unit_id] = exc

                logger.debug(
                    "Roll-up level complete",
                    extra={"unit_level": level.value, "units": len(level_units), "failed": len(errors)},
                )
        return summaries, errors
