"""
Performance Engine

Entry point of the scoring engine. Every call loads one PeriodSnapshot from
the repository, validates the period configuration before any score is
computed, and then runs the component services over the snapshot:

    CategoryWeightResolver -> ScoreAccumulator -> GradeClassifier
                           -> GapAnalyzer
    FeedbackAggregator     -> ScoreAccumulator (FEEDBACK categories)
    StaffPeriodScore       -> RollupAggregator (OFFICE ... ENTERPRISE)

Nothing is persisted here; callers store the returned values.
"""
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from contextvars import copy_context
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from app.core.config import ScoringSettings, settings
from app.core.exceptions import (
    AppException,
    ConfigurationMissingError,
    InvalidHierarchyError,
    NotFoundError,
)
from app.core.logging import review_period_var
from app.models.enums import CategoryKind, UnitLevel
from app.schemas.scoring import (
    CompetencyCategorySummary,
    CompetencyGapRecord,
    ContributionRecord,
    FeedbackResult,
    OrganizationalUnit,
    OrganizationalUnitSummary,
    PeriodComputation,
    PeriodSnapshot,
    StaffActivity,
    StaffFailure,
    StaffPeriodScore,
    UnitFailure,
)
from app.services.feedback_aggregator import FeedbackAggregator
from app.services.gap_analyzer import GapAnalyzer
from app.services.grade_classifier import GradeClassifier
from app.services.performance_repository import PerformanceDataRepository
from app.services.rollup_aggregator import HierarchyRollup, RollupAggregator, build_staff_activity
from app.services.score_accumulator import ScoreAccumulator
from app.services.weight_resolver import CategoryWeightResolver, validate_period_configuration

logger = logging.getLogger(__name__)


def _group_by_staff(items: Iterable) -> Dict[int, list]:
    grouped: Dict[int, list] = defaultdict(list)
    for item in items:
        grouped[item.staff_id].append(item)
    return grouped


class PeriodContext:
    """Validated snapshot of one review period with its component services wired up."""

    def __init__(self, snapshot: PeriodSnapshot, scoring: ScoringSettings, classifier: GradeClassifier):
        self.snapshot = snapshot
        self.scoring = scoring
        period = snapshot.review_period

        self.resolver = CategoryWeightResolver(period.review_period_id, snapshot.weights)
        validate_period_configuration(period, snapshot.categories, self.resolver, scoring.weight_tolerance)

        self.accumulator = ScoreAccumulator(
            period,
            snapshot.categories,
            self.resolver,
            classifier,
            decimal_places=scoring.decimal_places,
            under_performance_cutoff=scoring.under_performance_cutoff,
        )
        self.gap_analyzer = GapAnalyzer(self.resolver, scoring.decimal_places)
        self.feedback_aggregator = FeedbackAggregator(
            snapshot.feedback_point_values,
            default_rating_scale_max=scoring.default_rating_scale_max,
            decimal_places=scoring.decimal_places,
        )
        self.rollup = RollupAggregator(classifier, scoring.decimal_places)

        self.staff = {s.staff_id: s for s in snapshot.staff}
        self.units = {u.unit_id: u for u in snapshot.units}
        self.competencies = {c.competency_id: c for c in snapshot.competencies}
        self.contributions = _group_by_staff(snapshot.contributions)
        self.ratings = _group_by_staff(snapshot.competency_ratings)
        self.targets = _group_by_staff(snapshot.competency_targets)
        self.cycles = _group_by_staff(snapshot.feedback_cycles)
        self.work_products = _group_by_staff(snapshot.work_products)
        self.closures = _group_by_staff(snapshot.gap_closures)

        feedback_categories = sorted(
            c.category_id for c in snapshot.categories if c.kind == CategoryKind.FEEDBACK
        )
        self.feedback_category_id: Optional[int] = feedback_categories[0] if feedback_categories else None

    @property
    def review_period_id(self) -> int:
        return self.snapshot.review_period_id

    def eligible_staff(self, staff_id: int):
        member = self.staff.get(staff_id)
        if member is None or not member.is_eligible:
            raise NotFoundError("Staff member", staff_id)
        return member

    def feedback(self, staff_id: int) -> List[FeedbackResult]:
        return [
            self.feedback_aggregator.aggregate(cycle)
            for cycle in sorted(self.cycles.get(staff_id, []), key=lambda c: c.cycle_id)
            if cycle.review_period_id == self.review_period_id
        ]

    def _feedback_contributions(self, staff_id: int, explicit: Sequence[ContributionRecord]):
        """Feedback results as contributions of the FEEDBACK category, unless one was recorded explicitly."""
        category_id = self.feedback_category_id
        if category_id is None:
            return []
        if any(r.category_id == category_id and r.is_eligible for r in explicit):
            return []
        return [
            ContributionRecord(
                record_id=-result.cycle_id,
                staff_id=staff_id,
                review_period_id=self.review_period_id,
                category_id=category_id,
                points=result.final_score,
            )
            for result in self.feedback(staff_id)
        ]

    def staff_score(self, staff_id: int) -> StaffPeriodScore:
        self.eligible_staff(staff_id)
        explicit = self.contributions.get(staff_id, [])
        records = list(explicit) + self._feedback_contributions(staff_id, explicit)
        return self.accumulator.accumulate(staff_id, records)

    def competency_gaps(self, staff_id: int) -> List[CompetencyGapRecord]:
        self.eligible_staff(staff_id)
        ratings = self.ratings.get(staff_id, [])
        records = []
        for target in sorted(self.targets.get(staff_id, []), key=lambda t: t.competency_id):
            competency = self.competencies.get(target.competency_id)
            if competency is None:
                raise ConfigurationMissingError(
                    f"Competency {target.competency_id} targeted for staff {staff_id} is not defined",
                    details={"staff_id": staff_id, "competency_id": target.competency_id},
                )
            records.append(
                self.gap_analyzer.analyze(
                    staff_id, self.review_period_id, competency, target.expected_rating_value, ratings
                )
            )
        return records

    def activity(self, staff_id: int) -> StaffActivity:
        return build_staff_activity(
            staff_id,
            self.snapshot.as_of,
            work_products=self.work_products.get(staff_id, []),
            feedback_cycles=self.cycles.get(staff_id, []),
            gap_closures=self.closures.get(staff_id, []),
        )

    def office_staff(self, office_id: int) -> List[int]:
        return sorted(s.staff_id for s in self.staff.values() if s.is_eligible and s.office_id == office_id)

    def unplaced_staff(self) -> List[int]:
        """Eligible staff whose office is missing, inactive or not an OFFICE unit."""
        return sorted(
            s.staff_id
            for s in self.staff.values()
            if s.is_eligible
            and (s.office_id not in self.units or self.units[s.office_id].level != UnitLevel.OFFICE)
        )

    def root_unit_ids(self) -> List[int]:
        return sorted(u.unit_id for u in self.units.values() if u.parent_id not in self.units)

    def subtree(self, root_id: int) -> List[OrganizationalUnit]:
        children: Dict[int, List[int]] = defaultdict(list)
        for unit in self.units.values():
            if unit.parent_id is not None:
                children[unit.parent_id].append(unit.unit_id)
        found: List[OrganizationalUnit] = []
        seen: Set[int] = set()
        pending = [root_id]
        while pending:
            unit_id = pending.pop()
            if unit_id in seen:
                raise InvalidHierarchyError(
                    f"Unit {unit_id} is reachable twice below unit {root_id}",
                    details={"unit_id": unit_id, "root_id": root_id},
                )
            seen.add(unit_id)
            found.append(self.units[unit_id])
            pending.extend(children.get(unit_id, []))
        return found


class PerformanceEngine:

    def __init__(
        self,
        repository: PerformanceDataRepository,
        scoring: Optional[ScoringSettings] = None,
        classifier: Optional[GradeClassifier] = None,
    ):
        self.repository = repository
        self.scoring = scoring or settings.scoring
        self.classifier = classifier or GradeClassifier()

    @contextmanager
    def _context(self, review_period_id: int) -> Iterator[PeriodContext]:
        """One snapshot per call; the review period tags log records until the call returns."""
        token = review_period_var.set(str(review_period_id))
        try:
            snapshot = self.repository.load_snapshot(review_period_id)
            yield PeriodContext(snapshot, self.scoring, self.classifier)
        finally:
            review_period_var.reset(token)

    def compute_staff_score(self, staff_id: int, review_period_id: int) -> StaffPeriodScore:
        with self._context(review_period_id) as context:
            return context.staff_score(staff_id)

    def compute_competency_gaps(self, staff_id: int, review_period_id: int) -> List[CompetencyGapRecord]:
        with self._context(review_period_id) as context:
            return context.competency_gaps(staff_id)

    def compute_staff_results(
        self, staff_id: int, review_period_id: int
    ) -> Tuple[StaffPeriodScore, List[CompetencyGapRecord]]:
        """Score and gap records of one staff member, both read from the same snapshot."""
        with self._context(review_period_id) as context:
            return context.staff_score(staff_id), context.competency_gaps(staff_id)

    def compute_competency_matrix(self, staff_id: int, review_period_id: int) -> List[CompetencyCategorySummary]:
        """Per competency category statistics over the staff member's gap records."""
        with self._context(review_period_id) as context:
            records = context.competency_gaps(staff_id)
            category_ids = sorted({r.category_id for r in records if r.category_id is not None})
            return [context.gap_analyzer.summarize_category(c, records) for c in category_ids]

    def compute_feedback(self, staff_id: int, review_period_id: int) -> List[FeedbackResult]:
        with self._context(review_period_id) as context:
            context.eligible_staff(staff_id)
            return context.feedback(staff_id)

    def _score_staff(
        self, context: PeriodContext, staff_ids: Sequence[int]
    ) -> Tuple[Dict[int, StaffPeriodScore], Dict[int, AppException]]:
        scores: Dict[int, StaffPeriodScore] = {}
        errors: Dict[int, AppException] = {}
        with ThreadPoolExecutor(max_workers=max(1, self.scoring.rollup_max_workers)) as executor:
            futures = {
                staff_id: executor.submit(copy_context().run, context.staff_score, staff_id)
                for staff_id in staff_ids
            }
            for staff_id, future in futures.items():
                try:
                    scores[staff_id] = future.result()
                except AppException as exc:
                    logger.warning(
                        "Staff member excluded from period computation",
                        extra={"staff_id": staff_id, "error_code": exc.error_code},
                    )
                    errors[staff_id] = exc
        return scores, errors

    def _roll_up(
        self,
        context: PeriodContext,
        units: Sequence[OrganizationalUnit],
        scores: Dict[int, StaffPeriodScore],
        errors: Dict[int, AppException],
    ):
        def summarize_office(unit: OrganizationalUnit) -> OrganizationalUnitSummary:
            staff_ids = context.office_staff(unit.unit_id)
            return context.rollup.summarize_office(
                unit,
                context.review_period_id,
                [scores[s] for s in staff_ids if s in scores],
                {s: context.activity(s) for s in staff_ids},
                [s for s in staff_ids if s in errors],
            )

        rollup = HierarchyRollup(context.rollup, self.scoring.rollup_max_workers)
        summaries, unit_errors = rollup.run(context.review_period_id, units, summarize_office)

        unplaced = context.unplaced_staff()
        if unplaced:
            # Staff outside every office never reach a roll-up, so the top of the hierarchy is incomplete
            for unit_id in context.root_unit_ids():
                if unit_id in summaries:
                    summaries[unit_id] = summaries[unit_id].model_copy(update={"is_partial": True})
        return summaries, unit_errors

    def compute_unit_summary(self, unit_id: int, level: UnitLevel, review_period_id: int) -> OrganizationalUnitSummary:
        with self._context(review_period_id) as context:
            unit = context.units.get(unit_id)
            if unit is None:
                raise NotFoundError("Organizational unit", unit_id)
            if unit.level != level:
                raise InvalidHierarchyError(
                    f"Unit {unit_id} is a {unit.level.value}, not a {level.value}",
                    details={"unit_id": unit_id, "level": unit.level.value, "requested_level": level.value},
                )

            units = context.subtree(unit_id)
            office_ids = {u.unit_id for u in units if u.level == UnitLevel.OFFICE}
            staff_ids = sorted(
                s.staff_id for s in context.staff.values() if s.is_eligible and s.office_id in office_ids
            )
            scores, staff_errors = self._score_staff(context, staff_ids)
            summaries, unit_errors = self._roll_up(context, units, scores, staff_errors)
            if unit_id in unit_errors:
                raise unit_errors[unit_id]
            return summaries[unit_id]

    def compute_period(self, review_period_id: int) -> PeriodComputation:
        """Every eligible staff score, gap records and the full roll-up of one review period."""
        with self._context(review_period_id) as context:
            return self._compute_period(context)

    def _compute_period(self, context: PeriodContext) -> PeriodComputation:
        review_period_id = context.review_period_id
        logger.info("Period computation started", extra={"review_period_id": review_period_id})

        staff_ids = sorted(s.staff_id for s in context.staff.values() if s.is_eligible)
        scores, staff_errors = self._score_staff(context, staff_ids)

        gap_records: List[CompetencyGapRecord] = []
        staff_failures = [
            StaffFailure(staff_id=s, error_code=exc.error_code, message=exc.message)
            for s, exc in sorted(staff_errors.items())
        ]
        for staff_id in staff_ids:
            if staff_id in staff_errors:
                continue
            try:
                gap_records.extend(context.competency_gaps(staff_id))
            except AppException as exc:
                logger.warning(
                    "Competency gaps skipped",
                    extra={"staff_id": staff_id, "error_code": exc.error_code},
                )
                staff_failures.append(StaffFailure(staff_id=staff_id, error_code=exc.error_code, message=exc.message))

        for staff_id in context.unplaced_staff():
            exc = InvalidHierarchyError(
                f"Staff member {staff_id} is not assigned to an active office and is left out of every unit summary",
                details={"staff_id": staff_id, "office_id": context.staff[staff_id].office_id},
            )
            logger.warning(
                "Staff member outside the hierarchy",
                extra={"staff_id": staff_id, "error_code": exc.error_code},
            )
            staff_failures.append(StaffFailure(staff_id=staff_id, error_code=exc.error_code, message=exc.message))

        summaries, unit_errors = self._roll_up(context, list(context.units.values()), scores, staff_errors)
        unit_failures = [
            UnitFailure(
                unit_id=unit_id,
                level=context.units[unit_id].level,
                error_code=exc.error_code,
                message=exc.message,
            )
            for unit_id, exc in sorted(unit_errors.items())
        ]

        result = PeriodComputation(
            review_period_id=review_period_id,
            staff_scores=tuple(scores[s] for s in sorted(scores)),
            staff_failures=tuple(staff_failures),
            gap_records=tuple(gap_records),
            unit_summaries=tuple(summaries[u] for u in sorted(summaries)),
            unit_failures=tuple(unit_failures),
        )
        logger.info(
            "Period computation finished",
            extra={
                "review_period_id": review_period_id,
                "scored": len(result.staff_scores),
                "staff_failures": len(result.staff_failures),
                "units": len(result.unit_summaries),
                "unit_failures": len(result.unit_failures),
            },
        )
        return result
