"""
Performance Data Repository

Supplies the scoring engine with an immutable PeriodSnapshot. The engine
never queries the database directly; the SQLAlchemy implementation reads
every table it needs inside one session and collapses the overlapping
status columns (is_active, soft_deleted, record_status) into a single
``is_eligible`` flag.
"""
import logging
from datetime import date
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError
from app.models import (
    CategoryWeight as CategoryWeightRow,
    Competency,
    CompetencyGapClosure,
    CompetencyRating as CompetencyRatingRow,
    CompetencyTarget as CompetencyTargetRow,
    ContributionRecord as ContributionRow,
    FeedbackCompetencyPoint,
    FeedbackCycle as FeedbackCycleRow,
    FeedbackReviewer,
    OrganizationalUnit as OrganizationalUnitRow,
    PeriodCategory as PeriodCategoryRow,
    ReviewPeriod,
    StaffMember as StaffMemberRow,
    WorkProduct,
)
from app.models.enums import RecordStatus
from app.schemas.scoring import (
    CategoryWeight,
    CompetencyDefinition,
    CompetencyRating,
    CompetencyTarget,
    ContributionRecord,
    FeedbackCycle,
    FeedbackRating,
    GapClosure,
    OrganizationalUnit,
    PeriodCategory,
    PeriodSnapshot,
    ReviewPeriodInfo,
    StaffMember,
    WorkProductActivity,
)

logger = logging.getLogger(__name__)

STAFF_ELIGIBLE_STATUSES = {RecordStatus.ACTIVE.value}
EVALUATED_STATUSES = {RecordStatus.COMPLETED.value, RecordStatus.CLOSED.value}
WITHDRAWN_STATUSES = {RecordStatus.CANCELLED.value, RecordStatus.REJECTED.value}


def is_eligible(is_active: bool, soft_deleted: bool, record_status: str, allowed_statuses) -> bool:
    return bool(is_active) and not soft_deleted and record_status in allowed_statuses


class PerformanceDataRepository(Protocol):
    def load_snapshot(self, review_period_id: int) -> PeriodSnapshot:
        ...


class InMemoryPerformanceRepository:
    """Serves prebuilt snapshots. Used by tests and batch tooling."""

    def __init__(self, snapshots: Iterable[PeriodSnapshot] = ()):
        self._snapshots: Dict[int, PeriodSnapshot] = {}
        for snapshot in snapshots:
            self.add(snapshot)

    def add(self, snapshot: PeriodSnapshot) -> None:
        self._snapshots[snapshot.review_period_id] = snapshot

    def load_snapshot(self, review_period_id: int) -> PeriodSnapshot:
        snapshot = self._snapshots.get(review_period_id)
        if snapshot is None:
            raise NotFoundError("Review period", review_period_id)
        return snapshot


class SqlAlchemyPerformanceRepository:

    def __init__(self, db: Session, as_of: Optional[date] = None):
        self.db = db
        self.as_of = as_of

    def _period(self, review_period_id: int) -> ReviewPeriod:
        period = self.db.get(ReviewPeriod, review_period_id)
        if period is None or period.soft_deleted:
            raise NotFoundError("Review period", review_period_id)
        return period

    def load_snapshot(self, review_period_id: int) -> PeriodSnapshot:
        period = self._period(review_period_id)
        db = self.db

        categories = [
            PeriodCategory(
                category_id=row.category_id,
                name=row.category.name,
                kind=row.category.kind,
                share_percent=row.share_percent,
                max_points=row.max_points,
            )
            for row in db.query(PeriodCategoryRow)
            .options(selectinload(PeriodCategoryRow.category))
            .filter(PeriodCategoryRow.review_period_id == review_period_id)
            .all()
        ]

        weights = [
            CategoryWeight(
                review_period_id=row.review_period_id,
                category_id=row.category_id,
                review_type_id=row.review_type_id,
                weight_percent=row.weight_percent,
                max_points=row.max_points,
                max_count=row.max_count,
            )
            for row in db.query(CategoryWeightRow)
            .filter(CategoryWeightRow.review_period_id == review_period_id)
            .all()
        ]

        staff = [
            StaffMember(
                staff_id=row.id,
                full_name=row.full_name,
                office_id=row.office_id,
                is_eligible=is_eligible(
                    row.is_active, row.soft_deleted, row.record_status, STAFF_ELIGIBLE_STATUSES
                ),
            )
            for row in db.query(StaffMemberRow).all()
        ]

        units = [
            OrganizationalUnit(unit_id=row.id, name=row.name, level=row.level, parent_id=row.parent_id)
            for row in db.query(OrganizationalUnitRow).filter(OrganizationalUnitRow.is_active.is_(True)).all()
        ]

        contributions = [
            ContributionRecord(
                record_id=row.id,
                staff_id=row.staff_id,
                review_period_id=row.review_period_id,
                category_id=row.category_id,
                review_type_id=row.review_type_id,
                points=row.points,
                timeliness=row.timeliness,
                quality=row.quality,
                output=row.output,
                is_eligible=is_eligible(row.is_active, row.soft_deleted, row.record_status, EVALUATED_STATUSES),
            )
            for row in db.query(ContributionRow)
            .filter(ContributionRow.review_period_id == review_period_id)
            .all()
        ]

        competencies = [
            CompetencyDefinition(
                competency_id=row.id,
                name=row.name,
                category_id=row.category_id,
                category_name=row.category.name if row.category else None,
            )
            for row in db.query(Competency).options(selectinload(Competency.category)).all()
        ]

        ratings = [
            CompetencyRating(
                staff_id=row.staff_id,
                competency_id=row.competency_id,
                review_type_id=row.review_type_id,
                rating_value=row.rating_value,
                reviewer_id=row.reviewer_staff_id,
                is_eligible=is_eligible(row.is_active, row.soft_deleted, row.record_status, EVALUATED_STATUSES),
            )
            for row in db.query(CompetencyRatingRow)
            .filter(CompetencyRatingRow.review_period_id == review_period_id)
            .all()
        ]

        targets = [
            CompetencyTarget(
                staff_id=row.staff_id,
                competency_id=row.competency_id,
                expected_rating_value=row.expected_rating_value,
            )
            for row in db.query(CompetencyTargetRow)
            .filter(CompetencyTargetRow.review_period_id == review_period_id)
            .all()
        ]

        point_values = {
            row.competency_id: row.point_value
            for row in db.query(FeedbackCompetencyPoint)
            .filter(FeedbackCompetencyPoint.review_period_id == review_period_id)
            .all()
        }

        work_products = [
            WorkProductActivity(
                staff_id=row.staff_id,
                work_product_id=row.id,
                record_status=row.record_status,
                end_date=row.end_date,
                completion_date=row.completion_date,
            )
            for row in db.query(WorkProduct)
            .filter(
                WorkProduct.review_period_id == review_period_id,
                WorkProduct.soft_deleted.is_(False),
                WorkProduct.record_status.notin_(WITHDRAWN_STATUSES),
            )
            .all()
        ]

        closures = [
            GapClosure(staff_id=row.staff_id, competency_id=row.competency_id, final_score=row.final_score)
            for row in db.query(CompetencyGapClosure)
            .filter(CompetencyGapClosure.review_period_id == review_period_id)
            .all()
        ]

        snapshot = PeriodSnapshot(
            review_period=ReviewPeriodInfo(
                review_period_id=period.id,
                name=period.name,
                year=period.year,
                max_points=period.max_points,
            ),
            as_of=self.as_of or date.today(),
            categories=tuple(categories),
            weights=tuple(weights),
            staff=tuple(staff),
            units=tuple(units),
            contributions=tuple(contributions),
            competencies=tuple(competencies),
            competency_ratings=tuple(ratings),
            competency_targets=tuple(targets),
            feedback_cycles=tuple(self._feedback_cycles(review_period_id)),
            feedback_point_values=point_values,
            work_products=tuple(work_products),
            gap_closures=tuple(closures),
        )
        logger.info(
            "Loaded period snapshot",
            extra={
                "review_period_id": review_period_id,
                "staff": len(staff),
                "contributions": len(contributions),
            },
        )
        return snapshot

    def _feedback_cycles(self, review_period_id: int):
        rows = (
            self.db.query(FeedbackCycleRow)
            .options(selectinload(FeedbackCycleRow.reviewers).selectinload(FeedbackReviewer.ratings))
            .filter(
                FeedbackCycleRow.review_period_id == review_period_id,
                FeedbackCycleRow.soft_deleted.is_(False),
                FeedbackCycleRow.record_status.notin_(WITHDRAWN_STATUSES),
            )
            .all()
        )
        for row in rows:
            invited = [r for r in row.reviewers if r.record_status not in WITHDRAWN_STATUSES]
            responded = [r for r in invited if r.record_status in EVALUATED_STATUSES]
            yield FeedbackCycle(
                cycle_id=row.id,
                staff_id=row.staff_id,
                review_period_id=row.review_period_id,
                max_points=row.max_points,
                rating_scale_max=row.rating_scale_max,
                invited_reviewer_ids=tuple(r.reviewer_staff_id for r in invited),
                responded_reviewer_ids=tuple(r.reviewer_staff_id for r in responded),
                ratings=tuple(
                    FeedbackRating(
                        reviewer_id=reviewer.reviewer_staff_id,
                        competency_id=rating.competency_id,
                        rating=rating.rating,
                    )
                    for reviewer in responded
                    for rating in reviewer.ratings
                ),
            )
