"""
Performance Score Service Layer

Persists engine outputs. The engine computes; this service owns the
transaction. Output rows of a review period are never patched: every
recompute deletes the affected rows and inserts the new ones in one
transaction, so a failed computation leaves the previous rows untouched.

Architecture:
- Router -> Service (this module) -> PerformanceEngine -> Repository
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.enums import UnitLevel
from app.models.period_score import CompetencyGapRow, StaffPeriodScoreRecord, UnitPeriodSummaryRecord
from app.schemas.scoring import (
    CompetencyGapRecord,
    OrganizationalUnitSummary,
    PeriodComputation,
    StaffPeriodScore,
)
from app.services.base import BaseService
from app.services.performance_engine import PerformanceEngine
from app.services.performance_repository import SqlAlchemyPerformanceRepository

logger = logging.getLogger(__name__)


def score_row(score: StaffPeriodScore) -> StaffPeriodScoreRecord:
    return StaffPeriodScoreRecord(
        staff_id=score.staff_id,
        review_period_id=score.review_period_id,
        final_score=score.final_score,
        deduction_points=score.deduction_points,
        max_points=score.max_points,
        percentage=score.percentage,
        grade=score.grade,
        is_under_performing=score.is_under_performing,
        category_scores=[c.model_dump(mode="json") for c in score.category_scores],
    )


def gap_row(record: CompetencyGapRecord) -> CompetencyGapRow:
    return CompetencyGapRow(**record.model_dump())


def summary_row(summary: OrganizationalUnitSummary) -> UnitPeriodSummaryRecord:
    data = summary.model_dump(exclude={"grade_distribution", "excluded_units"})
    return UnitPeriodSummaryRecord(
        **data,
        grade_distribution={grade.value: count for grade, count in summary.grade_distribution.items()},
        excluded_units=list(summary.excluded_units),
    )


class PerformanceScoreService(BaseService):

    def __init__(self, db: Session, engine: Optional[PerformanceEngine] = None):
        super().__init__(db)
        self.engine = engine or PerformanceEngine(SqlAlchemyPerformanceRepository(db))

    def recompute_period(self, review_period_id: int) -> PeriodComputation:
        """
        Recompute and replace every output row of a review period.
        Configuration errors are raised by the engine before anything is written.
        """
        result = self.engine.compute_period(review_period_id)

        try:
            for model in (StaffPeriodScoreRecord, CompetencyGapRow, UnitPeriodSummaryRecord):
                self.db.query(model).filter(model.review_period_id == review_period_id).delete()
            self.db.add_all([score_row(s) for s in result.staff_scores])
            self.db.add_all([gap_row(g) for g in result.gap_records])
            self.db.add_all([summary_row(u) for u in result.unit_summaries])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log_info(
            "Review period scores replaced",
            review_period_id=review_period_id,
            staff_scores=len(result.staff_scores),
            unit_summaries=len(result.unit_summaries),
        )
        if result.staff_failures or result.unit_failures:
            self.log_warning(
                "Review period recomputed with exclusions",
                review_period_id=review_period_id,
                excluded_staff=[f.staff_id for f in result.staff_failures],
                excluded_units=[f.unit_id for f in result.unit_failures],
            )
        return result

    def recompute_staff(self, staff_id: int, review_period_id: int) -> StaffPeriodScore:
        """Replace one staff member's score and gap rows. Unit summaries are left for the next period recompute."""
        score, gaps = self.engine.compute_staff_results(staff_id, review_period_id)

        try:
            for model in (StaffPeriodScoreRecord, CompetencyGapRow):
                self.db.query(model).filter(
                    model.review_period_id == review_period_id,
                    model.staff_id == staff_id,
                ).delete()
            self.db.add(score_row(score))
            self.db.add_all([gap_row(g) for g in gaps])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log_info("Staff score replaced", staff_id=staff_id, review_period_id=review_period_id)
        return score

    def get_period_scores(self, review_period_id: int) -> List[StaffPeriodScoreRecord]:
        return (
            self.db.query(StaffPeriodScoreRecord)
            .filter(StaffPeriodScoreRecord.review_period_id == review_period_id)
            .order_by(StaffPeriodScoreRecord.staff_id)
            .all()
        )

    def get_staff_score(self, staff_id: int, review_period_id: int) -> StaffPeriodScoreRecord:
        record = (
            self.db.query(StaffPeriodScoreRecord)
            .filter(
                StaffPeriodScoreRecord.review_period_id == review_period_id,
                StaffPeriodScoreRecord.staff_id == staff_id,
            )
            .first()
        )
        if not record:
            raise NotFoundError("Staff period score", f"{staff_id}/{review_period_id}")
        return record

    def get_gap_records(self, staff_id: int, review_period_id: int) -> List[CompetencyGapRow]:
        return (
            self.db.query(CompetencyGapRow)
            .filter(
                CompetencyGapRow.review_period_id == review_period_id,
                CompetencyGapRow.staff_id == staff_id,
            )
            .order_by(CompetencyGapRow.competency_id)
            .all()
        )

    def get_unit_summaries(
        self, review_period_id: int, level: Optional[UnitLevel] = None
    ) -> List[UnitPeriodSummaryRecord]:
        query = self.db.query(UnitPeriodSummaryRecord).filter(
            UnitPeriodSummaryRecord.review_period_id == review_period_id
        )
        if level is not None:
            query = query.filter(UnitPeriodSummaryRecord.level == level)
        return query.order_by(UnitPeriodSummaryRecord.unit_id).all()
