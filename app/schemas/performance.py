from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from app.models.enums import PerformanceGrade, UnitLevel
from app.schemas.scoring import StaffFailure, UnitFailure


class StaffPeriodScoreResponse(BaseModel):
    id: int
    staff_id: int
    review_period_id: int
    final_score: float
    deduction_points: float
    max_points: float
    percentage: float
    grade: PerformanceGrade
    is_under_performing: bool
    category_scores: List[Dict[str, Any]] = []
    computed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CompetencyGapResponse(BaseModel):
    staff_id: int
    competency_id: int
    review_period_id: int
    category_id: Optional[int] = None
    expected_rating_value: float
    average_actual_rating_value: float
    gap: float
    have_gap: bool

    model_config = ConfigDict(from_attributes=True)


class UnitSummaryResponse(BaseModel):
    unit_id: int
    level: UnitLevel
    review_period_id: int
    total_staff: int
    average_score: float
    average_percentage: float
    grade: Optional[PerformanceGrade] = None
    grade_distribution: Dict[str, int] = {}
    total_work_products: int
    work_products_on_schedule: int
    work_products_behind_schedule: int
    work_products_closed: int
    percentage_work_products_closed: float
    percentage_work_products_pending: float
    total_feedbacks: int
    completed_feedback_reviews: int
    pending_feedback_reviews: int
    total_competency_gaps: int
    closed_competency_gaps: int
    percentage_gaps_closure: float
    expected_units: int
    covered_units: int
    excluded_units: List[int] = []
    is_partial: bool

    model_config = ConfigDict(from_attributes=True)


class PeriodRecomputeResponse(BaseModel):
    review_period_id: int
    scored_staff: int
    gap_records: int
    unit_summaries: int
    partial_units: List[int] = []
    staff_failures: List[StaffFailure] = []
    unit_failures: List[UnitFailure] = []
