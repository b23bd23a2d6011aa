"""
Value types crossing the scoring engine boundary.

Inputs are read-only snapshots supplied by the data repository; outputs are
replaced wholesale on every computation. All models are frozen.
"""
from datetime import date
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import CategoryKind, PerformanceGrade, UnitLevel


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Inputs ---

class ReviewPeriodInfo(FrozenModel):
    review_period_id: int
    name: str
    year: Optional[int] = None
    max_points: float


class PeriodCategory(FrozenModel):
    category_id: int
    name: str
    kind: CategoryKind
    share_percent: float = 0.0
    max_points: float = 0.0

    @property
    def is_deduction(self) -> bool:
        return self.kind == CategoryKind.DEDUCTION


class CategoryWeight(FrozenModel):
    review_period_id: int
    category_id: int
    review_type_id: Optional[int] = None
    weight_percent: float
    max_points: float
    max_count: Optional[int] = None


class StaffMember(FrozenModel):
    staff_id: int
    full_name: Optional[str] = None
    office_id: Optional[int] = None
    is_eligible: bool = True


class OrganizationalUnit(FrozenModel):
    unit_id: int
    name: str
    level: UnitLevel
    parent_id: Optional[int] = None


class ContributionRecord(FrozenModel):
    record_id: int
    staff_id: int
    review_period_id: int
    category_id: int
    review_type_id: Optional[int] = None
    points: Optional[float] = None
    timeliness: Optional[float] = None
    quality: Optional[float] = None
    output: Optional[float] = None
    is_eligible: bool = True

    def earned_points(self) -> float:
        """Explicit points, or the work product outcome timeliness + quality + output."""
        if self.points is not None:
            return self.points
        return (self.timeliness or 0.0) + (self.quality or 0.0) + (self.output or 0.0)


class CompetencyDefinition(FrozenModel):
    competency_id: int
    name: str
    category_id: int
    category_name: Optional[str] = None


class CompetencyRating(FrozenModel):
    staff_id: int
    competency_id: int
    review_type_id: int
    rating_value: float
    reviewer_id: Optional[int] = None
    is_eligible: bool = True


class CompetencyTarget(FrozenModel):
    staff_id: int
    competency_id: int
    expected_rating_value: float


class FeedbackRating(FrozenModel):
    reviewer_id: int
    competency_id: int
    rating: float


class FeedbackCycle(FrozenModel):
    cycle_id: int
    staff_id: int
    review_period_id: int
    max_points: float
    rating_scale_max: Optional[float] = None
    invited_reviewer_ids: Tuple[int, ...] = ()
    responded_reviewer_ids: Tuple[int, ...] = ()
    ratings: Tuple[FeedbackRating, ...] = ()


class WorkProductActivity(FrozenModel):
    staff_id: int
    work_product_id: int
    record_status: str
    end_date: date
    completion_date: Optional[date] = None


class GapClosure(FrozenModel):
    staff_id: int
    competency_id: int
    final_score: float = 0.0


class PeriodSnapshot(FrozenModel):
    """Everything one computation reads for a review period, captured at a single point in time."""
    review_period: ReviewPeriodInfo
    as_of: date
    categories: Tuple[PeriodCategory, ...] = ()
    weights: Tuple[CategoryWeight, ...] = ()
    staff: Tuple[StaffMember, ...] = ()
    units: Tuple[OrganizationalUnit, ...] = ()
    contributions: Tuple[ContributionRecord, ...] = ()
    competencies: Tuple[CompetencyDefinition, ...] = ()
    competency_ratings: Tuple[CompetencyRating, ...] = ()
    competency_targets: Tuple[CompetencyTarget, ...] = ()
    feedback_cycles: Tuple[FeedbackCycle, ...] = ()
    feedback_point_values: Dict[int, float] = Field(default_factory=dict)
    work_products: Tuple[WorkProductActivity, ...] = ()
    gap_closures: Tuple[GapClosure, ...] = ()

    @property
    def review_period_id(self) -> int:
        return self.review_period.review_period_id


# --- Outputs ---

class CategoryScore(FrozenModel):
    category_id: int
    name: str
    kind: CategoryKind
    record_count: int
    raw_points: float
    capped_points: float
    weighted_score: float
    share_percent: float
    max_points: float


class StaffPeriodScore(FrozenModel):
    staff_id: int
    review_period_id: int
    category_scores: Tuple[CategoryScore, ...]
    deduction_points: float
    final_score: float
    max_points: float
    percentage: float
    grade: PerformanceGrade
    is_under_performing: bool


class CompetencyGapRecord(FrozenModel):
    staff_id: int
    competency_id: int
    review_period_id: int
    category_id: Optional[int] = None
    expected_rating_value: float
    average_actual_rating_value: float
    gap: float
    have_gap: bool


class CompetencyCategorySummary(FrozenModel):
    category_id: int
    competency_count: int
    average_actual_rating: float
    average_expected_rating: float
    highest_rating: float
    lowest_rating: float
    most_frequent_rating: float
    gap_count: int


class FeedbackResult(FrozenModel):
    cycle_id: int
    staff_id: int
    review_period_id: int
    competency_averages: Dict[int, float]
    average_rating: float
    final_score: float
    max_points: float
    invited_count: int
    responded_count: int
    is_complete: bool


class StaffActivity(FrozenModel):
    """Per-staff counters that roll up with the score."""
    staff_id: int
    work_products_total: int = 0
    work_products_on_schedule: int = 0
    work_products_behind_schedule: int = 0
    work_products_closed: int = 0
    feedbacks_total: int = 0
    feedback_reviews_completed: int = 0
    feedback_reviews_pending: int = 0
    gaps_total: int = 0
    gaps_closed: int = 0


class OrganizationalUnitSummary(FrozenModel):
    unit_id: int
    level: UnitLevel
    review_period_id: int

    total_staff: int
    score_sum: float
    percentage_sum: float
    average_score: float
    average_percentage: float
    grade: Optional[PerformanceGrade] = None
    grade_distribution: Dict[PerformanceGrade, int]

    total_work_products: int = 0
    work_products_on_schedule: int = 0
    work_products_behind_schedule: int = 0
    work_products_closed: int = 0
    percentage_work_products_closed: float = 0.0
    percentage_work_products_pending: float = 0.0
    total_feedbacks: int = 0
    completed_feedback_reviews: int = 0
    pending_feedback_reviews: int = 0
    total_competency_gaps: int = 0
    closed_competency_gaps: int = 0
    percentage_gaps_closure: float = 0.0

    expected_units: int = 0
    covered_units: int = 0
    excluded_units: Tuple[int, ...] = ()
    is_partial: bool = False


class StaffFailure(FrozenModel):
    staff_id: int
    error_code: str
    message: str


class UnitFailure(FrozenModel):
    unit_id: int
    level: UnitLevel
    error_code: str
    message: str


class PeriodComputation(FrozenModel):
    review_period_id: int
    staff_scores: Tuple[StaffPeriodScore, ...] = ()
    staff_failures: Tuple[StaffFailure, ...] = ()
    gap_records: Tuple[CompetencyGapRecord, ...] = ()
    unit_summaries: Tuple[OrganizationalUnitSummary, ...] = ()
    unit_failures: Tuple[UnitFailure, ...] = ()
