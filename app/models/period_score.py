"""
Engine outputs persisted by the performance score service.
Rows are always replaced as a whole for a (staff, period) or (unit, period) key.
"""
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base
from app.models.enums import PerformanceGrade, UnitLevel


class StaffPeriodScoreRecord(Base):
    __tablename__ = "staff_period_scores"
    __table_args__ = (UniqueConstraint("staff_id", "review_period_id", name="uq_staff_period_score"),)

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    final_score = Column(Float, nullable=False)
    deduction_points = Column(Float, nullable=False, default=0.0)
    max_points = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False)
    grade = Column(Enum(PerformanceGrade), nullable=False)
    is_under_performing = Column(Boolean, nullable=False, default=False)
    category_scores = Column(JSON, nullable=False, default=list)
    computed_at = Column(DateTime(timezone=True), server_default=func.now())


class CompetencyGapRow(Base):
    __tablename__ = "competency_gap_records"
    __table_args__ = (
        UniqueConstraint("staff_id", "competency_id", "review_period_id", name="uq_competency_gap_record"),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    category_id = Column(Integer, nullable=True)
    expected_rating_value = Column(Float, nullable=False)
    average_actual_rating_value = Column(Float, nullable=False)
    gap = Column(Float, nullable=False)
    have_gap = Column(Boolean, nullable=False)
    computed_at = Column(DateTime(timezone=True), server_default=func.now())


class UnitPeriodSummaryRecord(Base):
    __tablename__ = "unit_period_summaries"
    __table_args__ = (UniqueConstraint("unit_id", "review_period_id", name="uq_unit_period_summary"),)

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(Integer, ForeignKey("organizational_units.id"), nullable=False, index=True)
    level = Column(Enum(UnitLevel), nullable=False)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)

    total_staff = Column(Integer, nullable=False, default=0)
    score_sum = Column(Float, nullable=False, default=0.0)
    percentage_sum = Column(Float, nullable=False, default=0.0)
    average_score = Column(Float, nullable=False, default=0.0)
    average_percentage = Column(Float, nullable=False, default=0.0)
    grade = Column(Enum(PerformanceGrade), nullable=True)
    grade_distribution = Column(JSON, nullable=False, default=dict)

    total_work_products = Column(Integer, nullable=False, default=0)
    work_products_on_schedule = Column(Integer, nullable=False, default=0)
    work_products_behind_schedule = Column(Integer, nullable=False, default=0)
    work_products_closed = Column(Integer, nullable=False, default=0)
    percentage_work_products_closed = Column(Float, nullable=False, default=0.0)
    percentage_work_products_pending = Column(Float, nullable=False, default=0.0)
    total_feedbacks = Column(Integer, nullable=False, default=0)
    completed_feedback_reviews = Column(Integer, nullable=False, default=0)
    pending_feedback_reviews = Column(Integer, nullable=False, default=0)
    total_competency_gaps = Column(Integer, nullable=False, default=0)
    closed_competency_gaps = Column(Integer, nullable=False, default=0)
    percentage_gaps_closure = Column(Float, nullable=False, default=0.0)

    expected_units = Column(Integer, nullable=False, default=0)
    covered_units = Column(Integer, nullable=False, default=0)
    excluded_units = Column(JSON, nullable=False, default=list)
    is_partial = Column(Boolean, nullable=False, default=False)
    computed_at = Column(DateTime(timezone=True), server_default=func.now())
