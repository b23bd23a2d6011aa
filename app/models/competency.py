from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import RecordStatus


class Competency(Base):
    __tablename__ = "competencies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("performance_categories.id"), nullable=False)

    category = relationship("PerformanceCategory")


class CompetencyRating(Base):
    """A single reviewer's rating of a staff member's competency."""
    __tablename__ = "competency_ratings"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    review_type_id = Column(Integer, ForeignKey("review_types.id"), nullable=False)
    reviewer_staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=True)
    rating_value = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)
    record_status = Column(String, default=RecordStatus.COMPLETED.value, nullable=False)


class CompetencyTarget(Base):
    __tablename__ = "competency_targets"
    __table_args__ = (
        UniqueConstraint("staff_id", "review_period_id", "competency_id", name="uq_competency_target"),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    expected_rating_value = Column(Float, nullable=False)


class CompetencyGapClosure(Base):
    """Development task outcome; a gap counts as closed when final_score > 0."""
    __tablename__ = "competency_gap_closures"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    final_score = Column(Float, default=0.0, nullable=False)
