from sqlalchemy import Column, Integer, Float, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import RecordStatus


class FeedbackCycle(Base):
    """A 360 degree review cycle for one staff member in one review period."""
    __tablename__ = "feedback_cycles"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    max_points = Column(Float, nullable=False)
    rating_scale_max = Column(Float, nullable=True)
    record_status = Column(String, default=RecordStatus.ACTIVE.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    reviewers = relationship("FeedbackReviewer", back_populates="cycle", cascade="all, delete-orphan")


class FeedbackReviewer(Base):
    __tablename__ = "feedback_reviewers"

    id = Column(Integer, primary_key=True, index=True)
    cycle_id = Column(Integer, ForeignKey("feedback_cycles.id"), nullable=False, index=True)
    reviewer_staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False)
    record_status = Column(String, default=RecordStatus.ACTIVE.value, nullable=False)

    cycle = relationship("FeedbackCycle", back_populates="reviewers")
    ratings = relationship("FeedbackRating", back_populates="reviewer", cascade="all, delete-orphan")


class FeedbackRating(Base):
    __tablename__ = "feedback_ratings"

    id = Column(Integer, primary_key=True, index=True)
    reviewer_id = Column(Integer, ForeignKey("feedback_reviewers.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    rating = Column(Float, nullable=False)

    reviewer = relationship("FeedbackReviewer", back_populates="ratings")


class FeedbackCompetencyPoint(Base):
    """Point value of a competency in the 360 degree questionnaire of a review period."""
    __tablename__ = "feedback_competency_points"
    __table_args__ = (
        UniqueConstraint("review_period_id", "competency_id", name="uq_feedback_competency_point"),
    )

    id = Column(Integer, primary_key=True, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    point_value = Column(Float, nullable=False)
