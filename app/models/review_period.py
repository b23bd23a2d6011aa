from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, composite
from sqlalchemy.sql import func
from app.database import Base
from app.models.audit import AuditStamp
from app.models.enums import CategoryKind, RecordStatus


class ReviewPeriod(Base):
    __tablename__ = "review_periods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    short_name = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    max_points = Column(Float, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    record_status = Column(String, default=RecordStatus.ACTIVE.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    audit = composite(AuditStamp, created_by, created_at, updated_by, updated_at)

    categories = relationship("PeriodCategory", back_populates="review_period", cascade="all, delete-orphan")
    weights = relationship("CategoryWeight", back_populates="review_period", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ReviewPeriod {self.id}: {self.name}>"


class PerformanceCategory(Base):
    """A weighted bucket of contribution (work products, competencies, ...)."""
    __tablename__ = "performance_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    kind = Column(Enum(CategoryKind), nullable=False)


class PeriodCategory(Base):
    """Allocation of a category within a review period."""
    __tablename__ = "period_categories"
    __table_args__ = (UniqueConstraint("review_period_id", "category_id", name="uq_period_category"),)

    id = Column(Integer, primary_key=True, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("performance_categories.id"), nullable=False)
    share_percent = Column(Float, nullable=False, default=0.0)
    max_points = Column(Float, nullable=False, default=0.0)

    review_period = relationship("ReviewPeriod", back_populates="categories")
    category = relationship("PerformanceCategory")


class ReviewType(Base):
    __tablename__ = "review_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)  # Self, Supervisor, Peers, Subordinates, Superior


class CategoryWeight(Base):
    """
    Weight of one review type inside a category for a review period.
    A NULL review type is the category-wide row used by categories without reviewer breakdown.
    """
    __tablename__ = "category_weights"
    __table_args__ = (
        UniqueConstraint("review_period_id", "category_id", "review_type_id", name="uq_category_weight"),
    )

    id = Column(Integer, primary_key=True, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("performance_categories.id"), nullable=False)
    review_type_id = Column(Integer, ForeignKey("review_types.id"), nullable=True)
    weight_percent = Column(Float, nullable=False)
    max_points = Column(Float, nullable=False)
    max_count = Column(Integer, nullable=True)

    review_period = relationship("ReviewPeriod", back_populates="weights")
    category = relationship("PerformanceCategory")
    review_type = relationship("ReviewType")
