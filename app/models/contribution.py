from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship, composite
from sqlalchemy.sql import func
from app.database import Base
from app.models.audit import AuditStamp, ApprovalStamp
from app.models.enums import RecordStatus


class ContributionRecord(Base):
    """
    One evaluated contribution (work product, objective, competency points, deduction).
    Immutable once evaluation is finalized; the scoring engine only reads it.
    """
    __tablename__ = "contribution_records"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("performance_categories.id"), nullable=False)
    review_type_id = Column(Integer, ForeignKey("review_types.id"), nullable=True)

    points = Column(Float, nullable=True)
    # Work product evaluation dimensions; used when points is NULL
    timeliness = Column(Float, nullable=True)
    quality = Column(Float, nullable=True)
    output = Column(Float, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)
    record_status = Column(String, default=RecordStatus.COMPLETED.value, nullable=False)

    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    is_approved = Column(Boolean, nullable=True)
    approval = composite(ApprovalStamp, approved_by, approved_at, is_approved)

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    audit = composite(AuditStamp, created_by, created_at, updated_by, updated_at)

    staff = relationship("StaffMember")
    category = relationship("PerformanceCategory")


class WorkProduct(Base):
    __tablename__ = "work_products"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_members.id"), nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    record_status = Column(String, default=RecordStatus.ACTIVE.value, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=False)
    completion_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    staff = relationship("StaffMember")
