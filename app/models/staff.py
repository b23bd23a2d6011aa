from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship, composite
from sqlalchemy.sql import func
from app.database import Base
from app.models.audit import AuditStamp
from app.models.enums import RecordStatus


class StaffMember(Base):
    __tablename__ = "staff_members"

    id = Column(Integer, primary_key=True, index=True)
    staff_number = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    office_id = Column(Integer, ForeignKey("organizational_units.id"), nullable=True, index=True)

    # Overlapping status signals; collapsed into one eligibility flag at the repository boundary
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)
    record_status = Column(String, default=RecordStatus.ACTIVE.value, nullable=False)

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    audit = composite(AuditStamp, created_by, created_at, updated_by, updated_at)

    office = relationship("OrganizationalUnit", back_populates="staff")

    def __repr__(self):
        return f"<StaffMember {self.staff_number}>"
