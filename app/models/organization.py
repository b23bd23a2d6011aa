"""
Organizational Unit Model with Hierarchy Support.
Office -> Division -> Department -> Enterprise, linked through parent_id.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import UnitLevel


class OrganizationalUnit(Base):
    __tablename__ = "organizational_units"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, nullable=True, index=True)
    level = Column(Enum(UnitLevel), nullable=False, index=True)
    
    # Hierarchy support: parent unit one level up
    parent_id = Column(Integer, ForeignKey("organizational_units.id"), nullable=True)
    
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    parent = relationship("OrganizationalUnit", remote_side=[id], back_populates="children")
    children = relationship("OrganizationalUnit", back_populates="parent")
    staff = relationship("StaffMember", back_populates="office")
    
    def __repr__(self):
        return f"<OrganizationalUnit {self.level.value}: {self.name}>"
    
    @property
    def full_path(self) -> str:
        """Returns the full hierarchical path of the unit."""
        if self.parent:
            return f"{self.parent.full_path} > {self.name}"
        return self.name
