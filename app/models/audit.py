"""
Audit metadata shared by several unrelated tables.

The field groups are attached to each mapped class as value objects through
SQLAlchemy ``composite()`` rather than through a common base class.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class AuditStamp:
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class ApprovalStamp:
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_approved: Optional[bool] = None
