import enum


class CategoryKind(str, enum.Enum):
    WORK_PRODUCT = "WORK_PRODUCT"
    OBJECTIVE = "OBJECTIVE"
    COMPETENCY = "COMPETENCY"
    FEEDBACK = "FEEDBACK"
    DEDUCTION = "DEDUCTION"


class UnitLevel(str, enum.Enum):
    """
    Organizational hierarchy levels, leaf first.
    Roll-up proceeds OFFICE -> DIVISION -> DEPARTMENT -> ENTERPRISE.
    """
    OFFICE = "OFFICE"
    DIVISION = "DIVISION"
    DEPARTMENT = "DEPARTMENT"
    ENTERPRISE = "ENTERPRISE"

    @property
    def depth(self) -> int:
        return _LEVEL_ORDER.index(self)

    def child_level(self):
        if self is UnitLevel.OFFICE:
            return None
        return _LEVEL_ORDER[self.depth - 1]

    @classmethod
    def bottom_up(cls):
        return list(_LEVEL_ORDER)


_LEVEL_ORDER = [UnitLevel.OFFICE, UnitLevel.DIVISION, UnitLevel.DEPARTMENT, UnitLevel.ENTERPRISE]


class PerformanceGrade(str, enum.Enum):
    DEVELOPING = "Developing"
    PROGRESSIVE = "Progressive"
    COMPETENT = "Competent"
    ACCOMPLISHED = "Accomplished"
    EXEMPLARY = "Exemplary"


class RecordStatus(str, enum.Enum):
    DRAFT = "Draft"
    PENDING_APPROVAL = "PendingApproval"
    ACTIVE = "Active"
    AWAITING_EVALUATION = "AwaitingEvaluation"
    COMPLETED = "Completed"
    CLOSED = "Closed"
    PAUSED = "Paused"
    RETURNED = "Returned"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"
