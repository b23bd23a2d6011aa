# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    review_period, organization, staff, contribution,
    competency, feedback, period_score
)

# Explicit class exports for cleaner imports
from .review_period import ReviewPeriod, PerformanceCategory, PeriodCategory, ReviewType, CategoryWeight
from .organization import OrganizationalUnit
from .staff import StaffMember
from .contribution import ContributionRecord, WorkProduct
from .competency import Competency, CompetencyRating, CompetencyTarget, CompetencyGapClosure
from .feedback import FeedbackCycle, FeedbackReviewer, FeedbackRating, FeedbackCompetencyPoint
from .period_score import StaffPeriodScoreRecord, CompetencyGapRow, UnitPeriodSummaryRecord

__all__ = [
    "ReviewPeriod",
    "PerformanceCategory",
    "PeriodCategory",
    "ReviewType",
    "CategoryWeight",
    "OrganizationalUnit",
    "StaffMember",
    "ContributionRecord",
    "WorkProduct",
    "Competency",
    "CompetencyRating",
    "CompetencyTarget",
    "CompetencyGapClosure",
    "FeedbackCycle",
    "FeedbackReviewer",
    "FeedbackRating",
    "FeedbackCompetencyPoint",
    "StaffPeriodScoreRecord",
    "CompetencyGapRow",
    "UnitPeriodSummaryRecord",
]
