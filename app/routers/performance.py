from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.enums import UnitLevel
from app.schemas.performance import (
    CompetencyGapResponse,
    PeriodRecomputeResponse,
    StaffPeriodScoreResponse,
    UnitSummaryResponse,
)
from app.schemas.scoring import StaffPeriodScore
from app.services.performance_service import PerformanceScoreService

router = APIRouter(
    prefix="/performance",
    tags=["performance"]
)


def get_performance_service(db: Session = Depends(get_db)) -> PerformanceScoreService:
    return PerformanceScoreService(db)


@router.post("/periods/{review_period_id}/recompute", response_model=ApiResponse[PeriodRecomputeResponse])
def recompute_period(review_period_id: int, service: PerformanceScoreService = Depends(get_performance_service)):
    """Recompute and replace every score, gap record and unit summary of a review period."""
    result = service.recompute_period(review_period_id)
    payload = PeriodRecomputeResponse(
        review_period_id=review_period_id,
        scored_staff=len(result.staff_scores),
        gap_records=len(result.gap_records),
        unit_summaries=len(result.unit_summaries),
        partial_units=[u.unit_id for u in result.unit_summaries if u.is_partial],
        staff_failures=list(result.staff_failures),
        unit_failures=list(result.unit_failures),
    )
    is_partial = bool(payload.partial_units or payload.unit_failures)
    return ApiResponse[PeriodRecomputeResponse].ok(payload, metadata={"is_partial": is_partial})


@router.post(
    "/periods/{review_period_id}/staff/{staff_id}/recompute",
    response_model=ApiResponse[StaffPeriodScore],
)
def recompute_staff(
    review_period_id: int,
    staff_id: int,
    service: PerformanceScoreService = Depends(get_performance_service),
):
    return ApiResponse[StaffPeriodScore].ok(service.recompute_staff(staff_id, review_period_id))


@router.get(
    "/periods/{review_period_id}/staff/{staff_id}/score",
    response_model=ApiResponse[StaffPeriodScore],
)
def get_staff_score(
    review_period_id: int,
    staff_id: int,
    service: PerformanceScoreService = Depends(get_performance_service),
):
    # Live computation; nothing is stored
    return ApiResponse[StaffPeriodScore].ok(service.engine.compute_staff_score(staff_id, review_period_id))


@router.get(
    "/periods/{review_period_id}/staff/{staff_id}/gaps",
    response_model=ApiResponse[List[CompetencyGapResponse]],
)
def get_staff_gaps(
    review_period_id: int,
    staff_id: int,
    service: PerformanceScoreService = Depends(get_performance_service),
):
    gaps = service.engine.compute_competency_gaps(staff_id, review_period_id)
    return ApiResponse[List[CompetencyGapResponse]].ok(
        [CompetencyGapResponse.model_validate(g) for g in gaps]
    )


@router.get(
    "/periods/{review_period_id}/units/{unit_id}/summary",
    response_model=ApiResponse[UnitSummaryResponse],
)
def get_unit_summary(
    review_period_id: int,
    unit_id: int,
    level: UnitLevel = Query(...),
    service: PerformanceScoreService = Depends(get_performance_service),
):
    summary = service.engine.compute_unit_summary(unit_id, level, review_period_id)
    data = summary.model_dump(exclude={"grade_distribution"})
    data["grade_distribution"] = {g.value: n for g, n in summary.grade_distribution.items()}
    return ApiResponse[UnitSummaryResponse].ok(UnitSummaryResponse(**data))


@router.get(
    "/periods/{review_period_id}/scores",
    response_model=ApiResponse[List[StaffPeriodScoreResponse]],
)
def list_period_scores(review_period_id: int, service: PerformanceScoreService = Depends(get_performance_service)):
    """Stored scores of the last recompute."""
    rows = service.get_period_scores(review_period_id)
    return ApiResponse[List[StaffPeriodScoreResponse]].ok(
        [StaffPeriodScoreResponse.model_validate(r) for r in rows]
    )


@router.get(
    "/periods/{review_period_id}/units",
    response_model=ApiResponse[List[UnitSummaryResponse]],
)
def list_unit_summaries(
    review_period_id: int,
    level: Optional[UnitLevel] = Query(None),
    service: PerformanceScoreService = Depends(get_performance_service),
):
    rows = service.get_unit_summaries(review_period_id, level)
    return ApiResponse[List[UnitSummaryResponse]].ok([UnitSummaryResponse.model_validate(r) for r in rows])
