import math
from typing import Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from app.core.exceptions import OutOfRangeInputError
from app.models.enums import PerformanceGrade


class GradeBand(BaseModel):
    """[lower, upper) mapped to a grade; the top band also includes its upper bound."""
    model_config = ConfigDict(frozen=True)

    lower: float
    upper: float
    grade: PerformanceGrade
    upper_inclusive: bool = False

    def contains(self, value: float) -> bool:
        if self.upper_inclusive:
            return self.lower <= value <= self.upper
        return self.lower <= value < self.upper


DEFAULT_GRADE_BANDS: Tuple[GradeBand, ...] = (
    GradeBand(lower=0, upper=50, grade=PerformanceGrade.DEVELOPING),
    GradeBand(lower=50, upper=66, grade=PerformanceGrade.PROGRESSIVE),
    GradeBand(lower=66, upper=80, grade=PerformanceGrade.COMPETENT),
    GradeBand(lower=80, upper=90, grade=PerformanceGrade.ACCOMPLISHED),
    GradeBand(lower=90, upper=100, grade=PerformanceGrade.EXEMPLARY, upper_inclusive=True),
)


class GradeClassifier:
    """Maps a percentage in [0, 100] to a named performance grade."""

    def __init__(self, bands: Sequence[GradeBand] = DEFAULT_GRADE_BANDS):
        self.bands = tuple(sorted(bands, key=lambda b: b.lower))
        self._check_partition()

    def _check_partition(self):
        if not self.bands:
            raise ValueError("At least one grade band is required")
        if self.bands[0].lower != 0:
            raise ValueError("Grade bands must start at 0")
        last = self.bands[-1]
        if last.upper != 100 or not last.upper_inclusive:
            raise ValueError("Grade bands must end at an inclusive 100")
        for band in self.bands:
            if band.lower >= band.upper:
                raise ValueError(f"Empty grade band {band.grade.value}")
        for band, following in zip(self.bands, self.bands[1:]):
            if band.upper != following.lower:
                raise ValueError(
                    f"Grade bands {band.grade.value} and {following.grade.value} leave a gap or overlap"
                )
            if band.upper_inclusive:
                raise ValueError("Only the top grade band may include its upper bound")

    def classify(self, percentage: float) -> PerformanceGrade:
        if math.isnan(percentage) or percentage < 0 or percentage > 100:
            raise OutOfRangeInputError(percentage)
        for band in self.bands:
            if band.contains(percentage):
                return band.grade
        # Unreachable for a validated partition
        raise OutOfRangeInputError(percentage)
