from typing import Any, Dict, List, Optional

class AppException(Exception):
    def __init__(
        self, 
        message: str, 
        status_code: int = 400, 
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )

class ConfigurationMissingError(AppException):
    """A required weight, category, target or point value has no configuration row."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="CONFIGURATION_MISSING",
            details=details
        )

class InconsistentWeightError(AppException):
    """Weights or point maxima of a review period do not add up."""
    def __init__(
        self,
        message: str,
        expected_total: float,
        actual_total: float,
        review_period_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ):
        self.expected_total = expected_total
        self.actual_total = actual_total
        self.review_period_id = review_period_id
        self.category_id = category_id
        super().__init__(
            message=message,
            status_code=422,
            error_code="INCONSISTENT_WEIGHTS",
            details={
                "expected_total": expected_total,
                "actual_total": actual_total,
                "review_period_id": review_period_id,
                "category_id": category_id,
            }
        )

class PartialAggregationError(AppException):
    """
    Raised when a unit has constituents but none of them produced a usable result.
    Units that are only partly covered return a summary flagged as partial instead.
    """
    def __init__(self, unit_id: int, level: str, excluded: List[int]):
        self.unit_id = unit_id
        self.level = level
        self.excluded = list(excluded)
        super().__init__(
            message=f"No constituent of {level} unit {unit_id} produced a result",
            status_code=409,
            error_code="PARTIAL_AGGREGATION",
            details={"unit_id": unit_id, "level": level, "excluded": self.excluded}
        )

class OutOfRangeInputError(AppException):
    def __init__(self, value: float, lower: float = 0.0, upper: float = 100.0):
        self.value = value
        super().__init__(
            message=f"Percentage {value} is outside [{lower}, {upper}]",
            status_code=422,
            error_code="OUT_OF_RANGE_INPUT",
            details={"value": value, "lower": lower, "upper": upper}
        )

class InvalidHierarchyError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="INVALID_HIERARCHY",
            details=details
        )
