import pytest
from app.core.exceptions import ConfigurationMissingError
from app.models.enums import CategoryKind, PerformanceGrade
from app.schemas.scoring import CategoryWeight, ContributionRecord, PeriodCategory
from app.services.grade_classifier import GradeClassifier
from app.services.score_accumulator import ScoreAccumulator
from app.services.weight_resolver import CategoryWeightResolver

WORK_PRODUCTS, COMPETENCIES, DEDUCTIONS = 1, 2, 9
SELF_REVIEW, SUPERVISOR_REVIEW = 1, 2


def _record(record_id, category_id, points=None, review_type_id=None, staff_id=1, **kwargs):
    return ContributionRecord(record_id=record_id, staff_id=staff_id, review_period_id=1,
                              category_id=category_id, review_type_id=review_type_id, points=points, **kwargs)

@pytest.fixture
def accumulator(review_period, categories, weights):
    return ScoreAccumulator(review_period, categories, CategoryWeightResolver(1, weights), GradeClassifier())

def test_scoring_scenario(accumulator):
    """Work products earn 45 of 60 and competencies 30 of 40: 75 points, Competent."""
    records = [
        _record(1, WORK_PRODUCTS, 45),
        _record(2, COMPETENCIES, 30, SELF_REVIEW),
        _record(3, COMPETENCIES, 30, SUPERVISOR_REVIEW),
    ]
    score = accumulator.accumulate(1, records)
    by_category = {c.category_id: c for c in score.category_scores}
    assert by_category[WORK_PRODUCTS].weighted_score == 45
    assert by_category[COMPETENCIES].weighted_score == 30
    assert score.final_score == 75
    assert score.percentage == 75
    assert score.grade == PerformanceGrade.COMPETENT
    assert not score.is_under_performing

def test_category_points_are_capped(accumulator):
    score = accumulator.accumulate(1, [_record(1, WORK_PRODUCTS, 45), _record(2, WORK_PRODUCTS, 40)])
    work = score.category_scores[0]
    assert work.raw_points == 85
    assert work.capped_points == 60
    assert score.final_score == 60

def test_missing_review_type_is_not_renormalized(accumulator):
    """Only the self review is present: 40% of its points count, nothing is scaled up."""
    score = accumulator.accumulate(1, [_record(1, COMPETENCIES, 40, SELF_REVIEW)])
    assert score.final_score == 16

def test_no_contributions_is_a_zero_score(accumulator):
    score = accumulator.accumulate(1, [])
    assert score.final_score == 0
    assert score.percentage == 0
    assert score.grade == PerformanceGrade.DEVELOPING
    assert score.is_under_performing
    assert all(c.record_count == 0 for c in score.category_scores)

def test_ineligible_and_foreign_records_are_ignored(accumulator):
    records = [
        _record(1, WORK_PRODUCTS, 30),
        _record(2, WORK_PRODUCTS, 30, is_eligible=False),
        _record(3, WORK_PRODUCTS, 30, staff_id=2),
    ]
    assert accumulator.accumulate(1, records).final_score == 30

def test_unconfigured_review_type_fails_the_staff_computation(accumulator):
    with pytest.raises(ConfigurationMissingError):
        accumulator.accumulate(1, [_record(1, WORK_PRODUCTS, 30, review_type_id=SELF_REVIEW)])

def test_unknown_category_fails_the_staff_computation(accumulator):
    with pytest.raises(ConfigurationMissingError):
        accumulator.accumulate(1, [_record(1, 42, 30)])

def test_work_product_outcome_from_evaluation_dimensions(accumulator):
    record = _record(1, WORK_PRODUCTS, timeliness=10, quality=15, output=12.5)
    assert accumulator.accumulate(1, [record]).final_score == 37.5

def test_identical_inputs_give_identical_scores(accumulator):
    records = [_record(1, WORK_PRODUCTS, 33.333), _record(2, COMPETENCIES, 17.777, SELF_REVIEW)]
    assert accumulator.accumulate(1, records) == accumulator.accumulate(1, list(reversed(records)))

def test_max_count_keeps_lowest_record_ids(review_period, categories):
    weights = (
        CategoryWeight(review_period_id=1, category_id=WORK_PRODUCTS, weight_percent=100, max_points=60,
                       max_count=2),
        CategoryWeight(review_period_id=1, category_id=COMPETENCIES, weight_percent=100, max_points=40),
    )
    accumulator = ScoreAccumulator(review_period, categories, CategoryWeightResolver(1, weights), GradeClassifier())
    records = [_record(3, WORK_PRODUCTS, 30), _record(1, WORK_PRODUCTS, 10), _record(2, WORK_PRODUCTS, 5)]
    score = accumulator.accumulate(1, records)
    assert score.category_scores[0].record_count == 2
    assert score.final_score == 15

def test_share_scaling_when_category_max_differs_from_share(review_period):
    """A category worth 10 points internally but 60% of the period scales to 60."""
    categories = (
        PeriodCategory(category_id=WORK_PRODUCTS, name="Work Products", kind=CategoryKind.WORK_PRODUCT,
                       share_percent=60, max_points=10),
        PeriodCategory(category_id=COMPETENCIES, name="Competencies", kind=CategoryKind.COMPETENCY,
                       share_percent=40, max_points=90),
    )
    weights = (
        CategoryWeight(review_period_id=1, category_id=WORK_PRODUCTS, weight_percent=100, max_points=10),
        CategoryWeight(review_period_id=1, category_id=COMPETENCIES, weight_percent=100, max_points=90),
    )
    accumulator = ScoreAccumulator(review_period, categories, CategoryWeightResolver(1, weights), GradeClassifier())
    score = accumulator.accumulate(1, [_record(1, WORK_PRODUCTS, 5), _record(2, COMPETENCIES, 45)])
    assert score.final_score == pytest.approx(50)

@pytest.fixture
def deduction_accumulator(review_period, categories, weights):
    categories = categories + (
        PeriodCategory(category_id=DEDUCTIONS, name="Sanctions", kind=CategoryKind.DEDUCTION, max_points=20),
    )
    weights = weights + (
        CategoryWeight(review_period_id=1, category_id=DEDUCTIONS, weight_percent=100, max_points=20),
    )
    return ScoreAccumulator(review_period, categories, CategoryWeightResolver(1, weights), GradeClassifier())

def test_deductions_are_applied_last(deduction_accumulator):
    records = [_record(1, WORK_PRODUCTS, 50), _record(2, DEDUCTIONS, 5)]
    score = deduction_accumulator.accumulate(1, records)
    assert score.deduction_points == 5
    assert score.final_score == 45
    assert score.category_scores[-1].kind == CategoryKind.DEDUCTION
    assert score.category_scores[-1].weighted_score == -5

def test_final_score_never_drops_below_zero(deduction_accumulator):
    records = [_record(1, WORK_PRODUCTS, 5), _record(2, DEDUCTIONS, 15)]
    score = deduction_accumulator.accumulate(1, records)
    assert score.final_score == 0
    assert score.percentage == 0

def test_percentage_stays_within_bounds(accumulator):
    records = [
        _record(1, WORK_PRODUCTS, 500),
        _record(2, COMPETENCIES, 500, SELF_REVIEW),
        _record(3, COMPETENCIES, 500, SUPERVISOR_REVIEW),
    ]
    score = accumulator.accumulate(1, records)
    assert score.percentage == 100
    assert score.grade == PerformanceGrade.EXEMPLARY

def test_grade_uses_unrounded_percentage(accumulator):
    """49.996% displays as 50.0 but is still below the Progressive band."""
    score = accumulator.accumulate(1, [_record(1, WORK_PRODUCTS, 49.996)])
    assert score.percentage == 50.0
    assert score.grade == PerformanceGrade.DEVELOPING
    assert score.is_under_performing
