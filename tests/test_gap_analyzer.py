import pytest
from app.core.exceptions import ConfigurationMissingError
from app.schemas.scoring import CompetencyDefinition, CompetencyGapRecord, CompetencyRating
from app.services.gap_analyzer import GapAnalyzer, most_frequent_rating
from app.services.weight_resolver import CategoryWeightResolver

COMPETENCIES = 2
SELF_REVIEW, SUPERVISOR_REVIEW = 1, 2

TEAMWORK = CompetencyDefinition(competency_id=7, name="Teamwork", category_id=COMPETENCIES)


def _rating(value, review_type_id, competency_id=7, staff_id=1, **kwargs):
    return CompetencyRating(staff_id=staff_id, competency_id=competency_id, review_type_id=review_type_id,
                            rating_value=value, **kwargs)

@pytest.fixture
def analyzer(weights):
    return GapAnalyzer(CategoryWeightResolver(1, weights))

def test_positive_gap(analyzer):
    """Expected 4, realized 3: gap of 1."""
    ratings = [_rating(3, SELF_REVIEW), _rating(4, SUPERVISOR_REVIEW), _rating(2, SUPERVISOR_REVIEW)]
    record = analyzer.analyze(1, 1, TEAMWORK, 4, ratings)
    assert record.average_actual_rating_value == 3
    assert record.gap == 1
    assert record.have_gap is True

def test_negative_gap_is_kept_signed(analyzer):
    """Expected 3, realized 4: the staff member exceeds the expectation."""
    ratings = [_rating(4, SELF_REVIEW), _rating(4, SUPERVISOR_REVIEW)]
    record = analyzer.analyze(1, 1, TEAMWORK, 3, ratings)
    assert record.gap == -1
    assert record.have_gap is False

def test_absent_review_type_lowers_the_realized_rating(analyzer):
    record = analyzer.analyze(1, 1, TEAMWORK, 4, [_rating(5, SUPERVISOR_REVIEW)])
    assert record.average_actual_rating_value == 3
    assert record.gap == 1

def test_ratings_of_other_staff_and_competencies_are_ignored(analyzer):
    ratings = [
        _rating(4, SELF_REVIEW),
        _rating(4, SUPERVISOR_REVIEW),
        _rating(1, SUPERVISOR_REVIEW, staff_id=2),
        _rating(1, SUPERVISOR_REVIEW, competency_id=8),
        _rating(1, SUPERVISOR_REVIEW, is_eligible=False),
    ]
    assert analyzer.analyze(1, 1, TEAMWORK, 4, ratings).gap == 0

def test_unweighted_review_type_is_a_configuration_error(analyzer):
    with pytest.raises(ConfigurationMissingError):
        analyzer.analyze(1, 1, TEAMWORK, 4, [_rating(3, 5)])

@pytest.mark.parametrize("values, expected", [
    ([3, 3, 4, 5], 3),
    ([2, 4, 4, 2, 5], 2),
    ([5], 5),
    ([], 0),
])
def test_most_frequent_rating_ties_go_to_lowest(values, expected):
    assert most_frequent_rating(values) == expected

def test_category_summary(analyzer):
    records = [
        CompetencyGapRecord(staff_id=1, competency_id=c, review_period_id=1, category_id=COMPETENCIES,
                            expected_rating_value=expected, average_actual_rating_value=actual,
                            gap=expected - actual, have_gap=expected > actual)
        for c, expected, actual in [(1, 4, 3), (2, 3, 4), (3, 4, 4), (4, 5, 3)]
    ]
    summary = analyzer.summarize_category(COMPETENCIES, records)
    assert summary.competency_count == 4
    assert summary.highest_rating == 4
    assert summary.lowest_rating == 3
    assert summary.most_frequent_rating == 3
    assert summary.average_actual_rating == 3.5
    assert summary.average_expected_rating == 4
    assert summary.gap_count == 2
