import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app.core.config import ScoringSettings
from app.database import Base, get_db
from app.main import app
from app.models.enums import CategoryKind, UnitLevel
from app.schemas.scoring import (
    CategoryWeight,
    ContributionRecord,
    OrganizationalUnit,
    PeriodCategory,
    PeriodSnapshot,
    ReviewPeriodInfo,
    StaffMember,
)
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

WORK_PRODUCTS = 1
COMPETENCIES = 2
SELF_REVIEW = 1
SUPERVISOR_REVIEW = 2
UNKNOWN_REVIEW_TYPE = 99

ENTERPRISE, DEPARTMENT, DIVISION = 1, 2, 3
OFFICE_A, OFFICE_B, OFFICE_C = 10, 11, 12


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# --- Engine fixtures (no database) ---

@pytest.fixture
def scoring_settings():
    return ScoringSettings(
        weight_tolerance=0.01,
        decimal_places=2,
        rollup_max_workers=4,
        default_rating_scale_max=5,
        under_performance_cutoff=50,
    )

@pytest.fixture
def review_period():
    return ReviewPeriodInfo(review_period_id=1, name="2025 Annual Review", year=2025, max_points=100)

@pytest.fixture
def categories():
    return (
        PeriodCategory(category_id=WORK_PRODUCTS, name="Work Products", kind=CategoryKind.WORK_PRODUCT,
                       share_percent=60, max_points=60),
        PeriodCategory(category_id=COMPETENCIES, name="Competencies", kind=CategoryKind.COMPETENCY,
                       share_percent=40, max_points=40),
    )

@pytest.fixture
def weights():
    """Work products have one category-wide row; competencies split 40/60 between self and supervisor."""
    return (
        CategoryWeight(review_period_id=1, category_id=WORK_PRODUCTS, weight_percent=100, max_points=60),
        CategoryWeight(review_period_id=1, category_id=COMPETENCIES, review_type_id=SELF_REVIEW,
                       weight_percent=40, max_points=40),
        CategoryWeight(review_period_id=1, category_id=COMPETENCIES, review_type_id=SUPERVISOR_REVIEW,
                       weight_percent=60, max_points=40),
    )

@pytest.fixture
def hierarchy():
    return (
        OrganizationalUnit(unit_id=ENTERPRISE, name="Enterprise", level=UnitLevel.ENTERPRISE),
        OrganizationalUnit(unit_id=DEPARTMENT, name="Operations", level=UnitLevel.DEPARTMENT, parent_id=ENTERPRISE),
        OrganizationalUnit(unit_id=DIVISION, name="Field Services", level=UnitLevel.DIVISION, parent_id=DEPARTMENT),
        OrganizationalUnit(unit_id=OFFICE_A, name="Office A", level=UnitLevel.OFFICE, parent_id=DIVISION),
        OrganizationalUnit(unit_id=OFFICE_B, name="Office B", level=UnitLevel.OFFICE, parent_id=DIVISION),
        OrganizationalUnit(unit_id=OFFICE_C, name="Office C", level=UnitLevel.OFFICE, parent_id=DIVISION),
    )

@pytest.fixture
def staff_members():
    return (
        StaffMember(staff_id=1, full_name="Ada Obi", office_id=OFFICE_A),
        StaffMember(staff_id=2, full_name="Femi Bello", office_id=OFFICE_A),
        StaffMember(staff_id=3, full_name="Chidi Eze", office_id=OFFICE_B),
        StaffMember(staff_id=4, full_name="Ngozi Ade", office_id=OFFICE_C),
        StaffMember(staff_id=5, full_name="Tunde Lawal", office_id=OFFICE_A, is_eligible=False),
    )

@pytest.fixture
def make_contributions():
    """
    Builds the contribution records of one staff member.
    Competency points are recorded once per review type with the same value,
    so the weighted competency score equals that value.
    """
    counter = {"next_id": 1}

    def _next_id():
        record_id = counter["next_id"]
        counter["next_id"] += 1
        return record_id

    def _make(staff_id, work_points=0.0, competency_points=0.0, work_review_type_id=None):
        records = [
            ContributionRecord(record_id=_next_id(), staff_id=staff_id, review_period_id=1,
                               category_id=WORK_PRODUCTS, review_type_id=work_review_type_id,
                               points=work_points),
        ]
        for review_type_id in (SELF_REVIEW, SUPERVISOR_REVIEW):
            records.append(
                ContributionRecord(record_id=_next_id(), staff_id=staff_id, review_period_id=1,
                                   category_id=COMPETENCIES, review_type_id=review_type_id,
                                   points=competency_points)
            )
        return records

    return _make

@pytest.fixture
def contributions(make_contributions):
    """Staff 1, 2, 3 score 80, 60 and 90; staff 4 references an unconfigured review type."""
    return tuple(
        make_contributions(1, work_points=50, competency_points=30)
        + make_contributions(2, work_points=40, competency_points=20)
        + make_contributions(3, work_points=55, competency_points=35)
        + make_contributions(4, work_points=30, competency_points=30, work_review_type_id=UNKNOWN_REVIEW_TYPE)
    )

@pytest.fixture
def make_snapshot(review_period, categories, weights, hierarchy, staff_members, contributions):
    def _make(**overrides):
        data = dict(
            review_period=review_period,
            as_of=date(2025, 12, 31),
            categories=categories,
            weights=weights,
            staff=staff_members,
            units=hierarchy,
            contributions=contributions,
        )
        data.update(overrides)
        return PeriodSnapshot(**data)
    return _make


# --- Database fixtures ---

@pytest.fixture
def seeded_period(db_session):
    """
    A review period persisted through the ORM with the same shape as the
    engine fixtures: two offices under one division, three scored staff.
    """
    from app.models import (
        CategoryWeight as CategoryWeightRow,
        Competency,
        CompetencyRating,
        CompetencyTarget,
        ContributionRecord as ContributionRow,
        OrganizationalUnit as UnitRow,
        PerformanceCategory,
        PeriodCategory as PeriodCategoryRow,
        ReviewPeriod,
        ReviewType,
        StaffMember as StaffRow,
    )
    from app.models.enums import RecordStatus

    period = ReviewPeriod(name="2025 Annual Review", year=2025, max_points=100,
                          start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))
    work = PerformanceCategory(name="Work Products", kind=CategoryKind.WORK_PRODUCT)
    competency_category = PerformanceCategory(name="Competencies", kind=CategoryKind.COMPETENCY)
    self_review = ReviewType(name="Self")
    supervisor_review = ReviewType(name="Supervisor")
    db_session.add_all([period, work, competency_category, self_review, supervisor_review])
    db_session.flush()

    db_session.add_all([
        PeriodCategoryRow(review_period_id=period.id, category_id=work.id, share_percent=60, max_points=60),
        PeriodCategoryRow(review_period_id=period.id, category_id=competency_category.id,
                          share_percent=40, max_points=40),
        CategoryWeightRow(review_period_id=period.id, category_id=work.id, weight_percent=100, max_points=60),
        CategoryWeightRow(review_period_id=period.id, category_id=competency_category.id,
                          review_type_id=self_review.id, weight_percent=40, max_points=40),
        CategoryWeightRow(review_period_id=period.id, category_id=competency_category.id,
                          review_type_id=supervisor_review.id, weight_percent=60, max_points=40),
    ])

    enterprise = UnitRow(name="Enterprise", level=UnitLevel.ENTERPRISE)
    db_session.add(enterprise)
    db_session.flush()
    department = UnitRow(name="Operations", level=UnitLevel.DEPARTMENT, parent_id=enterprise.id)
    db_session.add(department)
    db_session.flush()
    division = UnitRow(name="Field Services", level=UnitLevel.DIVISION, parent_id=department.id)
    db_session.add(division)
    db_session.flush()
    office_a = UnitRow(name="Office A", level=UnitLevel.OFFICE, parent_id=division.id)
    office_b = UnitRow(name="Office B", level=UnitLevel.OFFICE, parent_id=division.id)
    db_session.add_all([office_a, office_b])
    db_session.flush()

    staff = [
        StaffRow(staff_number="S-001", full_name="Ada Obi", office_id=office_a.id),
        StaffRow(staff_number="S-002", full_name="Femi Bello", office_id=office_a.id),
        StaffRow(staff_number="S-003", full_name="Chidi Eze", office_id=office_b.id),
        StaffRow(staff_number="S-004", full_name="Former Staff", office_id=office_b.id, soft_deleted=True),
    ]
    db_session.add_all(staff)
    db_session.flush()

    for member, work_points, competency_points in zip(staff, (50, 40, 55, 100), (30, 20, 35, 40)):
        db_session.add(ContributionRow(staff_id=member.id, review_period_id=period.id,
                                       category_id=work.id, points=work_points))
        for review_type in (self_review, supervisor_review):
            db_session.add(ContributionRow(staff_id=member.id, review_period_id=period.id,
                                           category_id=competency_category.id,
                                           review_type_id=review_type.id, points=competency_points))
    # Still in draft, never counted
    db_session.add(ContributionRow(staff_id=staff[0].id, review_period_id=period.id, category_id=work.id,
                                   points=60, record_status=RecordStatus.DRAFT.value))

    teamwork = Competency(name="Teamwork", category_id=competency_category.id)
    db_session.add(teamwork)
    db_session.flush()
    db_session.add_all([
        CompetencyTarget(staff_id=staff[0].id, review_period_id=period.id, competency_id=teamwork.id,
                         expected_rating_value=4),
        CompetencyRating(staff_id=staff[0].id, review_period_id=period.id, competency_id=teamwork.id,
                         review_type_id=self_review.id, rating_value=3),
        CompetencyRating(staff_id=staff[0].id, review_period_id=period.id, competency_id=teamwork.id,
                         review_type_id=supervisor_review.id, rating_value=3),
    ])
    db_session.commit()

    return {
        "period_id": period.id,
        "staff_ids": [s.id for s in staff],
        "division_id": division.id,
        "enterprise_id": enterprise.id,
        "office_ids": [office_a.id, office_b.id],
        "category_ids": [work.id, competency_category.id],
        "competency_id": teamwork.id,
    }
