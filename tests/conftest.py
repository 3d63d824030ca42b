import pytest
import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_PER_MINUTE"] = "1000"

from app.database import Base, get_db
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the per-test transaction
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    join_transaction_mode="create_savepoint",
)

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

# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users with a known password."""
    from app.models.user import User, UserRole
    from app.services import auth as auth_service

    def _make_user(email, role=UserRole.SYSTEM_ADMIN, position=None, is_ceo=False,
                   allowed_features=None, institution_id=None, full_name=None):
        user = User(
            email=email,
            hashed_password=auth_service.get_password_hash("Password123!"),
            full_name=full_name or email.split("@")[0].title(),
            role=role,
            position=position,
            is_ceo=is_ceo,
            allowed_features=allowed_features or [],
            institution_id=institution_id,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user

@pytest.fixture(scope="function")
def super_admin(make_user):
    from app.models.user import UserRole
    return make_user("root@example.com", role=UserRole.SUPER_ADMIN, full_name="Platform Root")

@pytest.fixture(scope="function")
def manager_user(make_user):
    from app.models.user import StaffPosition
    return make_user("manager@example.com", position=StaffPosition.MANAGER,
                     allowed_features=["leave_approvals"], full_name="Meera Manager")

@pytest.fixture(scope="function")
def agm_user(make_user):
    from app.models.user import StaffPosition
    return make_user("agm@example.com", position=StaffPosition.AGM,
                     allowed_features=["leave_approvals"], full_name="Arun Agm")

@pytest.fixture(scope="function")
def ceo_user(make_user):
    from app.models.user import StaffPosition
    return make_user("ceo@example.com", position=StaffPosition.CEO, is_ceo=True, full_name="Chitra Ceo")

@pytest.fixture(scope="function")
def gm_user(make_user):
    from app.models.user import StaffPosition
    return make_user("gm@example.com", position=StaffPosition.GM, full_name="Gopal Gm")

@pytest.fixture(scope="function")
def institution(db_session):
    from app.models.institution import Institution
    inst = Institution(name="Greenfield School", slug="greenfield", is_active=True)
    db_session.add(inst)
    db_session.commit()
    return inst

@pytest.fixture(scope="function")
def periods(db_session, institution):
    from app.models.institution import InstitutionPeriod
    p1 = InstitutionPeriod(institution_id=institution.id, label="Period 1", start_time="09:00", end_time="09:45", display_order=1)
    p2 = InstitutionPeriod(institution_id=institution.id, label="Period 2", start_time="10:00", end_time="10:45", display_order=2)
    db_session.add_all([p1, p2])
    db_session.commit()
    return p1, p2

@pytest.fixture(scope="function")
def make_officer(db_session, make_user):
    from app.models.officer import Officer
    from app.models.user import UserRole

    def _make_officer(name, institution, email=None, with_user=True, monthly_salary=60000, hourly_rate=350):
        user = None
        if with_user:
            user = make_user(email or f"{name.lower().replace(' ', '.')}@example.com",
                             role=UserRole.OFFICER, institution_id=institution.id, full_name=name)
        officer = Officer(
            user_id=user.id if user else None,
            full_name=name,
            email=user.email if user else email,
            skills=["robotics"],
            monthly_salary=monthly_salary,
            hourly_rate=hourly_rate,
        )
        officer.assigned_institutions.append(institution)
        db_session.add(officer)
        db_session.commit()
        return officer
    return _make_officer

@pytest.fixture(scope="function")
def officer(make_officer, institution):
    return make_officer("Priya Sharma", institution)

@pytest.fixture(scope="function")
def other_officer(make_officer, institution):
    return make_officer("Ravi Kumar", institution)

@pytest.fixture(scope="function")
def timetable(db_session, institution, periods, officer):
    """The officer teaches 8A on Monday (period 1) and Wednesday (period 2)."""
    from app.models.institution import TimetableAssignment
    p1, p2 = periods
    monday = TimetableAssignment(institution_id=institution.id, period_id=p1.id, day="Mon",
                                 class_id="8A", class_name="Grade 8 A", subject="Robotics",
                                 room="Lab 1", teacher_id=officer.id)
    wednesday = TimetableAssignment(institution_id=institution.id, period_id=p2.id, day="wednesday",
                                    class_id="8A", class_name="Grade 8 A", subject="Coding",
                                    room="Lab 2", teacher_id=officer.id)
    db_session.add_all([monday, wednesday])
    db_session.commit()
    return monday, wednesday

@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    from app.services.auth import create_access_token, token_data_for

    def _get_token(user):
        return create_access_token(data=token_data_for(user))
    return _get_token

@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers
