"""Pytest fixtures and configuration for teamtasks tests."""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from teamtasks.database.database import Base
from teamtasks.database import models  # noqa: F401
from teamtasks.database.employee_repository import EmployeeRepository
from teamtasks.database.project_repository import ProjectRepository
from teamtasks.database.repository import TaskRepository
from teamtasks.engine.lifecycle import TaskLifecycleService
from teamtasks.engine.permissions import ManagerProjectAccess, PermissionEvaluator
from teamtasks.models.actor import Actor, Role
from teamtasks.models.employee import Employee
from teamtasks.models.project import Project
from teamtasks.notifications.dispatcher import RecordingDispatcher


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# emp_id -> role; E1..E5 are staff
EMPLOYEES = {
    "E1": Role.STAFF,
    "E2": Role.STAFF,
    "E3": Role.STAFF,
    "E4": Role.STAFF,
    "E5": Role.STAFF,
    "M1": Role.MANAGER,
    "M2": Role.MANAGER,
    "H1": Role.HR,
    "D1": Role.DIRECTOR,
}

PROJECT_ID = "P1"


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test, seeded
    with the employee directory above and one project (owned by M1; E1, E3 and M2
    are plain members).
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    employees = EmployeeRepository(session)
    for emp_id, role in EMPLOYEES.items():
        employees.create_or_update(Employee(
            emp_id=emp_id,
            email=f"{emp_id.lower()}@example.com",
            name=f"Employee {emp_id}",
            department="Engineering",
            role=role,
        ))
    ProjectRepository(session).create(Project(
        id=PROJECT_ID,
        title="Platform",
        owner_id="M1",
        member_ids=["E1", "E3", "M2"],
    ))

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def actors():
    """Actor per seeded employee id."""
    return {emp_id: Actor(emp_id=emp_id, role=role) for emp_id, role in EMPLOYEES.items()}


@pytest.fixture
def task_repository(db_session: Session):
    return TaskRepository(db_session)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def evaluator(db_session: Session):
    return PermissionEvaluator(ProjectRepository(db_session).get, ManagerProjectAccess.OWNER)


@pytest.fixture
def service(db_session: Session, dispatcher, evaluator):
    """Lifecycle service recording notifications in memory."""
    return TaskLifecycleService(db_session, dispatcher=dispatcher, evaluator=evaluator, conflict_retries=3)


@pytest.fixture
def auth_headers():
    """Build bearer headers for an employee id."""
    from teamtasks.auth.jwt import create_access_token

    def _headers(emp_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(emp_id)}"}

    return _headers


@pytest.fixture
def test_client(db_session: Session, monkeypatch):
    """Create a FastAPI test client with overridden database dependency.

    Authentication is real: requests carry a bearer token for a seeded employee.
    """
    from teamtasks.api.app import app
    from teamtasks.database.database import get_db

    monkeypatch.setenv("MANAGER_PROJECT_ACCESS", "owner")

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
