import os


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from teamtasks.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./teamtasks.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from teamtasks.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "8")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "2")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "15")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 8
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 15


def test_sqlite_pragmas_listener_is_guarded():
    # Verify the helper used by the connect event guard behaves as expected.
    from teamtasks.database import database as db

    assert db._is_sqlite_url("sqlite:///./teamtasks.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_schema_has_uniqueness_guards():
    """Successor idempotence and notification dedupe rely on these constraints."""
    from teamtasks.database.models import NotificationDB, TaskDB

    task_constraints = {c.name for c in TaskDB.__table__.constraints}
    notification_constraints = {c.name for c in NotificationDB.__table__.constraints}
    assert "uq_task_recurrence_occurrence" in task_constraints
    assert "uq_notifications_task_emp_type_title" in notification_constraints


def test_manager_access_defaults_to_owner(monkeypatch):
    from teamtasks.engine.permissions import ManagerProjectAccess, manager_access_from_env

    monkeypatch.delenv("MANAGER_PROJECT_ACCESS", raising=False)
    assert manager_access_from_env() == ManagerProjectAccess.OWNER
    monkeypatch.setenv("MANAGER_PROJECT_ACCESS", "Member")
    assert manager_access_from_env() == ManagerProjectAccess.MEMBER
    monkeypatch.setenv("MANAGER_PROJECT_ACCESS", "everyone")
    assert manager_access_from_env() == ManagerProjectAccess.OWNER


def test_migrate_runner_reports_missing_schema(tmp_path):
    from sqlalchemy import create_engine
    from teamtasks.database.database import Base
    from teamtasks.database import models  # noqa: F401
    from teamtasks.database.migrate_runner import missing_requirements

    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    missing = missing_requirements(engine)
    assert "missing table: tasks" in missing
    assert "missing column: tasks.version" in missing
    assert "missing table: task_edit_history" in missing
    assert "missing column: subtasks.version" in missing

    Base.metadata.create_all(bind=engine)
    assert missing_requirements(engine) == []
    engine.dispose()


def test_deadline_reminder_days_from_env(monkeypatch, caplog):
    from teamtasks.notifications.deadlines import DEFAULT_REMINDER_DAYS, reminder_days_from_env

    monkeypatch.delenv("DEADLINE_REMINDER_DAYS", raising=False)
    assert reminder_days_from_env() == DEFAULT_REMINDER_DAYS == (1, 3, 7)

    monkeypatch.setenv("DEADLINE_REMINDER_DAYS", "3, x, 1, 0, 3")
    assert reminder_days_from_env() == (1, 3)
    assert "'x'" in caplog.text

    monkeypatch.setenv("DEADLINE_REMINDER_DAYS", "never")
    assert reminder_days_from_env() == DEFAULT_REMINDER_DAYS
