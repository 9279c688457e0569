"""Tests for repository operations (tasks, subtasks, edit history, notifications)."""

import pytest
from datetime import date
from sqlalchemy.exc import IntegrityError

from teamtasks.database.audit_repository import AuditRepository
from teamtasks.database.notification_repository import NotificationRepository
from teamtasks.database.subtask_repository import SubtaskRepository
from teamtasks.models.audit_event import AuditEvent, AuditEventType
from teamtasks.models.notification import NotificationEvent, NotificationType
from teamtasks.models.recurrence import RecurrenceRule
from teamtasks.models.task import TaskStatus
from teamtasks.models.task_factory import create_subtask_base, create_task_base
from teamtasks.notifications.dispatcher import DatabaseNotificationDispatcher
from teamtasks.recurrence.roll_forward import build_successor


@pytest.fixture
def sample_task():
    return create_task_base(owner_id="E1", title="Test Task", priority=5, collaborator_ids=["E2"])


class TestTaskRepository:
    """Test TaskRepository operations."""

    def test_create_task(self, task_repository, sample_task):
        """Test creating a task."""
        created = task_repository.create(sample_task)

        assert created.id == sample_task.id
        assert created.title == sample_task.title
        assert created.status == TaskStatus.ONGOING
        assert created.collaborator_ids == ["E2"]

    def test_get_nonexistent_task(self, task_repository):
        """Test retrieving a nonexistent task returns None."""
        assert task_repository.get("nonexistent-id") is None

    def test_recurrence_round_trips(self, task_repository):
        rule = RecurrenceRule.model_validate({
            "pattern": "monthly",
            "anchor_day": 31,
            "end": {"kind": "count", "max_count": 3},
        })
        task = create_task_base(owner_id="E1", title="Close books", due_date=date(2025, 1, 31), recurrence=rule)
        stored = task_repository.create(task)

        assert stored.recurrence == rule
        assert stored.recurrence.max_count == 3

    def test_unknown_owner_rejected(self, task_repository):
        with pytest.raises(IntegrityError):
            task_repository.create(create_task_base(owner_id="E404", title="Ghost"))

    def test_list_for_employee(self, task_repository, sample_task):
        task_repository.create(sample_task)
        task_repository.create(create_task_base(owner_id="E3", title="Other"))

        assert [t.id for t in task_repository.list_for_employee("E1")] == [sample_task.id]
        assert [t.id for t in task_repository.list_for_employee("E2")] == [sample_task.id]
        assert task_repository.list_for_employee("E4") == []

    def test_list_for_employee_matches_whole_ids(self, task_repository):
        shared = task_repository.create(create_task_base(owner_id="E1", title="Shared", collaborator_ids=["E22"]))

        assert task_repository.list_for_employee("E2") == []
        assert task_repository.list_for_employee("E%") == []
        assert [t.id for t in task_repository.list_for_employee("E22")] == [shared.id]

    def test_list_for_projects(self, task_repository):
        scoped = task_repository.create(create_task_base(owner_id="E1", title="Scoped", project_id="P1"))
        task_repository.create(create_task_base(owner_id="E1", title="Loose"))

        assert [t.id for t in task_repository.list_for_projects(["P1", "P404"])] == [scoped.id]
        assert task_repository.list_for_projects([]) == []

    def test_open_tasks_by_due_date(self, task_repository):
        due = task_repository.create(create_task_base(owner_id="E1", title="Due", due_date=date(2025, 6, 13)))
        task_repository.create(create_task_base(
            owner_id="E1", title="Done", due_date=date(2025, 6, 13), status=TaskStatus.COMPLETED,
        ))
        late = task_repository.create(create_task_base(owner_id="E1", title="Late", due_date=date(2025, 6, 1)))
        task_repository.create(create_task_base(owner_id="E1", title="Undated"))

        assert [t.id for t in task_repository.list_open_due_on([date(2025, 6, 13)])] == [due.id]
        assert [t.id for t in task_repository.list_open_overdue(date(2025, 6, 10))] == [late.id]

    def test_update_bumps_version(self, task_repository, sample_task):
        created = task_repository.create(sample_task)
        updated = task_repository.update(created.model_copy(update={"title": "Renamed"}), expected_version=1)

        assert updated.title == "Renamed"
        assert updated.version == 2

    def test_stale_update_is_rejected(self, task_repository, sample_task):
        created = task_repository.create(sample_task)
        task_repository.update(created.model_copy(update={"title": "First"}), expected_version=1)

        assert task_repository.update(created.model_copy(update={"title": "Second"}), expected_version=1) is None
        assert task_repository.get(created.id).title == "First"

    def test_one_successor_per_occurrence(self, task_repository):
        rule = RecurrenceRule(pattern="daily")
        first = task_repository.create(
            create_task_base(owner_id="E1", title="Daily check", due_date=date(2025, 1, 1), recurrence=rule)
        )
        task_repository.create(build_successor(first, date(2025, 1, 2)))

        with pytest.raises(IntegrityError):
            task_repository.create(build_successor(first, date(2025, 1, 2)))
        assert [t.recurrence_count for t in task_repository.list_series(first.recurrence_series_id)] == [1, 2]
        assert task_repository.get_by_series_occurrence(first.recurrence_series_id, 2).due_date == date(2025, 1, 2)


class TestSubtaskRepository:
    def test_copy_resets_status(self, db_session, task_repository, sample_task):
        source = task_repository.create(sample_task)
        target = task_repository.create(create_task_base(owner_id="E1", title="Next"))
        repo = SubtaskRepository(db_session)
        done = repo.create(create_subtask_base(source, title="Step", status=TaskStatus.COMPLETED))
        gone = repo.create(create_subtask_base(source, title="Dropped"))
        repo.soft_delete(gone.id)

        copies = repo.copy_to(source.id, target.id, "E1")

        assert [c.title for c in copies] == ["Step"]
        assert copies[0].status == TaskStatus.ONGOING
        assert copies[0].id != done.id
        assert repo.list_for_task(source.id)[0].status == TaskStatus.COMPLETED

    def test_set_owner_for_task(self, db_session, task_repository, sample_task):
        parent = task_repository.create(sample_task)
        repo = SubtaskRepository(db_session)
        repo.create(create_subtask_base(parent, title="A"))
        repo.create(create_subtask_base(parent, title="B"))

        assert repo.set_owner_for_task(parent.id, "E3") == 2
        assert {s.owner_id for s in repo.list_for_task(parent.id)} == {"E3"}
        assert {s.version for s in repo.list_for_task(parent.id)} == {2}

    def test_update_requires_unchanged_subtask_and_parent(self, db_session, task_repository, sample_task):
        parent = task_repository.create(sample_task)
        repo = SubtaskRepository(db_session)
        subtask = repo.create(create_subtask_base(parent, title="Draft"))

        saved = repo.update(subtask.model_copy(update={"title": "Draft v2"}), expected_version=1, parent_version=1)
        assert saved.title == "Draft v2"
        assert saved.version == 2

        stale = subtask.model_copy(update={"title": "Stale"})
        assert repo.update(stale, expected_version=1, parent_version=1) is None

        task_repository.update(parent.model_copy(update={"collaborator_ids": []}), expected_version=1)
        moved = saved.model_copy(update={"title": "Parent moved"})
        assert repo.update(moved, expected_version=2, parent_version=1) is None
        assert repo.get(subtask.id).title == "Draft v2"


class TestAuditRepository:
    def test_history_in_insertion_order(self, db_session, task_repository, sample_task):
        task = task_repository.create(sample_task)
        repo = AuditRepository(db_session)
        repo.record(AuditEvent(
            event_type=AuditEventType.TASK_CREATED, task_id=task.id, editor_id="E1", details={"title": "Test Task"},
        ))
        repo.record(AuditEvent(
            event_type=AuditEventType.TASK_UPDATED, task_id=task.id, editor_id="E2", details={"status": "completed"},
        ))

        history = repo.list_for_task(task.id)
        assert [e.event_type for e in history] == ["task_create", "task_update"]
        assert [e.editor_id for e in history] == ["E1", "E2"]
        assert history[1].details == {"status": "completed"}
        assert history[0].id < history[1].id

    def test_unknown_task_rejected(self, db_session):
        with pytest.raises(IntegrityError):
            AuditRepository(db_session).record(AuditEvent(
                event_type=AuditEventType.TASK_UPDATED, task_id="missing", editor_id="E1",
            ))


class TestNotificationRepository:
    def test_duplicate_is_skipped(self, db_session):
        repo = NotificationRepository(db_session)
        first = repo.create("E2", NotificationType.TASK_CREATED, "New task: Report", task_id="T1")
        second = repo.create("E2", NotificationType.TASK_CREATED, "New task: Report", task_id="T1")

        assert first is not None
        assert second is None
        assert repo.unread_count("E2") == 1

    def test_mark_read_only_own(self, db_session):
        repo = NotificationRepository(db_session)
        notification = repo.create("E2", NotificationType.SHARED_TASK, "Task shared with you: Report", task_id="T1")

        assert repo.mark_read("E3", notification.id) is None
        marked = repo.mark_read("E2", notification.id)
        assert marked.read is True
        assert marked.read_at is not None
        assert repo.unread_count("E2") == 0

    def test_mark_all_read(self, db_session):
        repo = NotificationRepository(db_session)
        repo.create("E2", NotificationType.TASK_UPDATED, "Task updated: A (v2)", task_id="T1")
        repo.create("E2", NotificationType.TASK_UPDATED, "Task updated: A (v3)", task_id="T1")
        repo.create("E3", NotificationType.TASK_UPDATED, "Task updated: A (v3)", task_id="T1")

        assert repo.mark_all_read("E2") == 2
        assert repo.unread_count("E2") == 0
        assert repo.unread_count("E3") == 1

    def test_database_dispatcher_fans_out(self, db_session):
        DatabaseNotificationDispatcher(db_session).dispatch(NotificationEvent(
            event_type=NotificationType.TASK_ASSIGNED,
            task_id="T1",
            recipients=["E1", "E2", "E1"],
            title="Task assigned: Report",
        ))
        repo = NotificationRepository(db_session)
        assert repo.unread_count("E1") == 1
        assert repo.unread_count("E2") == 1
        assert repo.list_for_employee("E1")[0].type == "task_assigned"
