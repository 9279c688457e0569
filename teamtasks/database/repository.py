"""Repository layer for task database operations."""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import String, cast, desc, or_
from sqlalchemy.orm import Session

from teamtasks.database.models import TaskDB, _rule_to_json, enum_to_value
from teamtasks.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def list_for_employee(self, emp_id: str) -> List[Task]:
        """Get tasks an employee owns or collaborates on, newest first."""
        # collaborator_ids is a JSON array; its text form narrows the scan portably
        # (SQLite and PostgreSQL) and membership is confirmed on the decoded list.
        collaborator_text = cast(TaskDB.collaborator_ids, String)
        tasks_db = self.db.query(TaskDB).filter(or_(
            TaskDB.owner_id == emp_id,
            collaborator_text.contains(f'"{emp_id}"', autoescape=True),
        )).order_by(desc(TaskDB.created_at)).all()
        return [
            t.to_pydantic()
            for t in tasks_db
            if t.owner_id == emp_id or emp_id in (t.collaborator_ids or [])
        ]

    def list_for_projects(self, project_ids: List[str]) -> List[Task]:
        """Get tasks belonging to any of the given projects, newest first."""
        if not project_ids:
            return []
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.project_id.in_(project_ids),
        ).order_by(desc(TaskDB.created_at)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_open_due_on(self, due_dates: List[date]) -> List[Task]:
        """Get tasks not yet completed whose due date is one of due_dates."""
        if not due_dates:
            return []
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.due_date.in_(due_dates),
            TaskDB.status != TaskStatus.COMPLETED.value,
        ).order_by(TaskDB.due_date, TaskDB.created_at).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_open_overdue(self, today: date) -> List[Task]:
        """Get tasks not yet completed whose due date is before today."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.due_date < today,
            TaskDB.status != TaskStatus.COMPLETED.value,
        ).order_by(TaskDB.due_date, TaskDB.created_at).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_series(self, recurrence_series_id: str) -> List[Task]:
        """Get every instance of a recurring series ordered by occurrence number."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.recurrence_series_id == recurrence_series_id,
        ).order_by(TaskDB.recurrence_count).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_by_series_occurrence(self, recurrence_series_id: str, recurrence_count: int) -> Optional[Task]:
        """Get the instance holding a given occurrence number in a series."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.recurrence_series_id == recurrence_series_id,
            TaskDB.recurrence_count == recurrence_count,
        ).first()
        return task_db.to_pydantic() if task_db else None

    def update(self, task: Task, expected_version: int) -> Optional[Task]:
        """Write a task if its stored version still equals expected_version.

        The version is bumped by one on success.

        Returns:
            Updated task, or None if another writer got there first (or the task is gone)
        """
        values = {
            TaskDB.title: task.title,
            TaskDB.description: task.description,
            TaskDB.priority: task.priority,
            TaskDB.status: enum_to_value(task.status),
            TaskDB.owner_id: task.owner_id,
            TaskDB.collaborator_ids: list(task.collaborator_ids),
            TaskDB.project_id: task.project_id,
            TaskDB.due_date: task.due_date,
            TaskDB.file: task.file,
            TaskDB.recurrence: _rule_to_json(task.recurrence),
            TaskDB.updated_at: task.updated_at,
            TaskDB.completed_at: task.completed_at,
            TaskDB.version: expected_version + 1,
        }
        try:
            matched = self.db.query(TaskDB).filter(
                TaskDB.id == task.id,
                TaskDB.version == expected_version,
            ).update(values, synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task.id}: {type(e).__name__}: {str(e)}")
            raise

        if not matched:
            logger.debug(f"Version conflict updating task {task.id} (expected v{expected_version})")
            return None

        self.db.expire_all()
        logger.debug(f"Updated task {task.id} to v{expected_version + 1}: {task.title[:50]}")
        return self.get(task.id)
