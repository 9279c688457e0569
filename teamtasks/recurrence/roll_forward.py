"""Successor creation for completed recurring tasks.

The successor of occurrence N is identified by (recurrence_series_id, N + 1). That
pair is unique in the database, so running roll-forward any number of times for the
same completed instance yields at most one successor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamtasks.database.repository import TaskRepository
from teamtasks.database.subtask_repository import SubtaskRepository
from teamtasks.models.task import Task, TaskStatus
from teamtasks.models.task_factory import create_task_base
from teamtasks.recurrence.rules import next_occurrence

logger = logging.getLogger(__name__)


class RollForwardStatus(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    SERIES_FINISHED = "series_finished"
    NOT_RECURRING = "not_recurring"
    FAILED = "failed"


@dataclass(frozen=True)
class RollForwardResult:
    status: RollForwardStatus
    successor: Optional[Task] = None
    next_due_date: Optional[date] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "successor_id": self.successor.id if self.successor else None,
            "next_due_date": self.next_due_date.isoformat() if self.next_due_date else None,
            "error": self.error,
        }


def build_successor(task: Task, next_due_date: date) -> Task:
    """Build (without persisting) the next instance of a recurring task."""
    return create_task_base(
        owner_id=task.owner_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=TaskStatus.ONGOING,
        collaborator_ids=task.collaborator_ids,
        project_id=task.project_id,
        due_date=next_due_date,
        file=task.file,
        recurrence=task.recurrence,
        recurrence_series_id=task.recurrence_series_id,
        recurrence_count=(task.recurrence_count or 1) + 1,
    )


def roll_forward(db: Session, task: Task) -> RollForwardResult:
    """Create (or find) the successor of a completed recurring task.

    Args:
        db: Database session
        task: The completed instance

    Returns:
        RollForwardResult describing what happened

    Raises:
        Exception: persistence errors propagate; the caller decides how to report them
    """
    if not task.is_recurring:
        return RollForwardResult(RollForwardStatus.NOT_RECURRING)
    if not task.recurrence_series_id:
        raise ValueError(f"Recurring task {task.id} has no series id")

    last_due = task.due_date or (task.completed_at or task.updated_at).date()
    occurrences = task.recurrence_count or 1
    next_due = next_occurrence(task.recurrence, last_due, occurrences)
    if next_due is None:
        logger.info(f"Series {task.recurrence_series_id} finished at occurrence {occurrences}")
        return RollForwardResult(RollForwardStatus.SERIES_FINISHED)

    repo = TaskRepository(db)
    existing = repo.get_by_series_occurrence(task.recurrence_series_id, occurrences + 1)
    if existing:
        logger.debug(f"Successor {existing.id} already exists for task {task.id}")
        return RollForwardResult(RollForwardStatus.EXISTING, existing, existing.due_date)

    try:
        successor = repo.create(build_successor(task, next_due))
    except IntegrityError:
        # Lost a race with a concurrent roll-forward; the winner's row is the successor.
        winner = repo.get_by_series_occurrence(task.recurrence_series_id, occurrences + 1)
        if winner is None:
            raise
        return RollForwardResult(RollForwardStatus.EXISTING, winner, winner.due_date)

    try:
        SubtaskRepository(db).copy_to(task.id, successor.id, successor.owner_id)
    except Exception as e:
        logger.error(f"Successor {successor.id} created without subtasks: {type(e).__name__}: {str(e)}")

    logger.info(
        f"Rolled task {task.id} forward to {successor.id} "
        f"(occurrence {successor.recurrence_count}, due {next_due.isoformat()})"
    )
    return RollForwardResult(RollForwardStatus.CREATED, successor, next_due)
