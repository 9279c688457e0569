"""Task creation factory for teamtasks.

This module centralizes input normalization and task construction so the lifecycle
service, roll-forward and tests build tasks the same way.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from teamtasks.models.constants import PRIORITY_MAX, PRIORITY_MIN
from teamtasks.models.recurrence import RecurrenceRule
from teamtasks.models.subtask import Subtask
from teamtasks.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


def normalize_priority(value: Any) -> Optional[int]:
    """Normalize a client-supplied priority.

    Integers (or integer strings, or integral floats) within [1, 10] are kept;
    anything else becomes None rather than an error.

    Args:
        value: Raw priority from the request

    Returns:
        Priority as int, or None if absent or invalid
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            logger.warning(f"Dropping non-integral priority {value!r}")
            return None
        parsed = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text.lstrip("+-").isdecimal():
            if text:
                logger.warning(f"Dropping non-numeric priority {value!r}")
            return None
        parsed = int(text)
    else:
        return None

    if PRIORITY_MIN <= parsed <= PRIORITY_MAX:
        return parsed
    logger.warning(f"Dropping out-of-range priority {parsed}")
    return None


def normalize_collaborators(collaborator_ids: Optional[Iterable[Any]], owner_id: str) -> List[str]:
    """Deduplicate collaborator ids (preserving order) and drop the owner."""
    if not collaborator_ids:
        return []
    seen = set()
    out: List[str] = []
    for raw in collaborator_ids:
        if raw is None:
            continue
        emp_id = str(raw).strip()
        if not emp_id or emp_id == owner_id or emp_id in seen:
            continue
        seen.add(emp_id)
        out.append(emp_id)
    return out


def new_id() -> str:
    return str(uuid.uuid4())


def create_task_base(
    owner_id: str,
    title: str,
    description: Optional[str] = None,
    priority: Any = None,
    status: TaskStatus = TaskStatus.ONGOING,
    collaborator_ids: Optional[Iterable[Any]] = None,
    project_id: Optional[str] = None,
    due_date: Optional[date] = None,
    file: Optional[str] = None,
    recurrence: Optional[RecurrenceRule] = None,
    recurrence_series_id: Optional[str] = None,
    recurrence_count: Optional[int] = None,
) -> Task:
    """Create a task with defaults applied.

    Priority is normalized, collaborators are deduplicated with the owner removed,
    and a recurring task without an explicit series id starts a new series at
    occurrence 1.

    Args:
        owner_id: Employee id of the owner (required)
        title: Task title (required)
        description: Task description
        priority: Raw priority (normalized, invalid values become None)
        status: Entry status
        collaborator_ids: Raw collaborator ids
        project_id: Owning project
        due_date: Due date
        file: Attachment reference
        recurrence: Recurrence rule
        recurrence_series_id: Series id for successors (allocated if None and recurring)
        recurrence_count: Occurrence number (1 if None and recurring)

    Returns:
        Task object with defaults applied
    """
    now = datetime.utcnow()

    if recurrence is not None:
        recurrence_series_id = recurrence_series_id or new_id()
        recurrence_count = recurrence_count or 1
    else:
        recurrence_series_id = None
        recurrence_count = None

    return Task(
        id=new_id(),
        title=title.strip(),
        description=description or None,
        priority=normalize_priority(priority),
        status=status,
        owner_id=owner_id,
        collaborator_ids=normalize_collaborators(collaborator_ids, owner_id),
        project_id=project_id,
        due_date=due_date,
        file=file,
        recurrence=recurrence,
        recurrence_series_id=recurrence_series_id,
        recurrence_count=recurrence_count,
        version=1,
        created_at=now,
        updated_at=now,
        completed_at=now if status == TaskStatus.COMPLETED else None,
    )


def create_subtask_base(
    parent: Task,
    title: str,
    description: Optional[str] = None,
    priority: Any = None,
    status: TaskStatus = TaskStatus.ONGOING,
    due_date: Optional[date] = None,
    collaborator_ids: Optional[Iterable[Any]] = None,
) -> Subtask:
    """Create a subtask under a parent task; the owner is inherited from the parent."""
    now = datetime.utcnow()
    return Subtask(
        id=new_id(),
        parent_task_id=parent.id,
        title=title.strip(),
        description=description or None,
        priority=normalize_priority(priority),
        status=status,
        due_date=due_date,
        owner_id=parent.owner_id,
        collaborator_ids=normalize_collaborators(collaborator_ids, parent.owner_id),
        created_at=now,
        updated_at=now,
    )
