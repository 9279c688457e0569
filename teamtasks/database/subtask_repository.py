"""Repository for Subtask database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from teamtasks.database.models import SubtaskDB, TaskDB, enum_to_value
from teamtasks.models.subtask import Subtask
from teamtasks.models.task import TaskStatus
from teamtasks.models.task_factory import new_id

logger = logging.getLogger(__name__)


class SubtaskRepository:
    """Repository for Subtask database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(SubtaskDB).filter(SubtaskDB.deleted_at.is_(None))

    def create(self, subtask: Subtask) -> Subtask:
        """Create a new subtask."""
        try:
            subtask_db = SubtaskDB.from_pydantic(subtask)
            self.db.add(subtask_db)
            self.db.commit()
            self.db.refresh(subtask_db)
            logger.debug(f"Created subtask {subtask.id} under task {subtask.parent_task_id}")
            return subtask_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create subtask {subtask.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, subtask_id: str) -> Optional[Subtask]:
        """Get a live (not soft-deleted) subtask by ID."""
        subtask_db = self._active().filter(SubtaskDB.id == subtask_id).first()
        return subtask_db.to_pydantic() if subtask_db else None

    def list_for_task(self, task_id: str) -> List[Subtask]:
        """Get live subtasks of a task, oldest first."""
        subtasks_db = self._active().filter(
            SubtaskDB.parent_task_id == task_id,
        ).order_by(SubtaskDB.created_at).all()
        return [s.to_pydantic() for s in subtasks_db]

    def update(self, subtask: Subtask, expected_version: int, parent_version: int) -> Optional[Subtask]:
        """Write a subtask if neither it nor its parent task changed since they were read.

        parent_task_id and owner_id are not writable here. The subtask version is
        bumped by one on success.

        Returns:
            Updated subtask, or None if the subtask or its parent moved on (or the
            subtask is gone)
        """
        unchanged_parent = select(TaskDB.id).where(
            TaskDB.id == subtask.parent_task_id,
            TaskDB.version == parent_version,
        )
        values = {
            SubtaskDB.title: subtask.title,
            SubtaskDB.description: subtask.description,
            SubtaskDB.priority: subtask.priority,
            SubtaskDB.status: enum_to_value(subtask.status),
            SubtaskDB.due_date: subtask.due_date,
            SubtaskDB.collaborator_ids: list(subtask.collaborator_ids),
            SubtaskDB.updated_at: subtask.updated_at,
            SubtaskDB.version: expected_version + 1,
        }
        try:
            matched = self._active().filter(
                SubtaskDB.id == subtask.id,
                SubtaskDB.version == expected_version,
                SubtaskDB.parent_task_id.in_(unchanged_parent),
            ).update(values, synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update subtask {subtask.id}: {type(e).__name__}: {str(e)}")
            raise

        if not matched:
            logger.debug(
                f"Conflict updating subtask {subtask.id} "
                f"(expected v{expected_version}, parent v{parent_version})"
            )
            return None

        self.db.expire_all()
        logger.debug(f"Updated subtask {subtask.id} to v{expected_version + 1}: {subtask.title[:50]}")
        return self.get(subtask.id)

    def soft_delete(self, subtask_id: str) -> bool:
        """Soft-delete a subtask by ID."""
        subtask_db = self._active().filter(SubtaskDB.id == subtask_id).first()
        if not subtask_db:
            return False

        try:
            subtask_db.deleted_at = datetime.utcnow()
            self.db.commit()
            logger.debug(f"Soft-deleted subtask {subtask_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to soft-delete subtask {subtask_id}: {type(e).__name__}: {str(e)}")
            raise

    def copy_to(self, source_task_id: str, target_task_id: str, owner_id: str) -> List[Subtask]:
        """Copy the live subtasks of one task onto another with status reset to ongoing.

        Used when a recurring task rolls forward to its successor.
        """
        now = datetime.utcnow()
        copies = []
        for source in self._active().filter(SubtaskDB.parent_task_id == source_task_id).order_by(SubtaskDB.created_at).all():
            copies.append(SubtaskDB(
                id=new_id(),
                parent_task_id=target_task_id,
                title=source.title,
                description=source.description,
                priority=source.priority,
                status=TaskStatus.ONGOING.value,
                due_date=source.due_date,
                owner_id=owner_id,
                collaborator_ids=list(source.collaborator_ids or []),
                version=1,
                created_at=now,
                updated_at=now,
            ))

        if not copies:
            return []

        try:
            self.db.add_all(copies)
            self.db.commit()
            logger.debug(f"Copied {len(copies)} subtasks from task {source_task_id} to {target_task_id}")
            return [c.to_pydantic() for c in copies]
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to copy subtasks from task {source_task_id} to {target_task_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise

    def set_owner_for_task(self, task_id: str, owner_id: str) -> int:
        """Propagate a parent's new owner to all of its subtasks."""
        try:
            count = self.db.query(SubtaskDB).filter(
                SubtaskDB.parent_task_id == task_id,
            ).update({
                SubtaskDB.owner_id: owner_id,
                SubtaskDB.updated_at: datetime.utcnow(),
                SubtaskDB.version: SubtaskDB.version + 1,
            }, synchronize_session=False)
            self.db.commit()
            logger.debug(f"Set owner {owner_id} on {count} subtasks of task {task_id}")
            return count
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to set subtask owner for task {task_id}: {type(e).__name__}: {str(e)}")
            raise
