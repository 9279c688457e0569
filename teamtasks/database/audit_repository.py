"""Repository for task edit history."""

import logging
from typing import List

from sqlalchemy.orm import Session

from teamtasks.database.models import TaskEditHistoryDB
from teamtasks.models.audit_event import AuditEvent

logger = logging.getLogger(__name__)


class AuditRepository:
    """Repository for AuditEvent database operations."""

    def __init__(self, db: Session):
        self.db = db

    def record(self, event: AuditEvent) -> AuditEvent:
        """Append an edit history entry."""
        try:
            row = TaskEditHistoryDB.from_pydantic(event)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Recorded {row.action} by {event.editor_id} on task {event.task_id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record history for task {event.task_id}: {type(e).__name__}: {str(e)}")
            raise

    def list_for_task(self, task_id: str) -> List[AuditEvent]:
        """Edit history of a task, oldest first."""
        rows = self.db.query(TaskEditHistoryDB).filter(
            TaskEditHistoryDB.task_id == task_id,
        ).order_by(TaskEditHistoryDB.id).all()
        return [row.to_pydantic() for row in rows]
