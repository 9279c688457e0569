"""Repository for Notification database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamtasks.database.models import NotificationDB, enum_to_value
from teamtasks.models.notification import Notification
from teamtasks.models.task_factory import new_id

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for Notification database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        emp_id: str,
        notification_type,
        title: str,
        task_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Notification]:
        """Create a notification for one recipient.

        Returns:
            Created notification, or None if the same (task, recipient, type, title)
            was already delivered
        """
        notification_db = NotificationDB(
            id=new_id(),
            emp_id=emp_id,
            task_id=task_id,
            type=enum_to_value(notification_type),
            title=title,
            description=description,
            read=False,
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(notification_db)
            self.db.commit()
            self.db.refresh(notification_db)
            logger.debug(f"Created {enum_to_value(notification_type)} notification for {emp_id} (task {task_id})")
            return notification_db.to_pydantic()
        except IntegrityError:
            self.db.rollback()
            logger.debug(f"Skipped duplicate {enum_to_value(notification_type)} notification for {emp_id} (task {task_id})")
            return None
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create notification for {emp_id}: {type(e).__name__}: {str(e)}")
            raise

    def list_for_employee(self, emp_id: str) -> List[Notification]:
        """Get an employee's notifications, newest first."""
        rows = self.db.query(NotificationDB).filter(
            NotificationDB.emp_id == emp_id,
        ).order_by(desc(NotificationDB.created_at)).all()
        return [row.to_pydantic() for row in rows]

    def unread_count(self, emp_id: str) -> int:
        return self.db.query(NotificationDB).filter(
            NotificationDB.emp_id == emp_id,
            NotificationDB.read.is_(False),
        ).count()

    def mark_read(self, emp_id: str, notification_id: str) -> Optional[Notification]:
        """Mark one of an employee's notifications read.

        Returns:
            The notification, or None if it does not exist or belongs to someone else
        """
        row = self.db.query(NotificationDB).filter(
            NotificationDB.id == notification_id,
            NotificationDB.emp_id == emp_id,
        ).first()
        if not row:
            return None
        if row.read:
            return row.to_pydantic()

        try:
            row.read = True
            row.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to mark notification {notification_id} read: {type(e).__name__}: {str(e)}")
            raise

    def mark_all_read(self, emp_id: str) -> int:
        """Mark every unread notification of an employee read; returns how many changed."""
        try:
            count = self.db.query(NotificationDB).filter(
                NotificationDB.emp_id == emp_id,
                NotificationDB.read.is_(False),
            ).update({NotificationDB.read: True, NotificationDB.read_at: datetime.utcnow()},
                     synchronize_session=False)
            self.db.commit()
            logger.debug(f"Marked {count} notifications read for {emp_id}")
            return count
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to mark notifications read for {emp_id}: {type(e).__name__}: {str(e)}")
            raise
