"""Notification dispatch for lifecycle events.

The engine emits a NotificationEvent per change; a dispatcher fans it out to the
recipients. Delivery problems are logged and never fail the request that caused
the event.
"""

import logging
from typing import List, Protocol

from sqlalchemy.orm import Session

from teamtasks.database.notification_repository import NotificationRepository
from teamtasks.models.notification import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def dispatch(self, event: NotificationEvent) -> None:
        ...


class DatabaseNotificationDispatcher:
    """Writes one notification row per recipient."""

    def __init__(self, db: Session):
        self.repo = NotificationRepository(db)

    def dispatch(self, event: NotificationEvent) -> None:
        for emp_id in dict.fromkeys(event.recipients):
            try:
                self.repo.create(
                    emp_id=emp_id,
                    notification_type=event.event_type,
                    title=event.title,
                    task_id=event.task_id,
                    description=event.description,
                )
            except Exception as e:
                logger.error(
                    f"Failed to deliver {event.event_type} notification to {emp_id} "
                    f"(task {event.task_id}): {type(e).__name__}: {str(e)}"
                )


class RecordingDispatcher:
    """Keeps events in memory; for tests and embedding."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def dispatch(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[NotificationEvent]:
        value = getattr(event_type, "value", event_type)
        return [e for e in self.events if e.event_type == value]
