"""Data models for teamtasks."""

from teamtasks.models.task import Task, TaskStatus
from teamtasks.models.subtask import Subtask
from teamtasks.models.recurrence import (
    EndAfterCount,
    EndByDate,
    NoEnd,
    RecurrencePattern,
    RecurrenceRule,
)
from teamtasks.models.actor import Actor, Capability, Role
from teamtasks.models.employee import Employee
from teamtasks.models.project import Project
from teamtasks.models.notification import Notification, NotificationEvent, NotificationType

__all__ = [
    "Task",
    "TaskStatus",
    "Subtask",
    "EndAfterCount",
    "EndByDate",
    "NoEnd",
    "RecurrencePattern",
    "RecurrenceRule",
    "Actor",
    "Capability",
    "Role",
    "Employee",
    "Project",
    "Notification",
    "NotificationEvent",
    "NotificationType",
]
