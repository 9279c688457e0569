"""Notification models for teamtasks."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Notification event type enumeration."""
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    SHARED_TASK = "shared_task"
    TASK_ASSIGNED = "task_assigned"
    SUBTASK_CREATED = "subtask_created"
    SUBTASK_UPDATED = "subtask_updated"
    RECURRENCE_FAILED = "recurrence_failed"
    UPCOMING_DEADLINE = "upcoming_deadline"
    DEADLINE_MISSED = "deadline_missed"


class NotificationEvent(BaseModel):
    """Event emitted by the lifecycle engine for the notification dispatcher."""

    event_type: NotificationType = Field(..., description="Type of event")
    task_id: Optional[str] = Field(None, description="Task the event relates to")
    recipients: List[str] = Field(default_factory=list, description="Employee ids to notify")
    title: str = Field(..., description="Short notification title")
    description: Optional[str] = Field(None, description="Longer notification text")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class Notification(BaseModel):
    """A notification delivered to one employee."""

    id: str = Field(..., description="Unique notification identifier")
    emp_id: str = Field(..., description="Recipient employee id")
    task_id: Optional[str] = Field(None, description="Related task id")
    type: NotificationType = Field(..., description="Notification type")
    title: str = Field(..., description="Short notification title")
    description: Optional[str] = Field(None, description="Longer notification text")
    read: bool = Field(False, description="Whether the recipient has read it")
    read_at: Optional[datetime] = Field(None, description="When it was marked read")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
