"""Subtask data model for teamtasks."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from teamtasks.models.task import TaskStatus


class Subtask(BaseModel):
    """A unit of work under a parent task.

    Status is independent of the parent's; authority comes from the parent owner.
    """

    id: str = Field(..., description="Unique subtask identifier (UUID v4)")
    parent_task_id: str = Field(..., description="Parent task id (immutable)")
    title: str = Field(..., description="Subtask title")
    description: Optional[str] = Field(None, description="Subtask description")
    priority: Optional[int] = Field(None, ge=1, le=10, description="Priority 1 to 10")
    status: TaskStatus = Field(TaskStatus.ONGOING, description="Subtask status (never unassigned)")
    due_date: Optional[date] = Field(None, description="Due date (date-only)")
    owner_id: str = Field(..., description="Inherited from the parent task owner")
    collaborator_ids: List[str] = Field(default_factory=list, description="Extra status-only collaborators")
    version: int = Field(1, ge=1, description="Row version for optimistic concurrency")
    created_at: datetime = Field(..., description="Subtask creation timestamp")
    updated_at: datetime = Field(..., description="Subtask last update timestamp")
    deleted_at: Optional[datetime] = Field(None, description="Soft-delete timestamp (null if active)")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
