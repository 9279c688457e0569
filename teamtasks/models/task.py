"""Task data model for teamtasks."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from teamtasks.models.recurrence import RecurrenceRule


class TaskStatus(str, Enum):
    """Task status enumeration (shared by tasks and subtasks)."""
    UNASSIGNED = "unassigned"
    ONGOING = "ongoing"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"


class Task(BaseModel):
    """Canonical Task model."""

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: Optional[int] = Field(None, ge=1, le=10, description="Priority 1 (lowest) to 10 (highest)")
    status: TaskStatus = Field(TaskStatus.ONGOING, description="Task status")
    owner_id: str = Field(..., description="Employee id of the owner (sole full-control actor)")
    collaborator_ids: List[str] = Field(default_factory=list, description="Employees with status-only access")
    project_id: Optional[str] = Field(None, description="Project this task belongs to")
    due_date: Optional[date] = Field(None, description="Due date (date-only)")
    file: Optional[str] = Field(None, description="Opaque attachment reference")

    # Recurrence (optional)
    recurrence: Optional[RecurrenceRule] = Field(None, description="Recurrence rule, copied onto every successor")
    recurrence_series_id: Optional[str] = Field(None, description="Shared by every instance of a recurring series")
    recurrence_count: Optional[int] = Field(
        None, ge=1, description="Occurrences produced so far in the series (1 for the first instance)"
    )

    version: int = Field(1, ge=1, description="Row version for optimistic concurrency")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    completed_at: Optional[datetime] = Field(None, description="When the task entered completed")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @model_validator(mode="after")
    def _check_collaborators(self) -> "Task":
        if self.owner_id in self.collaborator_ids:
            raise ValueError("collaborator_ids must not contain owner_id")
        if len(set(self.collaborator_ids)) != len(self.collaborator_ids):
            raise ValueError("collaborator_ids must be unique")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED
