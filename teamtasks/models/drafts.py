"""Input models for lifecycle operations.

Drafts describe something to create; patches describe a partial update. A patch's
requested field set is exactly the fields the caller supplied (explicit nulls
included), which is what the permission evaluator checks.
"""

from datetime import date
from typing import Any, List, Optional, Set

from pydantic import BaseModel, Field

from teamtasks.models.recurrence import RecurrenceRule


class TaskDraft(BaseModel):
    """A task to be created."""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Any = Field(None, description="Raw priority; normalized on create")
    status: Optional[str] = Field(None, description="Requested entry status")
    owner_id: Optional[str] = Field(None, description="Assignee; the creator if absent")
    collaborator_ids: List[str] = Field(default_factory=list)
    project_id: Optional[str] = None
    due_date: Optional[date] = None
    file: Optional[str] = None
    recurrence: Optional[RecurrenceRule] = None


class TaskPatch(BaseModel):
    """Partial task update; only supplied fields are applied.

    Unknown keys are kept so authorization can name them in its denial.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Any = None
    status: Optional[str] = None
    due_date: Optional[date] = None
    collaborators: Optional[List[str]] = None
    file: Optional[str] = None

    class Config:
        """Pydantic configuration."""
        extra = "allow"

    def requested_fields(self) -> Set[str]:
        return set(self.model_fields_set) | set(self.model_extra or {})


class SubtaskDraft(BaseModel):
    """A subtask to be created under an existing task."""

    parent_task_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Any = None
    status: Optional[str] = None
    due_date: Optional[date] = None
    collaborator_ids: List[str] = Field(default_factory=list)


class SubtaskPatch(BaseModel):
    """Partial subtask update."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Any = None
    status: Optional[str] = None
    due_date: Optional[date] = None
    collaborators: Optional[List[str]] = None

    class Config:
        """Pydantic configuration."""
        extra = "allow"

    def requested_fields(self) -> Set[str]:
        return set(self.model_fields_set) | set(self.model_extra or {})
