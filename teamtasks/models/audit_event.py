"""AuditEvent data model for teamtasks."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Edit history action enumeration."""
    TASK_CREATED = "task_create"
    TASK_UPDATED = "task_update"
    COLLABORATOR_ADDED = "collaborator_add"
    TASK_ASSIGNED = "task_assign"
    ROLLED_FORWARD = "roll_forward"
    SUBTASK_CREATED = "subtask_create"
    SUBTASK_UPDATED = "subtask_update"
    SUBTASK_DELETED = "subtask_delete"


class AuditEvent(BaseModel):
    """One entry in a task's edit history: who did what, with the changed values."""

    id: Optional[int] = Field(None, description="History entry id (assigned on insert)")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Event timestamp")
    event_type: AuditEventType = Field(..., description="Type of edit")
    task_id: str = Field(..., description="Task the edit belongs to (the parent for subtask edits)")
    editor_id: str = Field(..., description="Employee id of the actor")
    details: Dict[str, Any] = Field(default_factory=dict, description="Changed values and related ids")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
