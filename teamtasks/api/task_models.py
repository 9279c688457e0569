"""Request/response models for task, subtask and notification endpoints.

Recurrence travels flat on the wire (recurrence_pattern, recurrence_interval, ...);
inside the engine it is a RecurrenceRule.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from teamtasks.errors import ValidationError
from teamtasks.models.audit_event import AuditEvent
from teamtasks.models.drafts import SubtaskDraft, TaskDraft
from teamtasks.models.notification import Notification
from teamtasks.models.subtask import Subtask
from teamtasks.models.task import Task
from teamtasks.recurrence.roll_forward import RollForwardResult
from teamtasks.recurrence.rules import rule_from_fields


class TaskCreateRequest(BaseModel):
    """Request model for creating a task."""
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: Any = Field(None, description="Priority 1-10; anything else is dropped")
    status: Optional[str] = Field(None, description="Entry status (defaults from the creator's role)")
    owner_id: Optional[str] = Field(None, description="Assignee (requires assignment capability)")
    collaborators: List[str] = Field(default_factory=list, description="Collaborator employee ids")
    project_id: Optional[str] = Field(None, description="Project id")
    due_date: Optional[date] = Field(None, description="Due date (ISO date)")
    file: Optional[str] = Field(None, description="Attachment reference")

    is_recurring: bool = Field(False, description="Whether the recurrence fields apply")
    recurrence_pattern: Optional[str] = Field(None, description="daily, weekly, biweekly, monthly, quarterly, yearly")
    recurrence_interval: Optional[int] = Field(None, description="Every N periods (default 1)")
    recurrence_weekday: Optional[int] = Field(None, description="0 = Sunday ... 6 = Saturday (weekly/biweekly)")
    recurrence_end_date: Optional[date] = Field(None, description="Last date an occurrence may fall on")
    recurrence_max_count: Optional[int] = Field(None, description="Total occurrences in the series")

    def to_draft(self) -> TaskDraft:
        """Convert to an engine draft.

        Raises:
            ValidationError: if the recurrence fields do not form a valid rule
        """
        recurrence = None
        if self.is_recurring:
            if not self.recurrence_pattern:
                raise ValidationError("recurrence_pattern is required for recurring tasks", reason="invalid_recurrence")
            if self.due_date is None:
                raise ValidationError("Recurring tasks require a due date", reason="recurrence_requires_due_date")
            try:
                recurrence = rule_from_fields(
                    self.recurrence_pattern.strip().lower(),
                    due_date=self.due_date,
                    interval=self.recurrence_interval,
                    weekday=self.recurrence_weekday,
                    end_date=self.recurrence_end_date,
                    max_count=self.recurrence_max_count,
                )
            except ValueError as e:
                raise ValidationError(f"Invalid recurrence: {e}", reason="invalid_recurrence")

        return TaskDraft(
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=self.status,
            owner_id=self.owner_id,
            collaborator_ids=self.collaborators,
            project_id=self.project_id,
            due_date=self.due_date,
            file=self.file,
            recurrence=recurrence,
        )


class CollaboratorRequest(BaseModel):
    """Request model for sharing a task."""
    emp_id: str = Field(..., min_length=1, description="Employee to add as collaborator")


class AssignRequest(BaseModel):
    """Request model for assigning a task."""
    owner_id: str = Field(..., min_length=1, description="New owner")


class ProjectTasksRequest(BaseModel):
    """Request model for listing the tasks of several projects."""
    project_ids: List[str] = Field(..., min_length=1, description="Project ids")


class SubtaskCreateRequest(BaseModel):
    """Request model for creating a subtask."""
    parent_task_id: str = Field(..., description="Parent task id")
    title: str = Field(..., min_length=1, description="Subtask title")
    description: Optional[str] = None
    priority: Any = None
    status: Optional[str] = None
    due_date: Optional[date] = None
    collaborators: List[str] = Field(default_factory=list)

    def to_draft(self) -> SubtaskDraft:
        return SubtaskDraft(
            parent_task_id=self.parent_task_id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=self.status,
            due_date=self.due_date,
            collaborator_ids=self.collaborators,
        )


class TaskResponse(BaseModel):
    """A task as returned by the API."""
    id: str
    title: str
    description: Optional[str] = None
    priority: Optional[int] = None
    status: str
    owner_id: str
    collaborators: List[str] = Field(default_factory=list)
    project_id: Optional[str] = None
    due_date: Optional[date] = None
    file: Optional[str] = None

    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    recurrence_interval: Optional[int] = None
    recurrence_weekday: Optional[int] = None
    recurrence_end_date: Optional[date] = None
    recurrence_max_count: Optional[int] = None
    recurrence_count: Optional[int] = None
    recurrence_series_id: Optional[str] = None

    version: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        rule = task.recurrence
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=task.status,
            owner_id=task.owner_id,
            collaborators=list(task.collaborator_ids),
            project_id=task.project_id,
            due_date=task.due_date,
            file=task.file,
            is_recurring=rule is not None,
            recurrence_pattern=rule.pattern.value if rule else None,
            recurrence_interval=rule.interval if rule else None,
            recurrence_weekday=rule.weekday if rule else None,
            recurrence_end_date=rule.end_date if rule else None,
            recurrence_max_count=rule.max_count if rule else None,
            recurrence_count=task.recurrence_count,
            recurrence_series_id=task.recurrence_series_id,
            version=task.version,
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
        )


class SubtaskResponse(BaseModel):
    """A subtask as returned by the API."""
    id: str
    parent_task_id: str
    title: str
    description: Optional[str] = None
    priority: Optional[int] = None
    status: str
    due_date: Optional[date] = None
    owner_id: str
    collaborators: List[str] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_subtask(cls, subtask: Subtask) -> "SubtaskResponse":
        return cls(
            id=subtask.id,
            parent_task_id=subtask.parent_task_id,
            title=subtask.title,
            description=subtask.description,
            priority=subtask.priority,
            status=subtask.status,
            due_date=subtask.due_date,
            owner_id=subtask.owner_id,
            collaborators=list(subtask.collaborator_ids),
            version=subtask.version,
            created_at=subtask.created_at,
            updated_at=subtask.updated_at,
        )


class RollForwardResponse(BaseModel):
    status: str
    successor_id: Optional[str] = None
    next_due_date: Optional[date] = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: RollForwardResult) -> "RollForwardResponse":
        return cls(**result.to_dict())


class TaskEnvelope(BaseModel):
    task: TaskResponse


class TaskListResponse(BaseModel):
    tasks: List[TaskResponse]


class TaskUpdateResponse(BaseModel):
    """Response for task update; roll_forward is set when a recurring task completed."""
    task: TaskResponse
    roll_forward: Optional[RollForwardResponse] = None
    successor: Optional[TaskResponse] = None


class RollForwardEnvelope(BaseModel):
    roll_forward: RollForwardResponse
    successor: Optional[TaskResponse] = None


class PermissionsResponse(BaseModel):
    """Response for the capability query."""
    task_id: str
    allowed: bool
    rule: str
    mutable_fields: List[str]


class SubtaskEnvelope(BaseModel):
    subtask: SubtaskResponse


class SubtaskListResponse(BaseModel):
    subtasks: List[SubtaskResponse]


class NotificationListResponse(BaseModel):
    notifications: List[Notification]


class NotificationEnvelope(BaseModel):
    notification: Notification


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class AuditEventResponse(BaseModel):
    """One edit history entry."""
    id: int
    timestamp: datetime
    action: str
    task_id: str
    editor_id: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: AuditEvent) -> "AuditEventResponse":
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            action=event.event_type,
            task_id=event.task_id,
            editor_id=event.editor_id,
            details=event.details,
        )


class EditHistoryResponse(BaseModel):
    history: List[AuditEventResponse]


class DeadlineCheckResponse(BaseModel):
    """Events produced by a deadline check (delivery is deduplicated per recipient)."""
    checked_on: date
    upcoming: int
    missed: int
