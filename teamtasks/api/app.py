"""FastAPI web application for teamtasks."""

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from teamtasks.api.task_models import (
    AssignRequest,
    AuditEventResponse,
    CollaboratorRequest,
    DeadlineCheckResponse,
    EditHistoryResponse,
    MarkAllReadResponse,
    NotificationEnvelope,
    NotificationListResponse,
    PermissionsResponse,
    ProjectTasksRequest,
    RollForwardEnvelope,
    RollForwardResponse,
    SubtaskCreateRequest,
    SubtaskEnvelope,
    SubtaskListResponse,
    SubtaskResponse,
    TaskCreateRequest,
    TaskEnvelope,
    TaskListResponse,
    TaskResponse,
    TaskUpdateResponse,
    UnreadCountResponse,
)
from teamtasks.auth.dependencies import get_current_actor
from teamtasks.database.database import get_db
from teamtasks.database.notification_repository import NotificationRepository
from teamtasks.engine.lifecycle import TaskLifecycleService
from teamtasks.errors import TaskEngineError
from teamtasks.models.actor import Actor
from teamtasks.models.drafts import SubtaskPatch, TaskPatch
from teamtasks.models.notification import NotificationType
from teamtasks.recurrence.roll_forward import RollForwardStatus

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="teamtasks API",
    description="Task and subtask lifecycle engine for a role-based task tracker",
    version="0.1.0",
)


@app.exception_handler(TaskEngineError)
async def task_engine_error_handler(request: Request, exc: TaskEngineError):
    """Render engine errors as {"error", "reason"} with their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_lifecycle_service(db: Session = Depends(get_db)) -> TaskLifecycleService:
    """Build the lifecycle service for one request."""
    return TaskLifecycleService(db)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------

@app.post("/tasks", response_model=TaskEnvelope, status_code=201)
def create_task(
    request: TaskCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Create a task (self-assigned, or assigned to someone else by a role that may assign)."""
    task = service.create_task(actor, request.to_draft())
    return TaskEnvelope(task=TaskResponse.from_task(task))


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """List tasks the caller owns or collaborates on."""
    tasks = service.list_tasks(actor)
    return TaskListResponse(tasks=[TaskResponse.from_task(t) for t in tasks])


@app.get("/tasks/project/{project_id}", response_model=TaskListResponse)
def list_project_tasks(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """List every task of a project (organisation oversight or managers of the project)."""
    tasks = service.list_project_tasks(actor, [project_id])
    return TaskListResponse(tasks=[TaskResponse.from_task(t) for t in tasks])


@app.post("/tasks/bulk", response_model=TaskListResponse)
def list_tasks_for_projects(
    request: ProjectTasksRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """List the tasks of several projects; the caller must be allowed on each of them."""
    tasks = service.list_project_tasks(actor, request.project_ids)
    return TaskListResponse(tasks=[TaskResponse.from_task(t) for t in tasks])


@app.get("/tasks/task/{task_id}/subtasks", response_model=SubtaskListResponse)
def list_subtasks(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """List the live subtasks of a task."""
    subtasks = service.list_subtasks(actor, task_id)
    return SubtaskListResponse(subtasks=[SubtaskResponse.from_subtask(s) for s in subtasks])


@app.get("/tasks/{task_id}", response_model=TaskEnvelope)
def get_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    task = service.get_task(actor, task_id)
    return TaskEnvelope(task=TaskResponse.from_task(task))


@app.put("/tasks/{task_id}", response_model=TaskUpdateResponse)
def update_task(
    task_id: str,
    patch: TaskPatch,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Partially update a task.

    Completing a recurring task also creates its next occurrence; `roll_forward`
    reports how that went.
    """
    result = service.update_task(actor, task_id, patch)
    return TaskUpdateResponse(
        task=TaskResponse.from_task(result.task),
        roll_forward=RollForwardResponse.from_result(result.roll_forward) if result.roll_forward else None,
        successor=TaskResponse.from_task(result.successor) if result.successor else None,
    )


@app.get("/tasks/{task_id}/permissions", response_model=PermissionsResponse)
def task_permissions(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Which fields the caller may change on a task."""
    decision = service.capabilities(actor, task_id)
    return PermissionsResponse(
        task_id=task_id,
        allowed=decision.allowed,
        rule=decision.rule.value,
        mutable_fields=sorted(decision.mutable_fields),
    )


@app.post("/tasks/{task_id}/collaborators", response_model=TaskEnvelope)
def add_collaborator(
    task_id: str,
    request: CollaboratorRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    task = service.add_collaborator(actor, task_id, request.emp_id)
    return TaskEnvelope(task=TaskResponse.from_task(task))


@app.post("/tasks/{task_id}/assign", response_model=TaskEnvelope)
def assign_task(
    task_id: str,
    request: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    task = service.assign_task(actor, task_id, request.owner_id)
    return TaskEnvelope(task=TaskResponse.from_task(task))


@app.post("/tasks/{task_id}/roll-forward", response_model=RollForwardEnvelope)
def retry_roll_forward(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Retry creating the next occurrence of a completed recurring task."""
    result = service.roll_forward(actor, task_id)
    if result.status == RollForwardStatus.FAILED:
        raise HTTPException(status_code=503, detail=f"Roll-forward failed: {result.error}")
    return RollForwardEnvelope(
        roll_forward=RollForwardResponse.from_result(result),
        successor=TaskResponse.from_task(result.successor) if result.successor else None,
    )


@app.get("/tasks/{task_id}/history", response_model=EditHistoryResponse)
def edit_history(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Edit history of a task and its subtasks, oldest first."""
    events = service.edit_history(actor, task_id)
    return EditHistoryResponse(history=[AuditEventResponse.from_event(e) for e in events])


@app.get("/tasks/{task_id}/recurrence-history", response_model=TaskListResponse)
def recurrence_history(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """All instances of the task's recurring series, oldest first."""
    tasks = service.recurrence_history(actor, task_id)
    return TaskListResponse(tasks=[TaskResponse.from_task(t) for t in tasks])


# ----------------------------------------------------------------------
# Subtasks
# ----------------------------------------------------------------------

@app.post("/subtasks", response_model=SubtaskEnvelope, status_code=201)
def create_subtask(
    request: SubtaskCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    subtask = service.create_subtask(actor, request.to_draft())
    return SubtaskEnvelope(subtask=SubtaskResponse.from_subtask(subtask))


@app.put("/subtasks/{subtask_id}", response_model=SubtaskEnvelope)
def update_subtask(
    subtask_id: str,
    patch: SubtaskPatch,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    subtask = service.update_subtask(actor, subtask_id, patch)
    return SubtaskEnvelope(subtask=SubtaskResponse.from_subtask(subtask))


@app.delete("/subtasks/{subtask_id}")
def delete_subtask(
    subtask_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Soft-delete a subtask."""
    service.delete_subtask(actor, subtask_id)
    return {"success": True, "id": subtask_id}


# ----------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------

@app.get("/notification", response_model=NotificationListResponse)
def list_notifications(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """The caller's notifications, newest first."""
    return NotificationListResponse(notifications=NotificationRepository(db).list_for_employee(actor.emp_id))


@app.get("/notification/unread-count", response_model=UnreadCountResponse)
def unread_count(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(count=NotificationRepository(db).unread_count(actor.emp_id))


@app.post("/notification/check-deadlines", response_model=DeadlineCheckResponse)
def check_deadlines(
    actor: Actor = Depends(get_current_actor),
    service: TaskLifecycleService = Depends(get_lifecycle_service),
):
    """Send upcoming and missed deadline reminders; repeated runs deliver nothing new."""
    today = service.clock().date()
    events = service.deadline_events(today)
    logger.info(f"{actor.emp_id} ran the deadline check for {today.isoformat()}")
    return DeadlineCheckResponse(
        checked_on=today,
        upcoming=sum(1 for e in events if e.event_type == NotificationType.UPCOMING_DEADLINE.value),
        missed=sum(1 for e in events if e.event_type == NotificationType.DEADLINE_MISSED.value),
    )


@app.patch("/notification/mark-all-read", response_model=MarkAllReadResponse)
def mark_all_read(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return MarkAllReadResponse(updated=NotificationRepository(db).mark_all_read(actor.emp_id))


@app.patch("/notification/{notification_id}/read", response_model=NotificationEnvelope)
def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Mark one of the caller's notifications read."""
    notification = NotificationRepository(db).mark_read(actor.emp_id, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationEnvelope(notification=notification)
