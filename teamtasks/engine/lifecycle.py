"""Task lifecycle orchestration.

TaskLifecycleService is the only writer of tasks and subtasks. Every mutation is
checked by the PermissionEvaluator first, status changes go through the
TaskStateMachine, and completing a recurring task rolls it forward to its next
occurrence once the completion is committed. Each successful mutation is appended
to the task's edit history.

Task and subtask writes are conditional on the versions that were read. When
another writer got there first, the row is re-read and permissions are evaluated
again against the fresh state before retrying, so an actor who lost access in the
meantime is denied.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from teamtasks.database.audit_repository import AuditRepository
from teamtasks.database.employee_repository import EmployeeRepository
from teamtasks.database.project_repository import ProjectRepository
from teamtasks.database.repository import TaskRepository
from teamtasks.database.subtask_repository import SubtaskRepository
from teamtasks.engine.permissions import AccessRule, PermissionDecision, PermissionEvaluator
from teamtasks.engine.state_machine import TaskStateMachine, Transition
from teamtasks.errors import AuthorizationError, NotFoundError, StateError, ValidationError
from teamtasks.models.actor import Actor, Capability
from teamtasks.models.audit_event import AuditEvent, AuditEventType
from teamtasks.models.constants import (
    DEFAULT_UPDATE_CONFLICT_RETRIES,
    FIELD_COLLABORATORS,
    FIELD_DESCRIPTION,
    FIELD_DUE_DATE,
    FIELD_FILE,
    FIELD_PRIORITY,
    FIELD_STATUS,
    FIELD_TITLE,
    SUBTASK_FIELDS,
)
from teamtasks.models.drafts import SubtaskDraft, SubtaskPatch, TaskDraft, TaskPatch
from teamtasks.models.notification import NotificationEvent, NotificationType
from teamtasks.models.recurrence import MONTH_BASED_PATTERNS
from teamtasks.models.subtask import Subtask
from teamtasks.models.task import Task, TaskStatus
from teamtasks.models.task_factory import (
    create_subtask_base,
    create_task_base,
    normalize_collaborators,
    normalize_priority,
)
from teamtasks.notifications.deadlines import collect_deadline_events, reminder_days_from_env
from teamtasks.notifications.dispatcher import DatabaseNotificationDispatcher, NotificationDispatcher
from teamtasks.recurrence.roll_forward import RollForwardResult, RollForwardStatus
from teamtasks.recurrence.roll_forward import roll_forward as run_roll_forward

load_dotenv()

logger = logging.getLogger(__name__)

UPDATE_CONFLICT_RETRIES = int(os.getenv("UPDATE_CONFLICT_RETRIES", str(DEFAULT_UPDATE_CONFLICT_RETRIES)))


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of update_task."""

    task: Task
    roll_forward: Optional[RollForwardResult] = None

    @property
    def successor(self) -> Optional[Task]:
        return self.roll_forward.successor if self.roll_forward else None


class TaskLifecycleService:
    """Creates and mutates tasks and subtasks on behalf of an actor.

    Args:
        db: Database session (one per request)
        dispatcher: Receives notification events (database-backed by default)
        evaluator: Permission evaluator (project lookups go to the database by default)
        state_machine: Status transition rules
        clock: Returns the current UTC time
        conflict_retries: Attempts before a version conflict is reported as StateError
        reminder_days: Days before the due date that upcoming-deadline reminders go out
    """

    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        evaluator: Optional[PermissionEvaluator] = None,
        state_machine: Optional[TaskStateMachine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        conflict_retries: Optional[int] = None,
        reminder_days: Optional[Iterable[int]] = None,
    ):
        self.db = db
        self.tasks = TaskRepository(db)
        self.subtasks = SubtaskRepository(db)
        self.employees = EmployeeRepository(db)
        self.projects = ProjectRepository(db)
        self.history = AuditRepository(db)
        self.dispatcher = dispatcher or DatabaseNotificationDispatcher(db)
        self.evaluator = evaluator or PermissionEvaluator(self.projects.get)
        self.state_machine = state_machine or TaskStateMachine()
        self.clock = clock or datetime.utcnow
        self.conflict_retries = max(conflict_retries if conflict_retries is not None else UPDATE_CONFLICT_RETRIES, 1)
        self.reminder_days = tuple(reminder_days) if reminder_days is not None else reminder_days_from_env()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_task(self, actor: Actor, task_id: str) -> Task:
        task = self._load_task(task_id)
        self.evaluator.evaluate(actor, task).require()
        return task

    def list_tasks(self, actor: Actor) -> List[Task]:
        """Tasks the actor owns or collaborates on."""
        return self.tasks.list_for_employee(actor.emp_id)

    def recurrence_history(self, actor: Actor, task_id: str) -> List[Task]:
        """All instances of the task's series, oldest occurrence first."""
        task = self.get_task(actor, task_id)
        if not task.recurrence_series_id:
            return [task]
        return self.tasks.list_series(task.recurrence_series_id)

    def capabilities(self, actor: Actor, task_id: str) -> PermissionDecision:
        """Which fields the actor may change on the task."""
        task = self._load_task(task_id)
        return self.evaluator.evaluate(actor, task).require()

    def list_subtasks(self, actor: Actor, task_id: str) -> List[Subtask]:
        parent = self.get_task(actor, task_id)
        return self.subtasks.list_for_task(parent.id)

    def edit_history(self, actor: Actor, task_id: str) -> List[AuditEvent]:
        """Who changed the task (and its subtasks) and how, oldest first."""
        task = self.get_task(actor, task_id)
        return self.history.list_for_task(task.id)

    def list_project_tasks(self, actor: Actor, project_ids: Iterable[str]) -> List[Task]:
        """Every task of the given projects; needs oversight or management of each project.

        Raises:
            ValidationError: no project ids given
            NotFoundError: unknown project
            AuthorizationError: actor does not manage one of the projects
        """
        ids = list(dict.fromkeys(p.strip() for p in project_ids if p and p.strip()))
        if not ids:
            raise ValidationError("At least one project id is required", reason="missing_project_ids")
        for project_id in ids:
            project = self.projects.get(project_id)
            if project is None:
                raise NotFoundError(f"Project {project_id} not found", reason="project_not_found")
            self.evaluator.evaluate_project(actor, project).require()
        return self.tasks.list_for_projects(ids)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, actor: Actor, draft: TaskDraft) -> Task:
        """Create a task owned by the actor or, with assignment capability, by someone else.

        Raises:
            AuthorizationError: assigning to another employee without assignment capability
            NotFoundError: unknown owner, collaborator or project
            ValidationError: invalid status or recurrence without a due date
            StateError: explicit unassigned status
        """
        can_assign = actor.can(Capability.ASSIGN_TASKS)
        requested_owner = (draft.owner_id or "").strip() or None

        if requested_owner is None or requested_owner == actor.emp_id:
            owner_id = actor.emp_id
        else:
            if not can_assign:
                raise AuthorizationError("Not authorized to assign tasks to other employees", reason="cannot_assign")
            self._require_employee(requested_owner)
            owner_id = requested_owner

        status = self.state_machine.initial_status(
            owner_assigned=requested_owner is not None,
            can_assign=can_assign,
            requested=draft.status,
        )

        collaborator_ids = normalize_collaborators(draft.collaborator_ids, owner_id)
        self._require_employees(collaborator_ids)

        if draft.project_id and self.projects.get(draft.project_id) is None:
            raise NotFoundError(f"Project {draft.project_id} not found", reason="project_not_found")

        recurrence = draft.recurrence
        if recurrence is not None:
            if draft.due_date is None:
                raise ValidationError("Recurring tasks require a due date", reason="recurrence_requires_due_date")
            if recurrence.pattern in MONTH_BASED_PATTERNS and recurrence.anchor_day is None:
                recurrence = recurrence.model_copy(update={"anchor_day": draft.due_date.day})

        task = create_task_base(
            owner_id=owner_id,
            title=draft.title,
            description=draft.description,
            priority=draft.priority,
            status=status,
            collaborator_ids=collaborator_ids,
            project_id=draft.project_id,
            due_date=draft.due_date,
            file=draft.file,
            recurrence=recurrence,
        )
        created = self.tasks.create(task)
        logger.info(f"{actor.emp_id} created task {created.id} owned by {owner_id} ({created.status})")
        self._record(
            actor,
            AuditEventType.TASK_CREATED,
            created.id,
            title=created.title,
            owner_id=created.owner_id,
            status=created.status,
            priority=created.priority,
            due_date=created.due_date,
            collaborator_ids=created.collaborator_ids,
        )

        self._notify(
            NotificationType.TASK_CREATED,
            created.id,
            created.collaborator_ids,
            title=f"New task: {created.title}",
            description=f"{actor.emp_id} added you to a task",
            exclude=actor.emp_id,
        )
        if owner_id != actor.emp_id:
            self._notify(
                NotificationType.TASK_ASSIGNED,
                created.id,
                [owner_id],
                title=f"Task assigned: {created.title}",
                description=f"{actor.emp_id} assigned you a task",
            )
        return created

    def update_task(self, actor: Actor, task_id: str, patch: TaskPatch) -> UpdateResult:
        """Apply a partial update.

        Completing a recurring task (or re-submitting completed on one) rolls it
        forward after the completion is committed. A roll-forward failure leaves the
        completion in place and is reported in the result.
        """
        requested = patch.requested_fields()

        def build(current: Task, decision: PermissionDecision):
            return self._apply_task_patch(current, patch, requested)

        before, saved, info = self._guarded_write(actor, task_id, requested, build)
        transition, changed = info if info else (None, set())
        if changed:
            self._record(actor, AuditEventType.TASK_UPDATED, saved.id, version=saved.version,
                         **{k: getattr(saved, k) for k in sorted(changed)})

        roll = None
        if saved.is_recurring and saved.is_completed and transition is not None and (
            transition.enters_completed or transition.is_completion_replay
        ):
            roll = self._roll_forward_safely(actor, saved)

        if changed:
            self._notify(
                NotificationType.TASK_UPDATED,
                saved.id,
                [saved.owner_id, *saved.collaborator_ids],
                title=f"Task updated: {saved.title} (v{saved.version})",
                description=f"{actor.emp_id} changed {', '.join(sorted(changed))}",
                exclude=actor.emp_id,
            )
            added = [c for c in saved.collaborator_ids if c not in before.collaborator_ids]
            self._notify(
                NotificationType.SHARED_TASK,
                saved.id,
                added,
                title=f"Task shared with you: {saved.title}",
                exclude=actor.emp_id,
            )
        return UpdateResult(saved, roll)

    def add_collaborator(self, actor: Actor, task_id: str, emp_id: str) -> Task:
        """Share a task with another employee (owner only)."""
        emp_id = (emp_id or "").strip()

        def build(current: Task, decision: PermissionDecision):
            if decision.rule != AccessRule.OWNER:
                raise AuthorizationError("Only the task owner may add collaborators", reason="owner_only")
            if emp_id == current.owner_id:
                raise ValidationError("The owner cannot be a collaborator", reason="owner_cannot_collaborate")
            if emp_id in current.collaborator_ids:
                return None
            self._require_employee(emp_id)
            candidate = current.model_copy(update={
                "collaborator_ids": [*current.collaborator_ids, emp_id],
                "updated_at": self.clock(),
            })
            return candidate, True

        if not emp_id:
            raise ValidationError("Collaborator id is required", reason="missing_collaborator")

        _, saved, info = self._guarded_write(actor, task_id, {FIELD_COLLABORATORS}, build)
        if info is None:
            logger.debug(f"{emp_id} already collaborates on task {task_id}")
            return saved

        self._record(actor, AuditEventType.COLLABORATOR_ADDED, saved.id, emp_id=emp_id, version=saved.version)
        self._notify(
            NotificationType.SHARED_TASK,
            saved.id,
            [emp_id],
            title=f"Task shared with you: {saved.title}",
            description=f"{actor.emp_id} shared a task with you",
        )
        return saved

    def assign_task(self, actor: Actor, task_id: str, owner_id: str) -> Task:
        """Hand a task to a new owner.

        The new owner leaves the collaborator set, an unassigned task becomes ongoing,
        and the task's subtasks follow the new owner.
        """
        owner_id = (owner_id or "").strip()
        if not actor.can(Capability.ASSIGN_TASKS):
            raise AuthorizationError("Not authorized to assign tasks", reason="cannot_assign")
        if not owner_id:
            raise ValidationError("Owner id is required", reason="missing_owner")

        def build(current: Task, decision: PermissionDecision):
            if not decision.has_full_access:
                raise AuthorizationError(decision.reason or "not authorized for this task")
            if current.owner_id == owner_id and current.status != TaskStatus.UNASSIGNED:
                return None
            self._require_employee(owner_id)
            status = TaskStatus.ONGOING.value if current.status == TaskStatus.UNASSIGNED else current.status
            candidate = current.model_copy(update={
                "owner_id": owner_id,
                "collaborator_ids": [c for c in current.collaborator_ids if c != owner_id],
                "status": status,
                "updated_at": self.clock(),
            })
            return candidate, True

        before, saved, info = self._guarded_write(actor, task_id, set(), build)
        if info is None:
            return saved

        if before.owner_id != saved.owner_id:
            self.subtasks.set_owner_for_task(saved.id, saved.owner_id)
        logger.info(f"{actor.emp_id} assigned task {saved.id} to {saved.owner_id}")
        self._record(
            actor,
            AuditEventType.TASK_ASSIGNED,
            saved.id,
            previous_owner_id=before.owner_id,
            owner_id=saved.owner_id,
            status=saved.status,
            version=saved.version,
        )
        self._notify(
            NotificationType.TASK_ASSIGNED,
            saved.id,
            [saved.owner_id],
            title=f"Task assigned: {saved.title}",
            description=f"{actor.emp_id} assigned you a task",
            exclude=actor.emp_id,
        )
        return saved

    def roll_forward(self, actor: Actor, task_id: str) -> RollForwardResult:
        """Re-run roll-forward for a completed recurring task; safe to repeat."""
        task = self._load_task(task_id)
        self.evaluator.evaluate(actor, task, {FIELD_STATUS}).require()
        if not task.is_recurring:
            return RollForwardResult(RollForwardStatus.NOT_RECURRING)
        if not task.is_completed:
            raise StateError("Only a completed task can roll forward", reason="task_not_completed")
        return self._roll_forward_safely(actor, task)

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    def create_subtask(self, actor: Actor, draft: SubtaskDraft) -> Subtask:
        parent = self.tasks.get(draft.parent_task_id)
        if parent is None:
            raise NotFoundError(f"Parent task {draft.parent_task_id} not found", reason="parent_not_found")
        self.evaluator.evaluate(actor, parent, SUBTASK_FIELDS).require()

        status = self.state_machine.subtask_initial_status(draft.status)
        collaborator_ids = normalize_collaborators(draft.collaborator_ids, parent.owner_id)
        self._require_employees(collaborator_ids)

        subtask = self.subtasks.create(create_subtask_base(
            parent,
            title=draft.title,
            description=draft.description,
            priority=draft.priority,
            status=status,
            due_date=draft.due_date,
            collaborator_ids=collaborator_ids,
        ))
        self._record(
            actor,
            AuditEventType.SUBTASK_CREATED,
            parent.id,
            subtask_id=subtask.id,
            title=subtask.title,
            priority=subtask.priority,
            status=subtask.status,
            due_date=subtask.due_date,
        )
        self._notify(
            NotificationType.SUBTASK_CREATED,
            parent.id,
            [parent.owner_id, *parent.collaborator_ids, *subtask.collaborator_ids],
            title=f"New subtask: {subtask.title}",
            description=f"{actor.emp_id} added a subtask to {parent.title}",
            exclude=actor.emp_id,
        )
        return subtask

    def update_subtask(self, actor: Actor, subtask_id: str, patch: SubtaskPatch) -> Subtask:
        """Apply a partial update to a subtask.

        Like task writes, the write is conditional on the subtask and its parent being
        unchanged since they were read; on a conflict both are re-read and the actor
        is authorized again.
        """
        requested = patch.requested_fields()

        for attempt in range(1, self.conflict_retries + 1):
            subtask, parent = self._load_subtask(subtask_id)
            self.evaluator.evaluate_subtask(actor, subtask, parent, requested).require()

            updates = self._common_updates(subtask, patch, requested, owner_id=subtask.owner_id)
            if FIELD_STATUS in requested:
                transition = self.state_machine.subtask_transition(subtask.status, patch.status)
                updates["status"] = transition.to_status.value

            changed = {k for k, v in updates.items() if getattr(subtask, k) != v}
            if not changed:
                return subtask

            candidate = subtask.model_copy(update={**updates, "updated_at": self.clock()})
            saved = self.subtasks.update(candidate, expected_version=subtask.version, parent_version=parent.version)
            if saved is not None:
                break
            logger.info(
                f"Subtask {subtask_id} or its parent changed underneath {actor.emp_id} "
                f"(attempt {attempt}), re-reading"
            )
        else:
            raise StateError(
                f"Subtask {subtask_id} was modified concurrently, please retry",
                reason="version_conflict",
            )

        self._record(actor, AuditEventType.SUBTASK_UPDATED, parent.id, subtask_id=saved.id,
                     **{k: getattr(saved, k) for k in sorted(changed)})
        self._notify(
            NotificationType.SUBTASK_UPDATED,
            parent.id,
            [saved.owner_id, *parent.collaborator_ids, *saved.collaborator_ids],
            title=f"Subtask updated: {saved.title} (v{saved.version})",
            description=f"{actor.emp_id} changed {', '.join(sorted(changed))}",
            exclude=actor.emp_id,
        )
        return saved

    def delete_subtask(self, actor: Actor, subtask_id: str) -> None:
        """Soft-delete a subtask; needs full authority on the parent."""
        subtask, parent = self._load_subtask(subtask_id)
        self.evaluator.evaluate(actor, parent, SUBTASK_FIELDS).require()
        self.subtasks.soft_delete(subtask.id)
        logger.info(f"{actor.emp_id} deleted subtask {subtask.id} of task {parent.id}")
        self._record(actor, AuditEventType.SUBTASK_DELETED, parent.id, subtask_id=subtask.id, title=subtask.title)

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------

    def deadline_events(self, today: Optional[date] = None) -> List[NotificationEvent]:
        """Dispatch upcoming and missed deadline reminders for open tasks.

        Safe to run repeatedly: reminder titles carry the due date and day count, so
        the notification store delivers each one once per recipient.
        """
        today = today or self.clock().date()
        events = collect_deadline_events(self.tasks, today, self.reminder_days)
        for event in events:
            self._dispatch(event)
        logger.info(f"Deadline check for {today.isoformat()}: {len(events)} events")
        return events

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", reason="task_not_found")
        return task

    def _load_subtask(self, subtask_id: str) -> Tuple[Subtask, Task]:
        subtask = self.subtasks.get(subtask_id)
        if subtask is None:
            raise NotFoundError(f"Subtask {subtask_id} not found", reason="subtask_not_found")
        parent = self.tasks.get(subtask.parent_task_id)
        if parent is None:
            raise NotFoundError(f"Parent task {subtask.parent_task_id} not found", reason="parent_not_found")
        return subtask, parent

    def _require_employee(self, emp_id: str) -> None:
        if not self.employees.exists(emp_id):
            raise NotFoundError(f"Employee {emp_id} not found", reason="employee_not_found")

    def _require_employees(self, emp_ids: Iterable[str]) -> None:
        for emp_id in emp_ids:
            self._require_employee(emp_id)

    def _guarded_write(
        self,
        actor: Actor,
        task_id: str,
        requested: Set[str],
        build: Callable[[Task, PermissionDecision], Optional[Tuple[Task, Any]]],
    ) -> Tuple[Task, Task, Any]:
        """Read, authorize, build and conditionally write a task.

        build returns (candidate, info), or None for a no-op. A None candidate with
        info means nothing to write but the caller still gets info back.

        Returns:
            (task as read, task as stored, info); info is None for a no-op
        """
        for attempt in range(1, self.conflict_retries + 1):
            current = self._load_task(task_id)
            decision = self.evaluator.evaluate(actor, current, requested).require()
            built = build(current, decision)
            if built is None:
                return current, current, None
            candidate, info = built
            if candidate is None:
                return current, current, info
            saved = self.tasks.update(candidate, expected_version=current.version)
            if saved is not None:
                return current, saved, info
            logger.info(f"Task {task_id} changed underneath {actor.emp_id} (attempt {attempt}), re-reading")

        raise StateError(
            f"Task {task_id} was modified concurrently, please retry",
            reason="version_conflict",
        )

    def _apply_task_patch(self, current: Task, patch: TaskPatch, requested: Set[str]):
        now = self.clock()
        updates = self._common_updates(current, patch, requested, owner_id=current.owner_id)

        if FIELD_DUE_DATE in requested and current.is_recurring and patch.due_date is None:
            raise ValidationError("Recurring tasks require a due date", reason="recurrence_requires_due_date")
        if FIELD_FILE in requested:
            updates["file"] = patch.file or None

        transition: Optional[Transition] = None
        if FIELD_STATUS in requested:
            transition = self.state_machine.transition(current.status, patch.status, recurring=current.is_recurring)
            updates["status"] = transition.to_status.value
            if transition.enters_completed:
                updates["completed_at"] = now
            elif transition.leaves_completed:
                updates["completed_at"] = None

        changed = {k for k, v in updates.items() if getattr(current, k) != v}
        changed.discard("completed_at")
        if not changed:
            # Re-submitting completed still has to reach roll-forward.
            return (None, (transition, changed)) if transition and transition.is_completion_replay else None

        candidate = current.model_copy(update={**updates, "updated_at": now})
        return candidate, (transition, changed)

    def _common_updates(self, current, patch, requested: Set[str], *, owner_id: str) -> dict:
        """Field updates shared by tasks and subtasks (everything but status and file)."""
        updates = {}
        if FIELD_TITLE in requested:
            title = (patch.title or "").strip()
            if not title:
                raise ValidationError("Title cannot be empty", reason="invalid_title")
            updates["title"] = title
        if FIELD_DESCRIPTION in requested:
            updates["description"] = patch.description or None
        if FIELD_PRIORITY in requested:
            if patch.priority is None:
                updates["priority"] = None
            else:
                priority = normalize_priority(patch.priority)
                # An unusable priority leaves the stored one alone.
                if priority is not None:
                    updates["priority"] = priority
        if FIELD_DUE_DATE in requested:
            updates["due_date"] = patch.due_date
        if FIELD_COLLABORATORS in requested:
            collaborator_ids = normalize_collaborators(patch.collaborators, owner_id)
            self._require_employees(c for c in collaborator_ids if c not in current.collaborator_ids)
            updates["collaborator_ids"] = collaborator_ids
        return updates

    def _roll_forward_safely(self, actor: Actor, task: Task) -> RollForwardResult:
        try:
            result = run_roll_forward(self.db, task)
        except Exception as e:
            logger.error(f"Roll-forward failed for task {task.id}: {type(e).__name__}: {str(e)}")
            self._notify(
                NotificationType.RECURRENCE_FAILED,
                task.id,
                [task.owner_id],
                title=f"Next occurrence not created: {task.title}",
                description=f"Retry with POST /tasks/{task.id}/roll-forward ({type(e).__name__})",
            )
            return RollForwardResult(RollForwardStatus.FAILED, error=f"{type(e).__name__}: {str(e)}")

        if result.status == RollForwardStatus.CREATED:
            self._record(
                actor,
                AuditEventType.ROLLED_FORWARD,
                task.id,
                successor_id=result.successor.id,
                next_due_date=result.next_due_date,
                recurrence_count=result.successor.recurrence_count,
            )
        return result

    def _record(self, actor: Actor, event_type: AuditEventType, task_id: str, **details: Any) -> None:
        """Append to the task's edit history; a failed write is logged, never raised."""
        try:
            self.history.record(AuditEvent(
                event_type=event_type,
                task_id=task_id,
                editor_id=actor.emp_id,
                details={k: _history_value(v) for k, v in details.items()},
            ))
        except Exception as e:
            logger.error(
                f"Failed to record {getattr(event_type, 'value', event_type)} for task {task_id}: "
                f"{type(e).__name__}: {str(e)}"
            )

    def _notify(
        self,
        event_type: NotificationType,
        task_id: Optional[str],
        recipients: Iterable[str],
        *,
        title: str,
        description: Optional[str] = None,
        exclude: Optional[str] = None,
    ) -> None:
        recipients = [r for r in dict.fromkeys(recipients) if r and r != exclude]
        if not recipients:
            return
        self._dispatch(NotificationEvent(
            event_type=event_type,
            task_id=task_id,
            recipients=recipients,
            title=title,
            description=description,
        ))

    def _dispatch(self, event: NotificationEvent) -> None:
        try:
            self.dispatcher.dispatch(event)
        except Exception as e:
            logger.error(f"Failed to dispatch {event.event_type} for task {event.task_id}: {type(e).__name__}: {str(e)}")


def _history_value(value: Any) -> Any:
    """JSON-safe form of a value stored in edit history details."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_history_value(v) for v in value]
    return getattr(value, "value", value)
