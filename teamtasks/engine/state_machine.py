"""Status state machine shared by tasks and subtasks.

States: unassigned -> ongoing -> under_review -> completed.

Transitions are otherwise unrestricted, with three exceptions:
- nothing moves *to* unassigned (it is an entry state only),
- completed is terminal for non-recurring tasks,
- subtasks never hold unassigned at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from teamtasks.errors import StateError, ValidationError
from teamtasks.models.task import TaskStatus

# Spellings sent by older clients
_STATUS_ALIASES = {
    "under review": TaskStatus.UNDER_REVIEW,
    "under-review": TaskStatus.UNDER_REVIEW,
    "on going": TaskStatus.ONGOING,
    "on-going": TaskStatus.ONGOING,
}


def parse_status(value: Union[str, TaskStatus, None]) -> TaskStatus:
    """Parse a status string, accepting legacy spellings case-insensitively.

    Raises:
        ValidationError: if the value is not a known status
    """
    if isinstance(value, TaskStatus):
        return value
    text = str(value or "").strip().lower()
    if text in _STATUS_ALIASES:
        return _STATUS_ALIASES[text]
    try:
        return TaskStatus(text)
    except ValueError:
        raise ValidationError(f"Invalid status: {value!r}", reason="invalid_status")


@dataclass(frozen=True)
class Transition:
    """Outcome of a validated status change."""

    from_status: TaskStatus
    to_status: TaskStatus

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status

    @property
    def enters_completed(self) -> bool:
        return self.changed and self.to_status == TaskStatus.COMPLETED

    @property
    def leaves_completed(self) -> bool:
        return self.changed and self.from_status == TaskStatus.COMPLETED

    @property
    def is_completion_replay(self) -> bool:
        """Completed re-submitted on an already completed instance."""
        return not self.changed and self.to_status == TaskStatus.COMPLETED


class TaskStateMachine:
    """Validates status transitions for tasks and subtasks."""

    def initial_status(
        self,
        *,
        owner_assigned: bool,
        can_assign: bool,
        requested: Optional[Union[str, TaskStatus]] = None,
    ) -> TaskStatus:
        """Entry status for a new task.

        Args:
            owner_assigned: True if the draft names an owner explicitly
            can_assign: True if the creator has assignment capability
            requested: Status asked for by the creator, if any

        Raises:
            ValidationError: if the requested status is unknown
            StateError: if unassigned is requested explicitly
        """
        if requested is not None:
            status = parse_status(requested)
            if status == TaskStatus.UNASSIGNED:
                raise StateError("A task cannot be created as unassigned explicitly", reason="unassigned_not_allowed")
            return status
        if not owner_assigned and can_assign:
            return TaskStatus.UNASSIGNED
        return TaskStatus.ONGOING

    def transition(
        self,
        current: Union[str, TaskStatus],
        requested: Union[str, TaskStatus],
        *,
        recurring: bool,
    ) -> Transition:
        """Validate a task status change.

        Raises:
            ValidationError: if the requested status is unknown
            StateError: if the change is not legal from the current status
        """
        from_status = parse_status(current)
        to_status = parse_status(requested)

        if from_status == to_status:
            return Transition(from_status, to_status)
        if to_status == TaskStatus.UNASSIGNED:
            raise StateError("A task cannot move back to unassigned", reason="unassigned_not_allowed")
        if from_status == TaskStatus.COMPLETED and not recurring:
            raise StateError("Completed task cannot be reopened", reason="task_completed")
        return Transition(from_status, to_status)

    def subtask_initial_status(self, requested: Optional[Union[str, TaskStatus]] = None) -> TaskStatus:
        if requested is None:
            return TaskStatus.ONGOING
        status = parse_status(requested)
        if status == TaskStatus.UNASSIGNED:
            raise StateError("Subtasks cannot be unassigned", reason="unassigned_not_allowed")
        return status

    def subtask_transition(self, current: Union[str, TaskStatus], requested: Union[str, TaskStatus]) -> Transition:
        """Validate a subtask status change; completed is not terminal for subtasks."""
        from_status = parse_status(current)
        to_status = parse_status(requested)
        if to_status == TaskStatus.UNASSIGNED:
            raise StateError("Subtasks cannot be unassigned", reason="unassigned_not_allowed")
        return Transition(from_status, to_status)
