"""Lifecycle engine for teamtasks."""

from teamtasks.engine.state_machine import TaskStateMachine, Transition, parse_status
from teamtasks.engine.permissions import (
    AccessRule,
    ManagerProjectAccess,
    PermissionDecision,
    PermissionEvaluator,
)
from teamtasks.engine.lifecycle import TaskLifecycleService, UpdateResult

__all__ = [
    "TaskStateMachine",
    "Transition",
    "parse_status",
    "AccessRule",
    "ManagerProjectAccess",
    "PermissionDecision",
    "PermissionEvaluator",
    "TaskLifecycleService",
    "UpdateResult",
]
