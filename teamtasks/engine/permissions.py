"""Authorization decisions for task and subtask mutations.

Decision table, highest-priority match first:

1. owner                         -> every field
2. collaborator (not owner)      -> status only
3. organisation oversight        -> every field
4. manager of the task's project -> every field
5. anyone else                   -> denied

A collaborator who asks for more than status is denied outright, even if a later
rule (oversight, project management) would have granted it.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, Optional

from dotenv import load_dotenv

from teamtasks.errors import AuthorizationError
from teamtasks.models.actor import Actor, Capability
from teamtasks.models.constants import COLLABORATOR_FIELDS, SUBTASK_FIELDS, TASK_FIELDS
from teamtasks.models.project import Project
from teamtasks.models.subtask import Subtask
from teamtasks.models.task import Task

load_dotenv()

logger = logging.getLogger(__name__)

REASON_COLLABORATOR_STATUS_ONLY = "collaborator may only update status"
REASON_NOT_AUTHORIZED = "not authorized for this task"
REASON_FIELD_NOT_MUTABLE = "field not mutable"


class ManagerProjectAccess(str, Enum):
    """Which project relation lets a manager act on the project's tasks."""
    OWNER = "owner"    # project owner or listed manager
    MEMBER = "member"  # any project membership


class AccessRule(str, Enum):
    OWNER = "owner"
    COLLABORATOR = "collaborator"
    OVERSIGHT = "oversight"
    PROJECT_MANAGER = "project_manager"
    NONE = "none"


def manager_access_from_env() -> ManagerProjectAccess:
    raw = os.getenv("MANAGER_PROJECT_ACCESS", ManagerProjectAccess.OWNER.value).strip().lower()
    try:
        return ManagerProjectAccess(raw)
    except ValueError:
        logger.warning(f"Unknown MANAGER_PROJECT_ACCESS {raw!r}, using 'owner'")
        return ManagerProjectAccess.OWNER


@dataclass(frozen=True)
class PermissionDecision:
    """Result of an authorization check."""

    allowed: bool
    mutable_fields: FrozenSet[str] = field(default_factory=frozenset)
    reason: Optional[str] = None
    rule: AccessRule = AccessRule.NONE

    @property
    def can_read(self) -> bool:
        return self.rule != AccessRule.NONE

    @property
    def has_full_access(self) -> bool:
        return self.rule in (AccessRule.OWNER, AccessRule.OVERSIGHT, AccessRule.PROJECT_MANAGER)

    def require(self) -> "PermissionDecision":
        """Raise AuthorizationError unless the decision allows the request."""
        if not self.allowed:
            raise AuthorizationError(self.reason or REASON_NOT_AUTHORIZED)
        return self


ProjectLookup = Callable[[str], Optional[Project]]


class PermissionEvaluator:
    """Evaluates the decision table for an actor against a task or subtask.

    Args:
        project_lookup: Resolves a project id to a Project (or None)
        manager_access: Which project relation counts as "manages"
    """

    def __init__(
        self,
        project_lookup: ProjectLookup,
        manager_access: Optional[ManagerProjectAccess] = None,
    ):
        self.project_lookup = project_lookup
        self.manager_access = manager_access or manager_access_from_env()

    def evaluate(self, actor: Actor, task: Task, requested_fields: Iterable[str] = ()) -> PermissionDecision:
        """Decide whether actor may change requested_fields on task.

        An empty request asks "what may this actor change" and is allowed for anyone
        with read access.
        """
        return self._decide(
            actor,
            owner_id=task.owner_id,
            collaborator_ids=set(task.collaborator_ids),
            project_id=task.project_id,
            full_fields=TASK_FIELDS,
            requested=frozenset(requested_fields),
            target=f"task {task.id}",
        )

    def evaluate_subtask(
        self,
        actor: Actor,
        subtask: Subtask,
        parent: Task,
        requested_fields: Iterable[str] = (),
    ) -> PermissionDecision:
        """Decide for a subtask; collaborators of the parent or the subtask count."""
        return self._decide(
            actor,
            owner_id=subtask.owner_id,
            collaborator_ids=set(parent.collaborator_ids) | set(subtask.collaborator_ids),
            project_id=parent.project_id,
            full_fields=SUBTASK_FIELDS,
            requested=frozenset(requested_fields),
            target=f"subtask {subtask.id}",
        )

    def evaluate_project(self, actor: Actor, project: Project) -> PermissionDecision:
        """Decide whether actor may see and manage every task of a project.

        Organisation oversight always qualifies; a manager qualifies when they manage
        the project under the configured policy. Task-level relations do not count.
        """
        if actor.can(Capability.ORGANIZATION_OVERSIGHT):
            return PermissionDecision(True, TASK_FIELDS, None, AccessRule.OVERSIGHT)
        if actor.can(Capability.MANAGE_PROJECT_TASKS) and self._project_grants(actor, project):
            return PermissionDecision(True, TASK_FIELDS, None, AccessRule.PROJECT_MANAGER)
        logger.warning(f"Denied {actor.emp_id} on project {project.id}: not a manager of it")
        return PermissionDecision(False, frozenset(), REASON_NOT_AUTHORIZED, AccessRule.NONE)

    def _rule_for(self, actor: Actor, owner_id: str, collaborator_ids: set, project_id: Optional[str]) -> AccessRule:
        if actor.emp_id == owner_id:
            return AccessRule.OWNER
        if actor.emp_id in collaborator_ids:
            return AccessRule.COLLABORATOR
        if actor.can(Capability.ORGANIZATION_OVERSIGHT):
            return AccessRule.OVERSIGHT
        if actor.can(Capability.MANAGE_PROJECT_TASKS) and self._manages_project(actor, project_id):
            return AccessRule.PROJECT_MANAGER
        return AccessRule.NONE

    def _manages_project(self, actor: Actor, project_id: Optional[str]) -> bool:
        if not project_id:
            return False
        project = self.project_lookup(project_id)
        if project is None:
            return False
        return self._project_grants(actor, project)

    def _project_grants(self, actor: Actor, project: Project) -> bool:
        if self.manager_access == ManagerProjectAccess.MEMBER:
            return project.has_member(actor.emp_id)
        return project.is_managed_by(actor.emp_id)

    def _decide(
        self,
        actor: Actor,
        *,
        owner_id: str,
        collaborator_ids: set,
        project_id: Optional[str],
        full_fields: FrozenSet[str],
        requested: FrozenSet[str],
        target: str,
    ) -> PermissionDecision:
        rule = self._rule_for(actor, owner_id, collaborator_ids, project_id)

        if rule == AccessRule.NONE:
            logger.warning(f"Denied {actor.emp_id} on {target}: no relation")
            return PermissionDecision(False, frozenset(), REASON_NOT_AUTHORIZED, rule)

        unknown = requested - full_fields
        if unknown:
            reason = f"{REASON_FIELD_NOT_MUTABLE}: {', '.join(sorted(unknown))}"
            logger.warning(f"Denied {actor.emp_id} on {target}: {reason}")
            return PermissionDecision(False, frozenset(), reason, rule)

        if rule == AccessRule.COLLABORATOR:
            mutable = COLLABORATOR_FIELDS & full_fields
            if requested - mutable:
                logger.warning(
                    f"Denied collaborator {actor.emp_id} on {target}: requested {sorted(requested)}"
                )
                return PermissionDecision(False, mutable, REASON_COLLABORATOR_STATUS_ONLY, rule)
            return PermissionDecision(True, mutable, None, rule)

        return PermissionDecision(True, full_fields, None, rule)
