"""Actor, role and capability models for teamtasks.

Roles are supplied by the employee directory. Each role maps to a fixed capability
set; authorization code asks for capabilities, never for role names.
"""

from enum import Enum
from typing import Dict, FrozenSet

from pydantic import BaseModel, Field


class Role(str, Enum):
    STAFF = "staff"
    MANAGER = "manager"
    HR = "hr"
    DIRECTOR = "director"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Parse a role name case-insensitively ("Manager", " HR ")."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}")


class Capability(str, Enum):
    ASSIGN_TASKS = "assign_tasks"
    ORGANIZATION_OVERSIGHT = "organization_oversight"
    MANAGE_PROJECT_TASKS = "manage_project_tasks"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.STAFF: frozenset(),
    Role.MANAGER: frozenset({Capability.ASSIGN_TASKS, Capability.MANAGE_PROJECT_TASKS}),
    Role.HR: frozenset({Capability.ASSIGN_TASKS, Capability.ORGANIZATION_OVERSIGHT}),
    Role.DIRECTOR: frozenset({Capability.ASSIGN_TASKS, Capability.ORGANIZATION_OVERSIGHT}),
}


class Actor(BaseModel):
    """The employee performing a request."""

    emp_id: str = Field(..., description="Employee identifier")
    role: Role = Field(..., description="Organisational role")

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return ROLE_CAPABILITIES[Role(self.role)]

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities
