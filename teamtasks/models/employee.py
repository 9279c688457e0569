"""Employee data model for teamtasks."""

from typing import Optional
from pydantic import BaseModel, Field

from teamtasks.models.actor import Actor, Role


class Employee(BaseModel):
    """Employee record from the identity directory."""

    emp_id: str = Field(..., description="Unique employee identifier")
    email: str = Field(..., description="Employee email address")
    name: Optional[str] = Field(None, description="Employee display name")
    department: Optional[str] = Field(None, description="Department name")
    role: Role = Field(Role.STAFF, description="Organisational role")

    def to_actor(self) -> Actor:
        return Actor(emp_id=self.emp_id, role=self.role)
