"""Project data model for teamtasks (read-only to the lifecycle engine)."""

from typing import List
from pydantic import BaseModel, Field


class Project(BaseModel):
    """Project owning a group of tasks."""

    id: str = Field(..., description="Unique project identifier")
    title: str = Field(..., description="Project title")
    owner_id: str = Field(..., description="Employee who owns the project")
    manager_ids: List[str] = Field(default_factory=list, description="Employees managing the project")
    member_ids: List[str] = Field(default_factory=list, description="Project members")

    def is_managed_by(self, emp_id: str) -> bool:
        return emp_id == self.owner_id or emp_id in self.manager_ids

    def has_member(self, emp_id: str) -> bool:
        return self.is_managed_by(emp_id) or emp_id in self.member_ids
