"""SQLAlchemy database models for teamtasks."""

from datetime import datetime
import uuid
from typing import Type, TypeVar, Union

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint

from teamtasks.database.database import Base
from teamtasks.models.actor import Role
from teamtasks.models.audit_event import AuditEventType
from teamtasks.models.notification import NotificationType
from teamtasks.models.recurrence import RecurrenceRule
from teamtasks.models.task import TaskStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _rule_to_json(rule):
    return rule.model_dump(mode="json") if rule is not None else None


def _rule_from_json(data):
    return RecurrenceRule.model_validate(data) if data else None


class EmployeeDB(Base):
    """Database model for Employee (identity directory)."""

    __tablename__ = "employees"

    emp_id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    department = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.STAFF.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.employee import Employee
        return Employee(
            emp_id=self.emp_id,
            email=self.email,
            name=self.name,
            department=self.department,
            role=value_to_enum(self.role, Role, Role.STAFF),
        )

    @classmethod
    def from_pydantic(cls, employee):
        """Create database model from Pydantic model."""
        return cls(
            emp_id=employee.emp_id,
            email=employee.email,
            name=employee.name,
            department=employee.department,
            role=enum_to_value(employee.role),
        )


class ProjectDB(Base):
    """Database model for Project."""

    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    owner_id = Column(String, ForeignKey("employees.emp_id"), nullable=False, index=True)

    # Stored as JSON arrays of employee ids
    manager_ids = Column(JSON, nullable=False, default=list)
    member_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.project import Project
        return Project(
            id=self.id,
            title=self.title,
            owner_id=self.owner_id,
            manager_ids=self.manager_ids or [],
            member_ids=self.member_ids or [],
        )

    @classmethod
    def from_pydantic(cls, project):
        """Create database model from Pydantic model."""
        return cls(
            id=project.id,
            title=project.title,
            owner_id=project.owner_id,
            manager_ids=list(project.manager_ids),
            member_ids=list(project.member_ids),
        )


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"
    __table_args__ = (
        # At most one instance per occurrence number in a series.
        # Note: NULL values do not participate (non-recurring tasks are unaffected).
        UniqueConstraint("recurrence_series_id", "recurrence_count", name="uq_task_recurrence_occurrence"),
    )

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.ONGOING.value, index=True)

    # Ownership
    owner_id = Column(String, ForeignKey("employees.emp_id"), nullable=False, index=True)
    collaborator_ids = Column(JSON, nullable=False, default=list)
    project_id = Column(String, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)

    due_date = Column(Date, nullable=True, index=True)
    file = Column(String, nullable=True)

    # Recurrence (rule stored as JSON)
    recurrence = Column(JSON, nullable=True)
    recurrence_series_id = Column(String, nullable=True, index=True)
    recurrence_count = Column(Integer, nullable=True)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.task import Task
        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.ONGOING),
            owner_id=self.owner_id,
            collaborator_ids=self.collaborator_ids or [],
            project_id=self.project_id,
            due_date=self.due_date,
            file=self.file,
            recurrence=_rule_from_json(self.recurrence),
            recurrence_series_id=self.recurrence_series_id,
            recurrence_count=self.recurrence_count,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=enum_to_value(task.status),
            owner_id=task.owner_id,
            collaborator_ids=list(task.collaborator_ids),
            project_id=task.project_id,
            due_date=task.due_date,
            file=task.file,
            recurrence=_rule_to_json(task.recurrence),
            recurrence_series_id=task.recurrence_series_id,
            recurrence_count=task.recurrence_count,
            version=task.version,
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
        )


class SubtaskDB(Base):
    """Database model for Subtask."""

    __tablename__ = "subtasks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    parent_task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.ONGOING.value)
    due_date = Column(Date, nullable=True)

    owner_id = Column(String, nullable=False, index=True)
    collaborator_ids = Column(JSON, nullable=False, default=list)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.subtask import Subtask
        return Subtask(
            id=self.id,
            parent_task_id=self.parent_task_id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.ONGOING),
            due_date=self.due_date,
            owner_id=self.owner_id,
            collaborator_ids=self.collaborator_ids or [],
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
            deleted_at=self.deleted_at,
        )

    @classmethod
    def from_pydantic(cls, subtask):
        """Create database model from Pydantic model."""
        return cls(
            id=subtask.id,
            parent_task_id=subtask.parent_task_id,
            title=subtask.title,
            description=subtask.description,
            priority=subtask.priority,
            status=enum_to_value(subtask.status),
            due_date=subtask.due_date,
            owner_id=subtask.owner_id,
            collaborator_ids=list(subtask.collaborator_ids),
            version=subtask.version,
            created_at=subtask.created_at,
            updated_at=subtask.updated_at,
            deleted_at=subtask.deleted_at,
        )


class NotificationDB(Base):
    """Database model for Notification."""

    __tablename__ = "notifications"
    __table_args__ = (
        # The same event is delivered at most once per recipient.
        UniqueConstraint("task_id", "emp_id", "type", "title", name="uq_notifications_task_emp_type_title"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    emp_id = Column(String, nullable=False, index=True)
    task_id = Column(String, nullable=True, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.notification import Notification
        return Notification(
            id=self.id,
            emp_id=self.emp_id,
            task_id=self.task_id,
            type=value_to_enum(self.type, NotificationType, NotificationType.TASK_UPDATED),
            title=self.title,
            description=self.description,
            read=self.read,
            read_at=self.read_at,
            created_at=self.created_at,
        )


class TaskEditHistoryDB(Base):
    """Database model for AuditEvent (task edit history)."""

    __tablename__ = "task_edit_history"

    # Insertion order is the history order
    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    editor_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    # JSON-safe values only (dates as ISO strings)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from teamtasks.models.audit_event import AuditEvent
        return AuditEvent(
            id=self.id,
            timestamp=self.created_at,
            event_type=value_to_enum(self.action, AuditEventType, AuditEventType.TASK_UPDATED),
            task_id=self.task_id,
            editor_id=self.editor_id,
            details=self.details or {},
        )

    @classmethod
    def from_pydantic(cls, event):
        """Create database model from Pydantic model."""
        return cls(
            task_id=event.task_id,
            editor_id=event.editor_id,
            action=enum_to_value(event.event_type),
            details=dict(event.details),
            created_at=event.timestamp,
        )
