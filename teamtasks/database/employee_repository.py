"""Repository for Employee database operations."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from teamtasks.database.models import EmployeeDB, enum_to_value
from teamtasks.models.employee import Employee

logger = logging.getLogger(__name__)


class EmployeeRepository:
    """Repository for Employee database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, emp_id: str) -> Optional[Employee]:
        """Get employee by ID."""
        employee_db = self.db.query(EmployeeDB).filter(EmployeeDB.emp_id == emp_id).first()
        return employee_db.to_pydantic() if employee_db else None

    def exists(self, emp_id: str) -> bool:
        return self.db.query(EmployeeDB.emp_id).filter(EmployeeDB.emp_id == emp_id).first() is not None

    def create_or_update(self, employee: Employee) -> Employee:
        """Create or update an employee (upsert).

        Args:
            employee: Employee object to create or update

        Returns:
            Created or updated Employee object
        """
        employee_db = self.db.query(EmployeeDB).filter(EmployeeDB.emp_id == employee.emp_id).first()

        if employee_db:
            employee_db.email = employee.email
            employee_db.name = employee.name
            employee_db.department = employee.department
            employee_db.role = enum_to_value(employee.role)
            try:
                self.db.commit()
                self.db.refresh(employee_db)
                logger.debug(f"Updated employee {employee.emp_id}: {employee.email}")
                return employee_db.to_pydantic()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to update employee {employee.emp_id}: {type(e).__name__}: {str(e)}")
                raise
        else:
            try:
                employee_db = EmployeeDB.from_pydantic(employee)
                self.db.add(employee_db)
                self.db.commit()
                self.db.refresh(employee_db)
                logger.debug(f"Created employee {employee.emp_id}: {employee.email}")
                return employee_db.to_pydantic()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to create employee {employee.emp_id}: {type(e).__name__}: {str(e)}")
                raise
