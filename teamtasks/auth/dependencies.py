"""FastAPI dependencies for authentication."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from teamtasks.auth.jwt import get_emp_id_from_token
from teamtasks.database.database import get_db
from teamtasks.database.employee_repository import EmployeeRepository
from teamtasks.models.actor import Actor

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the bearer token to an Actor via the employee directory.

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the employee is unknown
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    emp_id = get_emp_id_from_token(credentials.credentials)
    if not emp_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = EmployeeRepository(db).get(emp_id)
    if not employee:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return employee.to_actor()
