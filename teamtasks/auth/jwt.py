"""Bearer tokens identifying an employee.

The login service mints tokens whose subject is the employee id; this module
verifies them. create_access_token mints the same shape for tooling and tests.
"""

import logging
import os
import jwt
from datetime import datetime, timedelta
from typing import Optional, Dict
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))


def create_access_token(emp_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Mint a signed token for an employee.

    Args:
        emp_id: Employee id, stored as the token subject
        expires_in: Lifetime (JWT_EXPIRATION_HOURS when omitted)
    """
    issued_at = datetime.utcnow()
    lifetime = expires_in if expires_in is not None else timedelta(hours=JWT_EXPIRATION_HOURS)
    claims = {"sub": emp_id, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Verified claims of a token, or None when the signature, format or expiry is bad."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {type(e).__name__}")
        return None


def get_emp_id_from_token(token: str) -> Optional[str]:
    claims = decode_access_token(token)
    if not claims:
        return None
    emp_id = claims.get("sub")
    return emp_id if isinstance(emp_id, str) and emp_id else None
