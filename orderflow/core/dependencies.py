# orderflow/core/dependencies.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..config.database import get_db
from ..config.logging import get_logger, log_security_event
from ..models.user import User
from .exceptions import UnauthorizedError
from .security import get_user_id_from_token

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None:
        raise UnauthorizedError()

    user_id = get_user_id_from_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Invalid authentication credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        log_security_event("unknown_user", user_id=str(user_id))
        raise UnauthorizedError("User not found")

    if not user.is_active:
        log_security_event("inactive_user", user_id=str(user_id))
        raise UnauthorizedError("User account is disabled")

    request.state.user_id = str(user.id)
    return user

