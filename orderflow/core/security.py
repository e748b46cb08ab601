# orderflow/core/security.py
from datetime import timedelta
from typing import Optional, Dict, Any

import jwt
from email_validator import validate_email, EmailNotValidError

from ..config.settings import get_settings
from ..config.logging import get_logger, log_security_event
from ..utils.date_utils import utc_now

logger = get_logger(__name__)
settings = get_settings()

ALGORITHM = settings.ALGORITHM
SECRET_KEY = settings.SECRET_KEY
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token. Used by tooling and tests; production tokens come from the user directory."""
    to_encode = data.copy()
    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "iat": utc_now(), "type": "access"})
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode JWT token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        log_security_event("token_expired")
        return None
    except jwt.InvalidTokenError as e:
        log_security_event("invalid_token", details=str(e))
        return None


def get_user_id_from_token(token: str) -> Optional[int]:
    """Extract the numeric user id (``sub``) from a token."""
    payload = verify_token(token)
    if not payload:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def is_deliverable_address(email: Optional[str]) -> bool:
    """Syntax check only; outbound mail is skipped for addresses that fail it."""
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError as e:
        logger.warning(f"Skipping malformed email address '{email}': {e}")
        return False
