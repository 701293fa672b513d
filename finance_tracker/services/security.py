"""
Token Authentication

Issues and verifies HS256 bearer tokens and resolves the requesting user for
every protected route.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from finance_tracker import config
from finance_tracker.db.core import UserDB, get_db
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.JWT_EXPIRE_MINUTES))
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id carried by a token; raises jwt.InvalidTokenError when it is bad or expired."""
    payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    subject = payload.get("sub")
    if subject is None:
        raise jwt.InvalidTokenError("Token has no subject")
    try:
        return int(subject)
    except ValueError as e:
        raise jwt.InvalidTokenError("Token subject is not a user id") from e


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserDB:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authorized, no token")

    try:
        user_id = decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise _unauthorized("Not authorized, token failed")

    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if user is None:
        raise _unauthorized("Not authorized, user not found")
    if not user.is_active:
        raise _unauthorized("Account is deactivated")
    return user
