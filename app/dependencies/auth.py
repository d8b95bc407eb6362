import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.services.auth_service import get_active_user, verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency that validates the bearer token and returns the caller.

    Raises 401 when the header is missing, the token is invalid or expired,
    or the user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    user_id = verify_jwt_token(credentials.credentials)
    if user_id is None:
        logger.warning("Rejected request with invalid bearer token")
        raise _unauthorized()

    user = get_active_user(db, user_id)
    if user is None:
        logger.warning("Rejected token for unknown or deleted user %s", user_id)
        raise _unauthorized()

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """
    Dependency that additionally requires the admin role.

    Runs after get_current_user, so unauthenticated callers still get 401.
    """
    if not user.is_admin:
        logger.warning("User %s denied access to admin route", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user
