"""
Bearer token helpers.

Tokens are issued out of band by `deposit-admin issue-token` (app/cli.py)
and verified on every request by app.dependencies.auth.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User

logger = logging.getLogger(__name__)


def create_jwt_token(user_id: str, expires_days: Optional[int] = None) -> str:
    """Create a signed JWT whose subject is the user id."""
    now = datetime.now(timezone.utc)
    days = settings.ACCESS_TOKEN_EXPIRE_DAYS if expires_days is None else expires_days
    expires = now + timedelta(days=days)

    to_encode = {"sub": user_id, "exp": expires, "iat": now}

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_jwt_token(token: str) -> Optional[str]:
    """Verify a JWT and return the user_id if valid."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None

    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        return None
    return user_id


def get_active_user(db: Session, user_id: str) -> Optional[User]:
    """Return the user if it exists and is not soft deleted."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.is_deleted:
        return None
    return user
