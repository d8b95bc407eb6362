"""
Activity Service - Audit trail for deposit changes.

Every mutation in deposit_service records one DepositActivity row so
admins can reconstruct why a balance changed.
"""

from typing import Optional, List

from sqlalchemy.orm import Session

from app.models.activity_log import DepositActivity


def log_activity(
    db: Session,
    user_id: str,
    actor_id: Optional[str],
    action: str,
    description: str,
    extra_data: Optional[dict] = None,
) -> DepositActivity:
    """
    Create and add an activity entry.

    Args:
        db: Database session
        user_id: Subject of the change
        actor_id: Caller (None for system actions)
        action: Action type (e.g., "defend_used", "assignment_updated")
        description: Human-readable description
        extra_data: Optional dictionary for additional metadata

    Returns:
        The created DepositActivity object

    Example:
        >>> log_activity(
        ...     db, "user1", "admin",
        ...     "defend_added",
        ...     "Defense token granted",
        ...     {"defend_count": 2}
        ... )
    """
    activity = DepositActivity(
        user_id=user_id,
        actor_id=actor_id,
        action=action,
        description=description,
        extra_data=extra_data or {},
    )
    db.add(activity)
    return activity


def get_activities_for_user(db: Session, user_id: str) -> List[DepositActivity]:
    """Activity entries for a user, oldest first."""
    return (
        db.query(DepositActivity)
        .filter(DepositActivity.user_id == user_id)
        .order_by(DepositActivity.created_at, DepositActivity.id)
        .all()
    )
