"""
Deposit Repository - Data access layer for deposits and assignment records.

Mutating services load the deposit row through get_deposit_for_update so
concurrent defend/assignment changes for one user are serialized.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.assignment import AssignmentRecord
from app.models.deposit import Deposit
from app.models.user import User


def _active_deposits(db: Session):
    """Deposits whose owner is not soft deleted"""
    return (
        db.query(Deposit)
        .join(User, User.id == Deposit.user_id)
        .filter(User.deleted_at.is_(None))
    )


def get_deposit(db: Session, user_id: str) -> Optional[Deposit]:
    return _active_deposits(db).filter(Deposit.user_id == user_id).first()


def get_deposit_for_update(db: Session, user_id: str) -> Optional[Deposit]:
    """
    Fetch a deposit with a row-level lock (SELECT ... FOR UPDATE).

    Only the deposit row is locked; the lock is held until the request
    transaction commits. SQLite ignores FOR UPDATE.
    """
    return (
        _active_deposits(db)
        .filter(Deposit.user_id == user_id)
        .with_for_update(of=Deposit)
        .first()
    )


def get_active_deposits(db: Session) -> List[Deposit]:
    """All deposits whose owner is not soft deleted, ordered by user id."""
    return _active_deposits(db).order_by(Deposit.user_id).all()


def assignment_exists(db: Session, assignment: str) -> bool:
    return (
        db.query(AssignmentRecord.id)
        .filter(AssignmentRecord.assignment == assignment)
        .first()
        is not None
    )


def get_assignment_record(
    db: Session, user_id: str, assignment: str
) -> Optional[AssignmentRecord]:
    return (
        db.query(AssignmentRecord)
        .filter(
            AssignmentRecord.user_id == user_id,
            AssignmentRecord.assignment == assignment,
        )
        .first()
    )


def get_records_for_user(db: Session, user_id: str) -> List[AssignmentRecord]:
    """Assignment records of a user, most recently updated first."""
    return (
        db.query(AssignmentRecord)
        .filter(AssignmentRecord.user_id == user_id)
        .order_by(AssignmentRecord.updated_at.desc(), AssignmentRecord.id.desc())
        .all()
    )
