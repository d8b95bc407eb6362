"""
Deposit Service
Computes deposit balances from assignment records and manages defense tokens.

Balance rule:
    amount = max(0, INITIAL_DEPOSIT - sum(penalty(record)))

where a record costs LACK_PENALTY when submitted but not passed,
MISSING_PENALTY when not submitted, and nothing when passed or defended.
The stored amount is recomputed after every mutation, so it can always be
rebuilt from the records (see reload_deposit / reload_all_deposits).
"""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.assignment import AssignmentRecord
from app.models.deposit import Deposit
from app.models.user import User, UserRole
from app.repositories.deposit_repository import (
    assignment_exists,
    get_active_deposits,
    get_assignment_record,
    get_deposit,
    get_deposit_for_update,
    get_records_for_user,
)
from app.schemas.deposit import AssignmentInsertRequest, AssignmentUpdateRequest
from app.services.activity_service import log_activity

logger = logging.getLogger(__name__)


# ============================================================
# SECTION 1: Balance calculation
# ============================================================


def raw_penalty(record: AssignmentRecord) -> int:
    """Penalty a record carries before any defense token is applied."""
    if record.is_missing:
        return settings.MISSING_PENALTY
    if record.is_lack:
        return settings.LACK_PENALTY
    return 0


def calculate_penalty(record: AssignmentRecord) -> int:
    if record.defended:
        return 0
    return raw_penalty(record)


def calculate_amount(records: Iterable[AssignmentRecord]) -> int:
    total = sum(calculate_penalty(r) for r in records)
    return max(0, settings.INITIAL_DEPOSIT - total)


def _recalculate(db: Session, deposit: Deposit) -> Tuple[int, int]:
    """Recompute a deposit in place. Returns (old_amount, new_amount)."""
    # Autoflush is off: pending records must be written before querying
    db.flush()
    old_amount = deposit.amount
    deposit.amount = calculate_amount(get_records_for_user(db, deposit.user_id))
    return old_amount, deposit.amount


def _require_deposit(db: Session, user_id: str, for_update: bool = True) -> Deposit:
    if for_update:
        deposit = get_deposit_for_update(db, user_id)
    else:
        deposit = get_deposit(db, user_id)
    if deposit is None:
        raise DepositNotFoundError("Deposit record not found")
    return deposit


def _ensure_self_or_admin(user_id: str, requester: User) -> None:
    if requester.id != user_id and not requester.is_admin:
        raise DepositAccessDenied("Not allowed to access another user's deposit")


def reload_deposit(
    db: Session, user_id: str, actor_id: Optional[str] = None
) -> Deposit:
    """Recompute one user's deposit from their assignment records."""
    deposit = _require_deposit(db, user_id)
    old_amount, new_amount = _recalculate(db, deposit)

    if old_amount != new_amount:
        log_activity(
            db,
            user_id,
            actor_id,
            "deposit_reloaded",
            "Deposit recalculated",
            {"old_amount": old_amount, "new_amount": new_amount},
        )
        logger.info(
            "Deposit for %s reloaded: %s -> %s", user_id, old_amount, new_amount
        )
    return deposit


def reload_all_deposits(db: Session, actor_id: Optional[str] = None) -> int:
    """Recompute every active deposit. Returns the number of changed balances."""
    changed = 0
    for deposit in get_active_deposits(db):
        old_amount = deposit.amount
        reload_deposit(db, deposit.user_id, actor_id)
        if deposit.amount != old_amount:
            changed += 1

    logger.info("Reloaded all deposits, %d balance(s) changed", changed)
    return changed


# ============================================================
# SECTION 2: Members
# ============================================================


def create_member(
    db: Session, user_id: str, name: str, role: UserRole = UserRole.USER
) -> User:
    """Create a user together with a fresh deposit."""
    if db.query(User).filter(User.id == user_id).first() is not None:
        raise MemberExistsError(f"User already exists: {user_id}")

    user = User(id=user_id, name=name, role=role)
    db.add(user)
    db.flush()

    db.add(Deposit(user_id=user_id, amount=settings.INITIAL_DEPOSIT, defend_count=0))
    db.flush()

    logger.info(
        "Created %s %s with deposit %s", role.value, user_id, settings.INITIAL_DEPOSIT
    )
    return user


# ============================================================
# SECTION 3: Deposit and defense tokens
# ============================================================


def check_deposit(db: Session, user_id: str, requester: User) -> Deposit:
    """
    Return the current deposit of a user.

    Members can only see their own deposit; admins can see everyone's.

    Raises:
        DepositAccessDenied: requester is neither the user nor an admin
        DepositNotFoundError: user has no deposit
    """
    _ensure_self_or_admin(user_id, requester)
    return _require_deposit(db, user_id, for_update=False)


def use_defend(db: Session, user_id: str, requester: User) -> AssignmentRecord:
    """
    Spend one defense token on the most recent penalized record.

    Returns:
        The record that is now defended

    Raises:
        DepositAccessDenied: requester is neither the user nor an admin
        DepositNotFoundError: user has no deposit
        DefendUnavailableError: no tokens left
        NothingToDefendError: no penalized, undefended record
    """
    _ensure_self_or_admin(user_id, requester)
    deposit = _require_deposit(db, user_id)

    if deposit.defend_count <= 0:
        raise DefendUnavailableError("No defense tokens left")

    target = next(
        (
            r
            for r in get_records_for_user(db, user_id)
            if not r.defended and raw_penalty(r) > 0
        ),
        None,
    )
    if target is None:
        raise NothingToDefendError("No deduction to defend against")

    target.defended = True
    deposit.defend_count -= 1
    old_amount, new_amount = _recalculate(db, deposit)

    log_activity(
        db,
        user_id,
        requester.id,
        "defend_used",
        f"Defense token used on {target.assignment}",
        {
            "assignment": target.assignment,
            "defend_count": deposit.defend_count,
            "old_amount": old_amount,
            "new_amount": new_amount,
        },
    )
    logger.info(
        "User %s used a defense token on %s (%s -> %s)",
        user_id,
        target.assignment,
        old_amount,
        new_amount,
    )
    return target


def add_defend(db: Session, user_id: str, actor: User) -> Deposit:
    """Grant one defense token."""
    deposit = _require_deposit(db, user_id)
    deposit.defend_count += 1
    db.flush()

    log_activity(
        db,
        user_id,
        actor.id,
        "defend_added",
        "Defense token granted",
        {"defend_count": deposit.defend_count},
    )
    logger.info("Admin %s granted a defense token to %s", actor.id, user_id)
    return deposit


def delete_defend(db: Session, user_id: str, actor: User) -> Deposit:
    """
    Remove one defense token.

    Raises:
        DepositNotFoundError: user has no deposit
        DefendUnavailableError: user has no tokens to remove
    """
    deposit = _require_deposit(db, user_id)
    if deposit.defend_count <= 0:
        raise DefendUnavailableError("No defense tokens to remove")

    deposit.defend_count -= 1
    db.flush()

    log_activity(
        db,
        user_id,
        actor.id,
        "defend_deleted",
        "Defense token removed",
        {"defend_count": deposit.defend_count},
    )
    logger.info("Admin %s removed a defense token from %s", actor.id, user_id)
    return deposit


# ============================================================
# SECTION 4: Assignments
# ============================================================


def insert_assignment(
    db: Session, request: AssignmentInsertRequest, actor: User
) -> List[AssignmentRecord]:
    """
    Register an assignment for every active member.

    Members in lack_list get check=True/pass=False, members in x_list get
    check=False/pass=False and everyone else passes.

    Raises:
        AssignmentExistsError: the assignment was already registered
        DepositNotFoundError: a listed user has no active deposit
    """
    if assignment_exists(db, request.assignment):
        raise AssignmentExistsError(
            f"Assignment already registered: {request.assignment}"
        )

    deposits = get_active_deposits(db)
    active_ids = {d.user_id for d in deposits}
    lack = set(request.lack_list)
    missing = set(request.x_list)

    unknown = sorted((lack | missing) - active_ids)
    if unknown:
        raise DepositNotFoundError(
            f"Deposit record not found for: {', '.join(unknown)}"
        )

    records = []
    for deposit in deposits:
        record = AssignmentRecord(
            user_id=deposit.user_id,
            assignment=request.assignment,
            check=deposit.user_id not in missing,
            passed=deposit.user_id not in lack and deposit.user_id not in missing,
        )
        db.add(record)
        records.append(record)

    # A concurrent insert of the same assignment trips uq_assignment_user
    try:
        db.flush()
    except IntegrityError as e:
        raise AssignmentExistsError(
            f"Assignment already registered: {request.assignment}"
        ) from e

    for deposit in deposits:
        old_amount, new_amount = _recalculate(db, deposit)
        log_activity(
            db,
            deposit.user_id,
            actor.id,
            "assignment_inserted",
            f"Assignment {request.assignment} registered",
            {
                "assignment": request.assignment,
                "old_amount": old_amount,
                "new_amount": new_amount,
            },
        )

    logger.info(
        "Admin %s registered %s for %d member(s): %d lack, %d missing",
        actor.id,
        request.assignment,
        len(records),
        len(lack),
        len(missing),
    )
    return records


def update_assignment(
    db: Session, user_id: str, request: AssignmentUpdateRequest, actor: User
) -> Tuple[AssignmentRecord, Deposit]:
    """
    Change one member's check/pass status for an assignment.

    If a defended record no longer carries a penalty, the defense token is
    returned to the member.

    Raises:
        UserMismatchError: body userId differs from the path userId
        DepositNotFoundError: user has no deposit or was deleted
        AssignmentNotFoundError: user has no record for the assignment
    """
    if request.user_id != user_id:
        raise UserMismatchError("userId in body does not match the URL")

    deposit = _require_deposit(db, user_id)
    record = get_assignment_record(db, user_id, request.assignment)
    if record is None:
        raise AssignmentNotFoundError(
            f"Assignment {request.assignment} not found for user {user_id}"
        )

    previous = {"check": record.check, "pass": record.passed}
    record.check = request.check
    record.passed = request.passed

    refunded = False
    if record.defended and raw_penalty(record) == 0:
        record.defended = False
        deposit.defend_count += 1
        refunded = True

    old_amount, new_amount = _recalculate(db, deposit)

    log_activity(
        db,
        user_id,
        actor.id,
        "assignment_updated",
        f"Assignment {request.assignment} updated",
        {
            "assignment": request.assignment,
            "previous": previous,
            "current": {"check": record.check, "pass": record.passed},
            "defend_refunded": refunded,
            "old_amount": old_amount,
            "new_amount": new_amount,
        },
    )
    logger.info(
        "Admin %s updated %s for %s (%s -> %s)",
        actor.id,
        request.assignment,
        user_id,
        old_amount,
        new_amount,
    )
    return record, deposit


class DepositError(Exception):
    """Base class for deposit rule violations"""

    pass


class DepositNotFoundError(DepositError):
    pass


class AssignmentNotFoundError(DepositError):
    pass


class AssignmentExistsError(DepositError):
    pass


class MemberExistsError(DepositError):
    pass


class DefendUnavailableError(DepositError):
    pass


class NothingToDefendError(DepositError):
    pass


class DepositAccessDenied(DepositError):
    pass


class UserMismatchError(DepositError):
    pass
