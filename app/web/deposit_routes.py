"""
Deposit Routes - deposit status, defense tokens and assignment records

Mounted under settings.API_PREFIX (default /api/deposit).

| Method | Path                              | Gates         |
|--------|-----------------------------------|---------------|
| GET    | /deposit/{user_id}                | auth          |
| POST   | /deposit/{user_id}/defend/use     | auth          |
| POST   | /{user_id}/defend/delete          | auth + admin  |
| POST   | /{user_id}/defend/add             | auth + admin  |
| POST   | /assignment/insert                | auth + admin  |
| POST   | /{user_id}/assignment/update      | auth + admin  |

Handlers are plain ``def`` so the blocking database work runs on the
threadpool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import get_current_user, require_admin
from app.models.user import User
from app.schemas.deposit import (
    AssignmentInsertRequest,
    AssignmentInsertResponse,
    AssignmentRecordResponse,
    AssignmentUpdateRequest,
    DefendResponse,
    DepositResponse,
    MessageResponse,
)
from app.services import deposit_service
from app.services.deposit_service import DepositError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Deposits"])

_ERROR_STATUS = {
    deposit_service.DepositNotFoundError: status.HTTP_404_NOT_FOUND,
    deposit_service.AssignmentNotFoundError: status.HTTP_404_NOT_FOUND,
    deposit_service.AssignmentExistsError: status.HTTP_409_CONFLICT,
    deposit_service.DefendUnavailableError: status.HTTP_400_BAD_REQUEST,
    deposit_service.NothingToDefendError: status.HTTP_400_BAD_REQUEST,
    deposit_service.UserMismatchError: status.HTTP_400_BAD_REQUEST,
    deposit_service.DepositAccessDenied: status.HTTP_403_FORBIDDEN,
}

_AUTH_RESPONSES = {
    401: {"description": "Missing or invalid bearer token"},
}
_ADMIN_RESPONSES = {
    **_AUTH_RESPONSES,
    403: {"description": "Admin privileges required"},
}


def _to_http(exc: DepositError) -> HTTPException:
    """Translate a deposit rule violation into an HTTP error."""
    code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))


@router.get(
    "/deposit/{user_id}",
    response_model=DepositResponse,
    summary="Get deposit information",
    responses={
        **_AUTH_RESPONSES,
        403: {"description": "Not allowed to see another user's deposit"},
        404: {"description": "Deposit record not found"},
    },
)
def get_deposit(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current deposit and remaining defense tokens of a user."""
    try:
        deposit = deposit_service.check_deposit(db, user_id, user)
    except DepositError as e:
        raise _to_http(e) from e

    return DepositResponse(
        user_id=deposit.user_id, deposit=deposit.amount, defend=deposit.defend_count
    )


@router.post(
    "/deposit/{user_id}/defend/use",
    response_model=MessageResponse,
    summary="Use a defense token",
    responses={
        **_AUTH_RESPONSES,
        400: {"description": "No token left or nothing to defend"},
        403: {"description": "Not allowed to use another user's token"},
        404: {"description": "Deposit record not found"},
    },
)
def use_defend(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancel the most recent deduction with one of the user's defense tokens."""
    try:
        deposit_service.use_defend(db, user_id, user)
    except DepositError as e:
        raise _to_http(e) from e

    return MessageResponse(message="Defend used successfully")


@router.post(
    "/{user_id}/defend/delete",
    response_model=DefendResponse,
    summary="Remove a defense token",
    responses={
        **_ADMIN_RESPONSES,
        400: {"description": "User has no defense token"},
        404: {"description": "Deposit record not found"},
    },
)
def delete_defend(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        deposit = deposit_service.delete_defend(db, user_id, admin)
    except DepositError as e:
        raise _to_http(e) from e

    return DefendResponse(
        user_id=deposit.user_id,
        defend=deposit.defend_count,
        message="Defend deleted successfully",
    )


@router.post(
    "/{user_id}/defend/add",
    response_model=DefendResponse,
    summary="Grant a defense token",
    responses={
        **_ADMIN_RESPONSES,
        404: {"description": "Deposit record not found"},
    },
)
def add_defend(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        deposit = deposit_service.add_defend(db, user_id, admin)
    except DepositError as e:
        raise _to_http(e) from e

    return DefendResponse(
        user_id=deposit.user_id,
        defend=deposit.defend_count,
        message="Defend added successfully",
    )


@router.post(
    "/assignment/insert",
    response_model=AssignmentInsertResponse,
    summary="Insert assignment information",
    responses={
        **_ADMIN_RESPONSES,
        404: {"description": "A listed user has no deposit record"},
        409: {"description": "Assignment already registered"},
        500: {"description": "Server error"},
    },
)
def insert_assignment(
    request: AssignmentInsertRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Register an assignment for every member in one call.

    Users in ``lackList`` submitted but did not pass, users in ``xList``
    did not submit; everyone else passed.
    """
    try:
        records = deposit_service.insert_assignment(db, request, admin)
    except DepositError as e:
        raise _to_http(e) from e

    return AssignmentInsertResponse(
        message="Assignment information inserted successfully",
        assignment=request.assignment,
        recorded=len(records),
    )


@router.post(
    "/{user_id}/assignment/update",
    response_model=AssignmentRecordResponse,
    summary="Update assignment information",
    responses={
        **_ADMIN_RESPONSES,
        400: {"description": "userId in body does not match the URL"},
        404: {"description": "Deposit record not found"},
        500: {"description": "Server error"},
    },
)
def update_assignment(
    user_id: str,
    request: AssignmentUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        record, deposit = deposit_service.update_assignment(
            db, user_id, request, admin
        )
    except DepositError as e:
        raise _to_http(e) from e

    return AssignmentRecordResponse(
        user_id=record.user_id,
        assignment=record.assignment,
        check=record.check,
        passed=record.passed,
        defended=record.defended,
        deposit=deposit.amount,
    )
