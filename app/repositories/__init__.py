"""
Repository layer.

Repositories encapsulate database query logic shared by services.
"""

from app.repositories.deposit_repository import (
    get_deposit,
    get_deposit_for_update,
    get_active_deposits,
    assignment_exists,
    get_assignment_record,
    get_records_for_user,
)

__all__ = [
    "get_deposit",
    "get_deposit_for_update",
    "get_active_deposits",
    "assignment_exists",
    "get_assignment_record",
    "get_records_for_user",
]
