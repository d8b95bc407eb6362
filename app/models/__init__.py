from app.models.user import User, UserRole
from app.models.deposit import Deposit
from app.models.assignment import AssignmentRecord
from app.models.activity_log import DepositActivity

__all__ = [
    "User",
    "UserRole",
    "Deposit",
    "AssignmentRecord",
    "DepositActivity",
]
