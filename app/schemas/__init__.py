from app.schemas.deposit import (
    DepositResponse,
    MessageResponse,
    DefendResponse,
    AssignmentInsertRequest,
    AssignmentInsertResponse,
    AssignmentUpdateRequest,
    AssignmentRecordResponse,
)

__all__ = [
    "DepositResponse",
    "MessageResponse",
    "DefendResponse",
    "AssignmentInsertRequest",
    "AssignmentInsertResponse",
    "AssignmentUpdateRequest",
    "AssignmentRecordResponse",
]
