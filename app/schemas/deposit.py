from typing import List

from pydantic import ConfigDict, Field, field_validator, model_validator

from app.schemas.base import CamelSchema


class DepositResponse(CamelSchema):
    user_id: str
    deposit: int = Field(description="The deposit amount")
    defend: int = Field(description="Remaining defense tokens")


class MessageResponse(CamelSchema):
    message: str


class DefendResponse(CamelSchema):
    user_id: str
    defend: int
    message: str


class AssignmentInsertRequest(CamelSchema):
    assignment: str = Field(
        min_length=1, max_length=255, description="The assignment description"
    )
    lack_list: List[str] = Field(
        description="User IDs who submitted but did not pass"
    )
    x_list: List[str] = Field(description="User IDs who did not submit")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "assignment": "Assignment 1",
                "lackList": ["user1", "user2"],
                "xList": ["user3", "user4"],
            }
        }
    )

    @field_validator("assignment")
    @classmethod
    def assignment_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("assignment must not be blank")
        return v

    @model_validator(mode="after")
    def lists_are_disjoint(self):
        overlap = set(self.lack_list) & set(self.x_list)
        if overlap:
            raise ValueError(
                f"users listed in both lackList and xList: {', '.join(sorted(overlap))}"
            )
        return self


class AssignmentInsertResponse(CamelSchema):
    message: str
    assignment: str
    recorded: int


class AssignmentUpdateRequest(CamelSchema):
    user_id: str
    assignment: str = Field(min_length=1, max_length=255)
    check: bool = Field(description="Assignment was submitted")
    passed: bool = Field(alias="pass", description="Assignment passed")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "userId": "user1",
                "assignment": "Assignment 1",
                "check": True,
                "pass": False,
            }
        }
    )

    @model_validator(mode="after")
    def pass_requires_check(self):
        if self.passed and not self.check:
            raise ValueError("an assignment cannot pass without being submitted")
        return self


class AssignmentRecordResponse(CamelSchema):
    user_id: str
    assignment: str
    check: bool
    passed: bool = Field(alias="pass")
    defended: bool
    deposit: int
