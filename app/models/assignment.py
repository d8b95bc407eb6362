from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime
from app.database import Base


class AssignmentRecord(Base):
    """Per-user outcome of one assignment.

    - check and passed: submitted and passed
    - check and not passed: "lack" (submitted, insufficient)
    - not check: "X" (not submitted)
    """

    __tablename__ = "assignment_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    assignment: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    check: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # "pass" is a Python keyword
    passed: Mapped[bool] = mapped_column(
        "pass", Boolean, default=False, nullable=False
    )
    defended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    user = relationship("User", back_populates="assignment_records")

    __table_args__ = (
        UniqueConstraint("user_id", "assignment", name="uq_assignment_user"),
    )

    @property
    def is_lack(self) -> bool:
        return self.check and not self.passed

    @property
    def is_missing(self) -> bool:
        return not self.check

    def __repr__(self):
        return f"<AssignmentRecord {self.assignment} for {self.user_id}>"
